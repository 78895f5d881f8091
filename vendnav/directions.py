"""Walking directions from an OSRM server."""

import json
from typing import Optional
from urllib.parse import quote

import requests

from .config import CONFIG
from .geo import haversine_meters, retry_with_backoff
from .models import GeoPoint, RouteInfo, RouteStep

WALKING_SPEED = 1.4  # m/s, for routes loaded without a duration

MODIFIERS = {
    "left": "налево",
    "right": "направо",
    "slight left": "плавно налево",
    "slight right": "плавно направо",
    "sharp left": "резко налево",
    "sharp right": "резко направо",
}


TRAVEL_PROFILES = {"walking": "foot", "driving": "car"}  # travel mode -> OSRM profile

# OSRM response codes, plus the HTTP failures reported by us
ERROR_MESSAGES = {
    "NoSegment": "Не удалось найти маршрут до указанной точки",
    "NoRoute": "Маршрут не найден. Попробуйте другой способ передвижения",
    "TooBig": "Превышено максимальное количество точек маршрута",
    "TooManyRequests": "Превышен лимит запросов. Попробуйте позже",
    "RequestDenied": "Запрос отклонён",
}
INVALID_REQUEST_MESSAGE = "Неверный запрос маршрута"
DEFAULT_ERROR_MESSAGE = "Произошла ошибка при построении маршрута"


def directions_error_message(code: str) -> str:
    if code in ERROR_MESSAGES:
        return ERROR_MESSAGES[code]
    if code.startswith("Invalid"):
        return INVALID_REQUEST_MESSAGE
    return DEFAULT_ERROR_MESSAGE


class DirectionsError(Exception):
    """Route could not be calculated.

    str() is the localized message for the user; code and detail keep the
    server's answer for the log.
    """

    def __init__(self, code: str, detail: str = ""):
        super().__init__(directions_error_message(code))
        self.code = code
        self.detail = detail


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round(meters)} м"
    return f"{meters / 1000:.1f} км".replace(".", ",")


def format_duration(seconds: float) -> str:
    minutes = max(1, round(seconds / 60))
    if minutes < 60:
        return f"{minutes} мин"
    hours, minutes = divmod(minutes, 60)
    return f"{hours} ч {minutes} мин" if minutes else f"{hours} ч"


def build_instruction(step: dict) -> str:
    """Russian instruction text for one OSRM route step"""
    maneuver = step.get("maneuver", {})
    kind = maneuver.get("type", "")
    modifier = maneuver.get("modifier", "")
    name = step.get("name") or ""

    if kind == "depart":
        return f"Начните движение по {name}" if name else "Начните движение"
    if kind == "arrive":
        return "Вы прибыли к месту назначения"
    if kind in ("roundabout", "rotary"):
        exit_number = maneuver.get("exit")
        if exit_number:
            return f"На круговом движении выполните {exit_number}-й съезд"
        return "Проезжайте круговое движение"
    if modifier == "uturn":
        return "Развернитесь"
    if modifier in MODIFIERS:
        text = f"Поверните {MODIFIERS[modifier]}"
        return f"{text} на {name}" if name else text
    return f"Продолжайте движение прямо по {name}" if name else "Продолжайте движение прямо"


def parse_route(data: dict) -> RouteInfo:
    """RouteInfo from an OSRM /route response with steps=true"""
    route = data["routes"][0]
    steps = []
    for leg in route["legs"]:
        for step in leg["steps"]:
            lng, lat = step["maneuver"]["location"]
            steps.append(RouteStep(position=GeoPoint(lat=lat, lng=lng),
                                   instruction_text=build_instruction(step)))
    return RouteInfo(
        distance_text=format_distance(route["distance"]),
        duration_text=format_duration(route["duration"]),
        distance_meters=route["distance"],
        duration_seconds=route["duration"],
        steps=steps,
    )


class OSRMDirections:
    """Route calculation via the OSRM HTTP API"""

    def __init__(self, base_url: Optional[str] = None, profile: Optional[str] = None,
                 session: Optional[requests.Session] = None, sleep=None):
        self.base_url = (base_url or CONFIG["osrm_url"]).rstrip("/")
        self.profile = profile or CONFIG["osrm_profile"]
        self.session = session or requests.Session()
        self.sleep = sleep
        self.last_error: Optional[str] = None

    def _fetch(self, origin: GeoPoint, destination: GeoPoint) -> Optional[dict]:
        coords = f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        url = f"{self.base_url}/route/v1/{self.profile}/{coords}"
        try:
            response = self.session.get(
                url,
                params={"steps": "true", "overview": "false"},
                timeout=CONFIG["osrm_timeout"]
            )
        except requests.RequestException as e:
            print(f"Directions fetch error: {e}")
            self.last_error = str(e)
            return None

        # OSRM answers bad queries with a 400 and a JSON code
        try:
            data = response.json()
        except ValueError:
            data = {}
        code = data.get("code") if isinstance(data, dict) else None
        if code == "Ok":
            return data
        if code:
            # NoRoute and friends will not improve with a retry
            raise DirectionsError(code, data.get("message", ""))
        if response.status_code == 429:
            raise DirectionsError("TooManyRequests", f"HTTP {response.status_code}")
        if response.status_code == 403:
            raise DirectionsError("RequestDenied", f"HTTP {response.status_code}")

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            print(f"Directions fetch error: {e}")
            self.last_error = str(e)
        else:
            self.last_error = "response without a route code"
        return None

    def calculate_route(self, origin: GeoPoint, destination: GeoPoint) -> RouteInfo:
        kwargs = {"sleep": self.sleep} if self.sleep else {}
        data = retry_with_backoff(
            lambda: self._fetch(origin, destination),
            max_time=CONFIG["directions_retry_time"],
            initial_delay=1.0,
            max_delay=8.0,
            description="Route fetch",
            **kwargs
        )
        if not data:
            raise DirectionsError("NetworkError", self.last_error or "")
        return parse_route(data)


def external_maps_url(destination: GeoPoint, destination_name: str,
                      app: str = "google", travel_mode: str = "WALKING") -> str:
    """Deep link that opens the route in an external maps app"""
    lat, lng = destination.lat, destination.lng
    driving = travel_mode == "DRIVING"
    if app == "yandex":
        return f"https://yandex.ru/maps/?rtext=~{lat},{lng}&rtt={'auto' if driving else 'pd'}"
    if app == "apple":
        return f"http://maps.apple.com/?daddr={lat},{lng}&dirflg={'d' if driving else 'w'}"
    if app == "google":
        return (f"https://www.google.com/maps/dir/?api=1&destination={lat},{lng}"
                f"&destination_place_id={quote(destination_name)}"
                f"&travelmode={travel_mode.lower()}")
    return f"https://www.google.com/maps/dir/?api=1&destination={lat},{lng}"


def load_route_file(path: str) -> RouteInfo:
    """Route from a JSON file: a list of steps, or {"steps": [...], "distance": m, "duration": s}"""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"steps": data}
    steps = [RouteStep.from_dict(s) for s in data["steps"]]

    distance = data.get("distance")
    if distance is None:
        distance = sum(
            haversine_meters(a.position.lat, a.position.lng, b.position.lat, b.position.lng)
            for a, b in zip(steps, steps[1:])
        )
    duration = data.get("duration")
    if duration is None:
        duration = distance / WALKING_SPEED

    return RouteInfo(
        distance_text=format_distance(distance),
        duration_text=format_duration(duration),
        distance_meters=distance,
        duration_seconds=duration,
        steps=steps,
    )
