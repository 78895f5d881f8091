"""Shared fakes: a manual clock, a scriptable geolocation and a speech engine."""

import math

import pytest

from vendnav.audio import CANCELLED, SpeechEngine
from vendnav.geo import EARTH_RADIUS_M
from vendnav.gps import Geolocation
from vendnav.map_view import MapView
from vendnav.models import GeoPoint, LocationSample, RouteStep


METERS_PER_DEGREE_LAT = EARTH_RADIUS_M * math.pi / 180

BASE = GeoPoint(lat=41.2995, lng=69.2401)


def north_of(point: GeoPoint, meters: float) -> GeoPoint:
    return GeoPoint(lat=point.lat + meters / METERS_PER_DEGREE_LAT, lng=point.lng)


def fix(point: GeoPoint, timestamp_ms: int = 0, accuracy: float = 5.0) -> LocationSample:
    return LocationSample(coords=point, accuracy_meters=accuracy, timestamp_ms=timestamp_ms)


def step(point: GeoPoint, text: str) -> RouteStep:
    return RouteStep(position=point, instruction_text=text)


class FakeTimer:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Scheduler driven by advance(); call_soon runs inline"""

    def __init__(self):
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def call_soon(self, callback, *args):
        callback(*args)

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    def time(self):
        return self.now

    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float):
        target = self.now + seconds
        while True:
            due = [t for t in self.pending() if t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = max(self.now, timer.when)
            timer.callback(*timer.args)
        self.now = target


class FakeGeolocation(Geolocation):
    """Records requests; tests deliver fixes and errors by hand"""

    def __init__(self):
        self.current_requests = []
        self.watches = {}
        self.all_watches = {}
        self.cleared = []
        self._next_id = 1

    def get_current_position(self, on_success, on_error, options):
        self.current_requests.append((on_success, on_error, options))

    def watch_position(self, on_update, on_error, options):
        watch_id = self._next_id
        self._next_id += 1
        self.watches[watch_id] = (on_update, on_error, options)
        self.all_watches[watch_id] = (on_update, on_error, options)
        return watch_id

    def clear_watch(self, watch_id):
        self.cleared.append(watch_id)
        self.watches.pop(watch_id, None)

    def push(self, sample):
        for on_update, _, _ in list(self.watches.values()):
            on_update(sample)

    def fail(self, error):
        for _, on_error, _ in list(self.watches.values()):
            on_error(error)

    def resolve_current(self, sample=None, error=None):
        on_success, on_error, _ = self.current_requests.pop(0)
        if error is not None:
            on_error(error)
        else:
            on_success(sample)


class FakeSpeechEngine(SpeechEngine):
    """Keeps a queue of utterances; tests play them with start/finish/fail"""

    def __init__(self, voices=None):
        self.voices = list(voices or [])
        self.spoken = []
        self.queue = []
        self.cancel_count = 0

    @property
    def texts(self) -> list[str]:
        return [u.text for u in self.spoken]

    def speak(self, utterance):
        self.spoken.append(utterance)
        self.queue.append(utterance)

    def cancel(self):
        self.cancel_count += 1
        dropped, self.queue = self.queue, []
        for utterance in dropped:
            if utterance.on_error:
                utterance.on_error(CANCELLED)

    def list_voices(self):
        return list(self.voices)

    def start(self):
        utterance = self.queue[0]
        if utterance.on_start:
            utterance.on_start()

    def finish(self):
        utterance = self.queue.pop(0)
        if utterance.on_end:
            utterance.on_end()

    def fail(self, reason):
        utterance = self.queue.pop(0)
        if utterance.on_error:
            utterance.on_error(reason)


class FakeMapView(MapView):
    def __init__(self):
        self.routes = []
        self.positions = []
        self.current_steps = []
        self.cleared = 0

    def show_route(self, steps):
        self.routes.append(list(steps))

    def set_position(self, sample):
        self.positions.append(sample)

    def set_current_step(self, step_index):
        self.current_steps.append(step_index)

    def clear(self):
        self.cleared += 1


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def geolocation():
    return FakeGeolocation()


@pytest.fixture
def engine():
    return FakeSpeechEngine()
