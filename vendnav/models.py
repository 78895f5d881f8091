"""Data classes for VendHub navigation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, d: dict) -> "GeoPoint":
        # Trace files from older recorders use "lon"
        return cls(lat=float(d["lat"]), lng=float(d.get("lng", d.get("lon"))))


@dataclass(frozen=True)
class LocationSample:
    """A single GPS fix"""
    coords: GeoPoint
    accuracy_meters: float
    heading_degrees: Optional[float] = None
    speed_meters_per_sec: Optional[float] = None
    timestamp_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "lat": self.coords.lat,
            "lng": self.coords.lng,
            "accuracy": self.accuracy_meters,
            "heading": self.heading_degrees,
            "speed": self.speed_meters_per_sec,
            "timestamp": self.timestamp_ms,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "LocationSample":
        return cls(
            coords=GeoPoint.from_dict(d),
            accuracy_meters=float(d.get("accuracy") or 0.0),
            heading_degrees=d.get("heading"),
            speed_meters_per_sec=d.get("speed"),
            timestamp_ms=int(d.get("timestamp") or 0),
        )


@dataclass(frozen=True)
class RouteStep:
    """One leg of a turn-by-turn route"""
    position: GeoPoint
    instruction_text: str

    def to_dict(self) -> dict:
        return {"lat": self.position.lat, "lng": self.position.lng,
                "instruction": self.instruction_text}

    @classmethod
    def from_dict(cls, d: dict) -> "RouteStep":
        return cls(position=GeoPoint.from_dict(d), instruction_text=d["instruction"])


@dataclass
class RouteInfo:
    """A calculated route as returned by the directions service"""
    distance_text: str
    duration_text: str
    distance_meters: float
    duration_seconds: float
    steps: list[RouteStep] = field(default_factory=list)


class TrackingErrorKind(Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"
    UNSUPPORTED = "unsupported"


@dataclass
class TrackingState:
    is_supported: bool = True
    is_tracking: bool = False
    has_permission: bool = False
    current_location: Optional[LocationSample] = None
    error: Optional[str] = None  # localized message, ready to render
    error_kind: Optional[TrackingErrorKind] = None
    current_step_index: int = -1


@dataclass
class VoiceState:
    is_supported: bool = True
    is_enabled: bool = False
    is_speaking: bool = False
    current_step_index: int = -1
    error: Optional[str] = None


class BadgeCategory(Enum):
    ORDERS = "orders"
    SOCIAL = "social"
    LOYALTY = "loyalty"
    SPECIAL = "special"


@dataclass(frozen=True)
class BadgeDefinition:
    """Static catalog entry for an achievement badge"""
    id: str
    name: str
    description: str
    icon: str
    category: BadgeCategory
    color: str
    bg_color: str


@dataclass
class AchievementQueueState:
    pending: list[BadgeDefinition] = field(default_factory=list)
    current: Optional[BadgeDefinition] = None


# Events emitted to the host screen


@dataclass(frozen=True)
class StepChanged:
    step_index: int
    step: Optional[RouteStep]


@dataclass(frozen=True)
class ApproachingStep:
    step_index: int
    distance_meters: float


@dataclass(frozen=True)
class TrackingError:
    kind: TrackingErrorKind
    message: str


@dataclass(frozen=True)
class SpeechError:
    message: str


@dataclass(frozen=True)
class AchievementReady:
    badge: BadgeDefinition
