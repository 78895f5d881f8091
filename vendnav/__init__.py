"""VendHub navigation - Turn-by-turn guidance to a vending machine."""

from .config import CONFIG
from .models import (
    GeoPoint,
    LocationSample,
    RouteStep,
    RouteInfo,
    TrackingState,
    TrackingErrorKind,
    VoiceState,
    BadgeCategory,
    BadgeDefinition,
    AchievementQueueState,
    StepChanged,
    ApproachingStep,
    TrackingError,
    SpeechError,
    AchievementReady,
)
from .logger import Logger
from .loop import EventLoop, Scheduler
from .geo import haversine_meters, retry_with_backoff
from .gps import (
    Geolocation,
    PositionError,
    PositionOptions,
    TermuxGeolocation,
    GeolocationRecorder,
    PlaybackGeolocation,
    detect_geolocation,
)
from .audio import SpeechEngine, Utterance, Voice, EspeakEngine, Pyttsx3Engine, create_speech_engine
from .store import KeyValueStore, MemoryStore, SQLiteStore
from .tracker import LocationTracker
from .voice import VoiceAnnouncer
from .achievements import AchievementQueue
from .badges import BADGES, unlocked_badge_ids
from .directions import OSRMDirections, DirectionsError, external_maps_url
from .map_view import MapView, FoliumMapView
from .app import RouteHost

__all__ = [
    "CONFIG",
    "GeoPoint",
    "LocationSample",
    "RouteStep",
    "RouteInfo",
    "TrackingState",
    "TrackingErrorKind",
    "VoiceState",
    "BadgeCategory",
    "BadgeDefinition",
    "AchievementQueueState",
    "StepChanged",
    "ApproachingStep",
    "TrackingError",
    "SpeechError",
    "AchievementReady",
    "Logger",
    "EventLoop",
    "Scheduler",
    "haversine_meters",
    "retry_with_backoff",
    "Geolocation",
    "PositionError",
    "PositionOptions",
    "TermuxGeolocation",
    "GeolocationRecorder",
    "PlaybackGeolocation",
    "detect_geolocation",
    "SpeechEngine",
    "Utterance",
    "Voice",
    "EspeakEngine",
    "Pyttsx3Engine",
    "create_speech_engine",
    "KeyValueStore",
    "MemoryStore",
    "SQLiteStore",
    "LocationTracker",
    "VoiceAnnouncer",
    "AchievementQueue",
    "BADGES",
    "unlocked_badge_ids",
    "OSRMDirections",
    "DirectionsError",
    "external_maps_url",
    "MapView",
    "FoliumMapView",
    "RouteHost",
]
