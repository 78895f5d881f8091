"""Continuous location tracking with route-step proximity detection."""

import math
from concurrent.futures import Future
from dataclasses import replace
from typing import Callable, Iterable, Optional

from .config import CONFIG
from .geo import haversine_meters
from .gps import Geolocation, PositionError, PositionOptions
from .models import (
    ApproachingStep,
    LocationSample,
    RouteStep,
    StepChanged,
    TrackingError,
    TrackingErrorKind,
    TrackingState,
)

ERROR_MESSAGES = {
    TrackingErrorKind.PERMISSION_DENIED: "Доступ к геолокации запрещён",
    TrackingErrorKind.POSITION_UNAVAILABLE: "Местоположение недоступно",
    TrackingErrorKind.TIMEOUT: "Превышено время ожидания",
    TrackingErrorKind.UNKNOWN: "Ошибка определения местоположения",
    TrackingErrorKind.UNSUPPORTED: "Геолокация не поддерживается на этом устройстве",
}

_ERROR_CODES = {
    PositionError.PERMISSION_DENIED: TrackingErrorKind.PERMISSION_DENIED,
    PositionError.POSITION_UNAVAILABLE: TrackingErrorKind.POSITION_UNAVAILABLE,
    PositionError.TIMEOUT: TrackingErrorKind.TIMEOUT,
}


class LocationTracker:
    """
    Tracks the device position and the route step the user is executing.

    The current step index never moves backwards while a route is active:
    GPS noise near an earlier waypoint does not rewind the instructions.

    Usage:
        tracker = LocationTracker(geolocation, on_step_change=handle_step)
        tracker.set_route_steps(steps)
        tracker.start_tracking()
    """

    def __init__(self, geolocation: Optional[Geolocation],
                 step_proximity_threshold: Optional[float] = None,
                 update_interval_ms: Optional[int] = None,
                 high_accuracy: Optional[bool] = None,
                 approaching_distance: Optional[float] = None,
                 on_step_change: Optional[Callable[[StepChanged], None]] = None,
                 on_approaching_step: Optional[Callable[[ApproachingStep], None]] = None,
                 on_location: Optional[Callable[[LocationSample], None]] = None,
                 on_error: Optional[Callable[[TrackingError], None]] = None):
        self.geolocation = geolocation
        self.step_proximity_threshold = (
            step_proximity_threshold if step_proximity_threshold is not None
            else CONFIG["step_proximity_threshold"])
        self.update_interval_ms = (
            update_interval_ms if update_interval_ms is not None else CONFIG["update_interval"])
        self.high_accuracy = high_accuracy if high_accuracy is not None else CONFIG["high_accuracy"]
        self.approaching_distance = (
            approaching_distance if approaching_distance is not None
            else CONFIG["approaching_distance"])
        self.on_step_change = on_step_change
        self.on_approaching_step = on_approaching_step
        self.on_location = on_location
        self.on_error = on_error

        self._state = TrackingState()
        self._watch_id: Optional[int] = None
        # Bumped on every start/stop; callbacks from an older generation are dropped
        self._generation = 0
        self._steps: list[RouteStep] = []
        self._last_step_index = -1
        self._approaching_announced: set[int] = set()

        if geolocation is None:
            self._state.is_supported = False
            self._state.error = ERROR_MESSAGES[TrackingErrorKind.UNSUPPORTED]
            self._state.error_kind = TrackingErrorKind.UNSUPPORTED

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> TrackingState:
        """Snapshot of the tracking state"""
        return replace(self._state)

    @property
    def route_steps(self) -> tuple[RouteStep, ...]:
        return tuple(self._steps)

    # ------------------------------------------------------------------
    # Tracking lifecycle
    # ------------------------------------------------------------------

    def start_tracking(self):
        if self.geolocation is None or self._state.is_tracking:
            return

        self._generation += 1
        generation = self._generation
        self._state.is_tracking = True
        self._clear_error()

        def on_fix(sample: LocationSample):
            if generation == self._generation:
                self.update_position(sample)

        def on_fail(error: PositionError):
            if generation == self._generation:
                self._handle_error(error)

        # Immediate fix for fast first paint; races the watch below
        self.geolocation.get_current_position(on_fix, on_fail, PositionOptions(
            high_accuracy=self.high_accuracy,
            timeout_ms=CONFIG["current_position_timeout"],
            maximum_age_ms=0,
        ))
        self._watch_id = self.geolocation.watch_position(on_fix, on_fail, PositionOptions(
            high_accuracy=self.high_accuracy,
            timeout_ms=CONFIG["watch_position_timeout"],
            maximum_age_ms=self.update_interval_ms,
        ))

    def stop_tracking(self):
        if not self._state.is_tracking:
            return
        self._release_watch()
        self._generation += 1
        self._state.is_tracking = False

    def toggle(self):
        if self._state.is_tracking:
            self.stop_tracking()
        else:
            self.start_tracking()

    def close(self):
        """Teardown: release the subscription if one is still held"""
        self._release_watch()
        self._generation += 1
        self._state.is_tracking = False

    def _release_watch(self):
        watch_id, self._watch_id = self._watch_id, None
        if watch_id is not None and self.geolocation is not None:
            self.geolocation.clear_watch(watch_id)

    def request_permission(self) -> "Future[bool]":
        """Surface the OS permission prompt with a one-shot position request.

        The returned future resolves exactly once: True on success, False on
        any failure. Tracking state is left alone.
        """
        future: Future = Future()
        if self.geolocation is None:
            future.set_result(False)
            return future

        def granted(_sample: LocationSample):
            self._state.has_permission = True
            self._clear_error()
            if not future.done():
                future.set_result(True)

        def failed(error: PositionError):
            self._handle_error(error)
            if not future.done():
                future.set_result(False)

        self.geolocation.get_current_position(granted, failed, PositionOptions(
            high_accuracy=self.high_accuracy,
            timeout_ms=CONFIG["current_position_timeout"],
            maximum_age_ms=0,
        ))
        return future

    # ------------------------------------------------------------------
    # Route
    # ------------------------------------------------------------------

    def set_route_steps(self, steps: Iterable[RouteStep]):
        """Replace the active route and reset step progress"""
        self._steps = list(steps)
        self._last_step_index = -1
        self._approaching_announced.clear()
        self._state.current_step_index = -1

    def clear_route(self):
        self.set_route_steps([])

    # ------------------------------------------------------------------
    # Position updates
    # ------------------------------------------------------------------

    def update_position(self, sample: LocationSample):
        """Apply a fix. The subscription feeds this; replays may call it directly."""
        current = self._state.current_location
        if current is not None and sample.timestamp_ms < current.timestamp_ms:
            return

        self._state.current_location = sample
        self._state.has_permission = True
        self._clear_error()
        if self.on_location:
            self.on_location(sample)

        if not self._steps:
            return

        step_index = self._find_current_step(sample)
        if step_index != self._last_step_index and step_index >= self._last_step_index:
            self._last_step_index = step_index
            self._state.current_step_index = step_index
            if self.on_step_change:
                step = self._steps[step_index] if 0 <= step_index < len(self._steps) else None
                self.on_step_change(StepChanged(step_index=step_index, step=step))

    def _find_current_step(self, sample: LocationSample) -> int:
        """Index of the step the user is at, scanning forward from the last confirmed one.

        The first step inside the proximity threshold wins, even if a later
        step is closer. Otherwise the closest scanned step is returned.
        """
        lat, lng = sample.coords.lat, sample.coords.lng
        closest_index = -1
        closest_distance = math.inf

        for i in range(max(self._last_step_index, 0), len(self._steps)):
            step = self._steps[i].position
            distance = haversine_meters(lat, lng, step.lat, step.lng)
            if distance < closest_distance:
                closest_distance = distance
                closest_index = i
            if distance <= self.step_proximity_threshold:
                return i

        next_index = self._last_step_index + 1
        if 0 <= next_index < len(self._steps):
            step = self._steps[next_index].position
            distance_to_next = haversine_meters(lat, lng, step.lat, step.lng)
            if (distance_to_next <= self.approaching_distance
                    and next_index not in self._approaching_announced):
                self._approaching_announced.add(next_index)
                if self.on_approaching_step:
                    self.on_approaching_step(ApproachingStep(
                        step_index=next_index, distance_meters=distance_to_next))

        return closest_index

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def _handle_error(self, error: PositionError):
        kind = _ERROR_CODES.get(error.code, TrackingErrorKind.UNKNOWN)
        if kind is TrackingErrorKind.PERMISSION_DENIED:
            self._state.has_permission = False
        message = ERROR_MESSAGES[kind]
        self._state.error = message
        self._state.error_kind = kind
        if self.on_error:
            self.on_error(TrackingError(kind=kind, message=message))

    def _clear_error(self):
        if self._state.error_kind is TrackingErrorKind.UNSUPPORTED:
            return
        self._state.error = None
        self._state.error_kind = None
