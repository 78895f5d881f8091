"""Navigation screen glue: wires tracking into voice and the map."""

import time
from typing import Optional

from .audio import SpeechEngine
from .config import CONFIG
from .gps import Geolocation
from .logger import Logger
from .loop import Scheduler
from .map_view import MapView
from .models import (
    ApproachingStep,
    LocationSample,
    RouteInfo,
    SpeechError,
    StepChanged,
    TrackingError,
)
from .tracker import LocationTracker
from .voice import VoiceAnnouncer

APPROACHING_TEMPLATE = "Через {distance} м: {instruction}"


class RouteHost:
    """Owns one route and composes the tracker, the announcer and the map.

    The components never talk to each other; every step change passes
    through here, which is also where a step is kept from being spoken twice.
    """

    def __init__(self, geolocation: Optional[Geolocation],
                 speech_engine: Optional[SpeechEngine],
                 scheduler: Scheduler,
                 map_view: Optional[MapView] = None,
                 logger: Optional[Logger] = None,
                 voice_enabled: bool = True):
        self.map_view = map_view
        self.logger = logger or Logger()
        self.tracker = LocationTracker(
            geolocation,
            on_step_change=self._on_step_change,
            on_approaching_step=self._on_approaching_step,
            on_location=self._on_location,
            on_error=self._on_tracking_error,
        )
        self.voice = VoiceAnnouncer(speech_engine, scheduler, on_error=self._on_speech_error)
        if voice_enabled:
            self.voice.enable()

        self.route: Optional[RouteInfo] = None
        self.destination_name = ""
        self.arrived = False
        self._spoken_steps: set[int] = set()
        self._last_log_update = 0.0

    def get_state(self) -> dict:
        """Get current state as dict for logging"""
        tracking = self.tracker.state
        state = {
            "tracking": tracking.is_tracking,
            "step_index": tracking.current_step_index,
            "steps": len(self.route.steps) if self.route else 0,
            "speaking": self.voice.state.is_speaking,
            "arrived": self.arrived,
        }
        if tracking.current_location:
            state["location"] = tracking.current_location.to_dict()
        if tracking.error:
            state["error"] = tracking.error
        return state

    # ------------------------------------------------------------------
    # Navigation lifecycle
    # ------------------------------------------------------------------

    def start_navigation(self, route: RouteInfo, destination_name: str = ""):
        self.route = route
        self.destination_name = destination_name
        self.arrived = False
        self._spoken_steps.clear()

        self.tracker.set_route_steps(route.steps)
        if self.map_view:
            self.map_view.show_route(route.steps)
        self.logger.log("Navigation started", {
            "destination": destination_name,
            "steps": len(route.steps),
            "distance": route.distance_meters,
            "duration": route.duration_seconds,
        })
        self.voice.announce_route_start(route.distance_text, route.duration_text)
        self.tracker.start_tracking()

    def cancel_navigation(self):
        self.tracker.clear_route()
        self.tracker.stop_tracking()
        self.voice.stop()
        if self.map_view:
            self.map_view.clear()
        self.route = None
        self._spoken_steps.clear()
        self.logger.log("Navigation cancelled")

    def close(self):
        self.tracker.close()
        self.voice.close()

    # ------------------------------------------------------------------
    # Component events
    # ------------------------------------------------------------------

    def _on_step_change(self, event: StepChanged):
        if event.step is None:
            return
        self.logger.log("Step reached", {
            "step_index": event.step_index,
            "instruction": event.step.instruction_text,
        })
        if self.map_view:
            self.map_view.set_current_step(event.step_index)

        if event.step_index in self._spoken_steps:
            return
        self._spoken_steps.add(event.step_index)

        if event.step_index == len(self.tracker.route_steps) - 1:
            self.arrived = True
            self.logger.log("Arrived", {"destination": self.destination_name})
            if self.destination_name:
                self.voice.announce_arrival(self.destination_name)
            else:
                self.voice.speak_step(event.step.instruction_text, event.step_index)
        else:
            self.voice.speak_step(event.step.instruction_text, event.step_index)

    def _on_approaching_step(self, event: ApproachingStep):
        steps = self.tracker.route_steps
        if not 0 <= event.step_index < len(steps):
            return
        instruction = steps[event.step_index].instruction_text
        self.logger.log("Approaching step", {
            "step_index": event.step_index,
            "distance": round(event.distance_meters, 1),
        })
        self.voice.speak_step(APPROACHING_TEMPLATE.format(
            distance=round(event.distance_meters), instruction=instruction))

    def _on_location(self, sample: LocationSample):
        if self.map_view:
            self.map_view.set_position(sample)

        now = time.monotonic()
        if now - self._last_log_update >= CONFIG["log_interval"]:
            self.logger.log("STATE", self.get_state())
            self._last_log_update = now

    def _on_tracking_error(self, event: TrackingError):
        self.logger.log("Tracking error", {"kind": event.kind.value, "message": event.message})

    def _on_speech_error(self, event: SpeechError):
        self.logger.log("Speech error", {"message": event.message})
