"""Geolocation capability: port, device adapter, recording and playback.

Adapters deliver every callback on the application loop (see loop.py).
"""

import itertools
import json
import shutil
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .loop import Scheduler
from .models import GeoPoint, LocationSample


@dataclass(frozen=True)
class PositionOptions:
    high_accuracy: bool = True
    timeout_ms: int = 10000
    maximum_age_ms: int = 0


class PositionError(Exception):
    """Positioning failure, using the W3C geolocation error codes"""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3

    def __init__(self, code: int, message: str = ""):
        super().__init__(message or f"position error {code}")
        self.code = code
        self.message = message


SuccessCallback = Callable[[LocationSample], None]
ErrorCallback = Callable[[PositionError], None]


class Geolocation(ABC):
    """Platform geolocation capability"""

    @abstractmethod
    def get_current_position(self, on_success: SuccessCallback, on_error: ErrorCallback,
                             options: PositionOptions) -> None:
        """Request a single fix"""

    @abstractmethod
    def watch_position(self, on_update: SuccessCallback, on_error: ErrorCallback,
                       options: PositionOptions) -> int:
        """Open a continuous subscription, returning its handle"""

    @abstractmethod
    def clear_watch(self, watch_id: int) -> None:
        """Release a subscription. Releasing an unknown handle is a no-op."""


class TermuxGeolocation(Geolocation):
    """GPS access via Termux API"""

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self._ids = itertools.count(1)
        self._watches: dict[int, threading.Event] = {}

    @staticmethod
    def is_available() -> bool:
        return shutil.which("termux-location") is not None

    def _read_fix(self, options: PositionOptions) -> LocationSample:
        """Run termux-location once. Raises PositionError."""
        provider = "gps" if options.high_accuracy else "network"
        try:
            result = subprocess.run(
                ["termux-location", "-p", provider, "-r", "once"],
                capture_output=True,
                text=True,
                timeout=options.timeout_ms / 1000
            )
        except subprocess.TimeoutExpired:
            raise PositionError(PositionError.TIMEOUT, "termux-location timed out")
        except FileNotFoundError:
            raise PositionError(PositionError.POSITION_UNAVAILABLE, "termux-location not found")

        if result.returncode != 0:
            error_msg = result.stderr.strip() if result.stderr else "unknown error"
            code = (PositionError.PERMISSION_DENIED if "permission" in error_msg.lower()
                    else PositionError.POSITION_UNAVAILABLE)
            raise PositionError(code, error_msg)

        if not result.stdout or not result.stdout.strip():
            raise PositionError(PositionError.POSITION_UNAVAILABLE, "empty response")

        try:
            data = json.loads(result.stdout)
            return LocationSample(
                coords=GeoPoint(lat=float(data["latitude"]), lng=float(data["longitude"])),
                accuracy_meters=float(data.get("accuracy") or 0.0),
                heading_degrees=data.get("bearing"),
                speed_meters_per_sec=data.get("speed"),
                timestamp_ms=int(time.time() * 1000),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise PositionError(PositionError.POSITION_UNAVAILABLE, f"bad response: {e}")

    def _deliver_once(self, on_success: SuccessCallback, on_error: ErrorCallback,
                      options: PositionOptions):
        try:
            sample = self._read_fix(options)
        except PositionError as e:
            self.scheduler.call_soon(on_error, e)
        else:
            self.scheduler.call_soon(on_success, sample)

    def get_current_position(self, on_success, on_error, options):
        threading.Thread(
            target=self._deliver_once, args=(on_success, on_error, options), daemon=True
        ).start()

    def watch_position(self, on_update, on_error, options):
        watch_id = next(self._ids)
        stopped = threading.Event()
        self._watches[watch_id] = stopped
        interval = max(options.maximum_age_ms, 1000) / 1000

        def poll():
            while not stopped.is_set():
                self._deliver_once(on_update, on_error, options)
                stopped.wait(interval)

        threading.Thread(target=poll, daemon=True).start()
        return watch_id

    def clear_watch(self, watch_id):
        stopped = self._watches.pop(watch_id, None)
        if stopped:
            stopped.set()


class GeolocationRecorder(Geolocation):
    """Records every fix and error delivered by another Geolocation to a trace file"""

    def __init__(self, source: Geolocation, record_path: str):
        self.source = source
        self.record_path = record_path
        self.trace: list[dict] = []
        self.start_time = time.time()

    def _record(self, location: Optional[LocationSample], error: Optional[PositionError]):
        self.trace.append({
            "elapsed": time.time() - self.start_time,
            "timestamp": time.time(),
            "location": location.to_dict() if location else None,
            "error": {"code": error.code, "message": error.message} if error else None,
        })

    def _wrap(self, on_success: SuccessCallback, on_error: ErrorCallback):
        def success(sample):
            self._record(sample, None)
            on_success(sample)

        def error(err):
            self._record(None, err)
            on_error(err)

        return success, error

    def get_current_position(self, on_success, on_error, options):
        self.source.get_current_position(*self._wrap(on_success, on_error), options)

    def watch_position(self, on_update, on_error, options):
        return self.source.watch_position(*self._wrap(on_update, on_error), options)

    def clear_watch(self, watch_id):
        self.source.clear_watch(watch_id)

    def save(self):
        """Save trace to file"""
        with open(self.record_path, "w", encoding="utf-8") as f:
            json.dump({
                "recorded_at": datetime.now().isoformat(),
                "trace": self.trace
            }, f, indent=2)
        print(f"GPS trace saved to {self.record_path} ({len(self.trace)} entries)")


class PlaybackGeolocation(Geolocation):
    """Plays back a recorded trace file on the scheduler's clock"""

    def __init__(self, playback_path: str, scheduler: Scheduler, speed: float = 1.0):
        self.playback_path = playback_path
        self.scheduler = scheduler
        self.speed = speed
        self._ids = itertools.count(1)
        self._timers: dict[int, list] = {}
        self.delivered = 0

        with open(playback_path, encoding="utf-8") as f:
            self.trace: list[dict] = json.load(f)["trace"]
        print(f"Loaded GPS trace from {playback_path} ({len(self.trace)} entries)")

    def _entry_sample(self, entry: dict) -> LocationSample:
        sample = LocationSample.from_dict(entry["location"])
        if not sample.timestamp_ms:
            elapsed_ms = int(entry.get("elapsed", 0) * 1000)
            sample = LocationSample(sample.coords, sample.accuracy_meters, sample.heading_degrees,
                                    sample.speed_meters_per_sec, elapsed_ms)
        return sample

    def _entry_error(self, entry: dict) -> PositionError:
        error = entry.get("error") or {}
        return PositionError(error.get("code", PositionError.POSITION_UNAVAILABLE),
                             error.get("message", "no fix in trace"))

    def _deliver(self, entry: dict, on_success: SuccessCallback, on_error: ErrorCallback):
        if entry.get("location"):
            on_success(self._entry_sample(entry))
        else:
            on_error(self._entry_error(entry))

    def get_current_position(self, on_success, on_error, options):
        first = next((e for e in self.trace if e.get("location")), None)
        if first is None:
            self.scheduler.call_soon(
                on_error, PositionError(PositionError.POSITION_UNAVAILABLE, "empty trace"))
        else:
            self.scheduler.call_soon(on_success, self._entry_sample(first))

    def watch_position(self, on_update, on_error, options):
        watch_id = next(self._ids)

        def fire(entry):
            self.delivered += 1
            self._deliver(entry, on_update, on_error)

        self._timers[watch_id] = [
            self.scheduler.call_later(entry.get("elapsed", 0) / self.speed, fire, entry)
            for entry in self.trace
        ]
        return watch_id

    def clear_watch(self, watch_id):
        for timer in self._timers.pop(watch_id, []):
            timer.cancel()

    def is_finished(self) -> bool:
        """Check if playback is complete"""
        return self.delivered >= len(self.trace)


def detect_geolocation(scheduler: Scheduler) -> Optional[Geolocation]:
    """Device geolocation if this platform has one, else None (unsupported)"""
    if TermuxGeolocation.is_available():
        return TermuxGeolocation(scheduler)
    return None
