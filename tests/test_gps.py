import json
import subprocess
import threading
import time

import pytest

from vendnav import gps
from vendnav.gps import (
    GeolocationRecorder,
    PlaybackGeolocation,
    PositionError,
    PositionOptions,
    TermuxGeolocation,
)

from conftest import BASE, fix

TRACE = {
    "trace": [
        {"elapsed": 0.0, "location": {"lat": 41.2995, "lng": 69.2401, "accuracy": 5.0}},
        {"elapsed": 3.0, "location": None, "error": {"code": 3, "message": "timeout"}},
        {"elapsed": 6.0, "location": {"lat": 41.3000, "lon": 69.2401, "accuracy": 8.0}},
    ]
}


@pytest.fixture
def trace_path(tmp_path):
    path = tmp_path / "trace.json"
    path.write_text(json.dumps(TRACE), encoding="utf-8")
    return str(path)


def test_playback_delivers_on_schedule(trace_path, scheduler):
    playback = PlaybackGeolocation(trace_path, scheduler, speed=2.0)
    fixes, errors = [], []

    playback.watch_position(fixes.append, errors.append, PositionOptions())
    scheduler.advance(0)
    assert len(fixes) == 1

    scheduler.advance(1.5)
    assert errors[0].code == PositionError.TIMEOUT

    scheduler.advance(1.5)
    assert fixes[1].coords.lat == 41.3000
    assert fixes[1].timestamp_ms == 6000
    assert playback.is_finished()


def test_playback_clear_watch_stops_delivery(trace_path, scheduler):
    playback = PlaybackGeolocation(trace_path, scheduler)
    fixes = []

    watch_id = playback.watch_position(fixes.append, lambda e: None, PositionOptions())
    scheduler.advance(0)
    playback.clear_watch(watch_id)
    playback.clear_watch(watch_id)
    scheduler.advance(10)

    assert len(fixes) == 1
    assert not playback.is_finished()


def test_playback_current_position(trace_path, scheduler):
    playback = PlaybackGeolocation(trace_path, scheduler)
    fixes = []
    playback.get_current_position(fixes.append, lambda e: None, PositionOptions())
    assert fixes[0].coords.lat == 41.2995


def test_recorder_saves_fixes_and_errors(tmp_path, geolocation):
    path = tmp_path / "recorded.json"
    recorder = GeolocationRecorder(geolocation, str(path))
    fixes, errors = [], []

    recorder.watch_position(fixes.append, errors.append, PositionOptions())
    geolocation.push(fix(BASE, 1000))
    geolocation.fail(PositionError(PositionError.POSITION_UNAVAILABLE, "no signal"))
    recorder.save()

    assert len(fixes) == 1 and len(errors) == 1
    saved = json.loads(path.read_text(encoding="utf-8"))["trace"]
    assert saved[0]["location"]["lat"] == BASE.lat
    assert saved[1]["error"] == {"code": 2, "message": "no signal"}


class FakeTermuxLocation:
    """Stands in for subprocess.run; replays scripted termux-location results"""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []
        self.called = threading.Event()

    def __call__(self, args, **kwargs):
        self.calls.append((args, kwargs))
        self.called.set()
        result = self.results[0] if len(self.results) == 1 else self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(["termux-location"], returncode, stdout, stderr)


GPS_OUTPUT = json.dumps({
    "latitude": 41.2995, "longitude": 69.2401, "accuracy": 7.5,
    "bearing": 90.0, "speed": 1.2, "provider": "gps",
})


def read_once(monkeypatch, result, options=PositionOptions()):
    run = FakeTermuxLocation(result)
    monkeypatch.setattr(gps.subprocess, "run", run)
    termux = TermuxGeolocation(scheduler=None)
    return run, termux._read_fix(options)


def test_termux_parses_fix(monkeypatch):
    run, sample = read_once(monkeypatch, completed(GPS_OUTPUT), PositionOptions(timeout_ms=5000))

    assert sample.coords.lat == 41.2995
    assert sample.coords.lng == 69.2401
    assert sample.accuracy_meters == 7.5
    assert sample.heading_degrees == 90.0
    assert sample.speed_meters_per_sec == 1.2
    args, kwargs = run.calls[0]
    assert args == ["termux-location", "-p", "gps", "-r", "once"]
    assert kwargs["timeout"] == 5


def test_termux_low_accuracy_uses_network(monkeypatch):
    run, _ = read_once(monkeypatch, completed(GPS_OUTPUT), PositionOptions(high_accuracy=False))
    assert run.calls[0][0][2] == "network"


@pytest.mark.parametrize("result, code", [
    (completed(stderr="Permission denied for location", returncode=1), PositionError.PERMISSION_DENIED),
    (completed(stderr="Location provider disabled", returncode=1), PositionError.POSITION_UNAVAILABLE),
    (completed(""), PositionError.POSITION_UNAVAILABLE),
    (completed("not json"), PositionError.POSITION_UNAVAILABLE),
    (subprocess.TimeoutExpired("termux-location", 10), PositionError.TIMEOUT),
    (FileNotFoundError("termux-location"), PositionError.POSITION_UNAVAILABLE),
])
def test_termux_error_codes(monkeypatch, result, code):
    with pytest.raises(PositionError) as excinfo:
        read_once(monkeypatch, result)
    assert excinfo.value.code == code


def test_termux_current_position_reports_on_loop(monkeypatch, scheduler):
    monkeypatch.setattr(gps.subprocess, "run", FakeTermuxLocation(
        completed(stderr="permission denied", returncode=1)))
    termux = TermuxGeolocation(scheduler)
    failed = threading.Event()
    errors = []

    def on_error(error):
        errors.append(error)
        failed.set()

    termux.get_current_position(lambda sample: None, on_error, PositionOptions())

    assert failed.wait(5)
    assert errors[0].code == PositionError.PERMISSION_DENIED


def test_termux_clear_watch_stops_polling(monkeypatch, scheduler):
    run = FakeTermuxLocation(completed(GPS_OUTPUT))
    monkeypatch.setattr(gps.subprocess, "run", run)
    termux = TermuxGeolocation(scheduler)
    fixes = []

    watch_id = termux.watch_position(fixes.append, lambda e: None, PositionOptions())
    assert run.called.wait(5)
    termux.clear_watch(watch_id)
    time.sleep(1.3)

    assert len(run.calls) == 1
    assert len(fixes) == 1
