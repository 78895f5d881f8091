import pytest

import vendnav.__main__ as cli
from vendnav.directions import DirectionsError


class FailingDirections:
    profiles = []

    def __init__(self, base_url=None, profile=None):
        self.profiles.append(profile)

    def calculate_route(self, origin, destination):
        raise DirectionsError("NoRoute", "Impossible route")


@pytest.fixture
def failing_route(monkeypatch, geolocation):
    FailingDirections.profiles = []
    monkeypatch.setattr(cli, "detect_geolocation", lambda loop: geolocation)
    monkeypatch.setattr(cli, "OSRMDirections", FailingDirections)
    return FailingDirections


def run_cli(tmp_path, *extra):
    log_path = tmp_path / "nav.log"
    with pytest.raises(SystemExit) as excinfo:
        cli.main([
            "--dest", "41.3111", "69.2797",
            "--origin", "41.2995", "69.2401",
            "--name", "VendHub Chilanzar",
            "--log", str(log_path),
            *extra,
        ])
    return excinfo.value.code, log_path.read_text(encoding="utf-8")


def test_route_failure_is_localized(failing_route, tmp_path, capsys):
    code, log = run_cli(tmp_path)

    out = capsys.readouterr().out
    assert code == 1
    assert "Маршрут не найден. Попробуйте другой способ передвижения" in out
    assert "https://www.google.com/maps/dir/?api=1&destination=41.3111,69.2797" in out
    assert "travelmode=walking" in out
    assert failing_route.profiles == ["foot"]
    assert 'Route calculation failed | {"code": "NoRoute", "detail": "Impossible route"}' in log
    assert "VendHub navigation session to VendHub Chilanzar" in log


def test_driving_mode_uses_car_profile(failing_route, tmp_path, capsys):
    run_cli(tmp_path, "--mode", "driving")

    assert failing_route.profiles == ["car"]
    assert "travelmode=driving" in capsys.readouterr().out


def test_unknown_mode_is_rejected(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--dest", "41.3", "69.2", "--mode", "flying"])
    assert excinfo.value.code == 2
