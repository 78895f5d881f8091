import pytest

from vendnav.geo import haversine_meters, retry_with_backoff

from conftest import BASE, north_of


def test_same_point_is_zero():
    assert haversine_meters(BASE.lat, BASE.lng, BASE.lat, BASE.lng) == 0


def test_distance_is_symmetric():
    a = haversine_meters(41.2995, 69.2401, 41.3111, 69.2797)
    b = haversine_meters(41.3111, 69.2797, 41.2995, 69.2401)
    assert a == pytest.approx(b)


def test_about_one_kilometer_north():
    distance = haversine_meters(41.2995, 69.2401, 41.3085, 69.2401)
    assert distance == pytest.approx(1000, rel=0.1)


def test_thirty_meter_offset():
    point = north_of(BASE, 30)
    distance = haversine_meters(BASE.lat, BASE.lng, point.lat, point.lng)
    assert 25 <= distance <= 40


def test_retry_returns_first_success():
    results = iter([None, None, {"ok": True}])
    sleeps = []

    result = retry_with_backoff(lambda: next(results), max_time=30,
                                initial_delay=1.0, max_delay=8.0, sleep=sleeps.append)

    assert result == {"ok": True}
    assert sleeps == [1.0, 2.0]


def test_retry_gives_up_after_max_time():
    calls = []

    def failing():
        calls.append(1)
        return None

    assert retry_with_backoff(failing, max_time=0, sleep=lambda s: None) is None
    assert len(calls) == 1
