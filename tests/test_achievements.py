import json

import pytest

from vendnav.achievements import AchievementQueue
from vendnav.badges import BADGES
from vendnav.store import MemoryStore, SQLiteStore

KEY = "vendhub-achievements"


def badge(badge_id):
    return next(b for b in BADGES if b.id == badge_id)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def ready():
    return []


@pytest.fixture
def queue(store, scheduler, ready):
    return AchievementQueue(store, scheduler, on_ready=ready.append)


def test_queues_in_catalog_order(queue):
    new = queue.check_and_queue_new_achievements(["regular", "first_order"], BADGES)

    assert [b.id for b in new] == ["first_order", "regular"]
    assert [b.id for b in queue.state.pending] == ["first_order", "regular"]
    assert queue.state.current is None


def test_first_badge_shown_after_delay(queue, scheduler, ready):
    queue.check_and_queue_new_achievements(["first_order"], BADGES)

    scheduler.advance(0.49)
    assert queue.state.current is None

    scheduler.advance(0.01)
    assert queue.state.current.id == "first_order"
    assert queue.state.pending == []
    assert [e.badge.id for e in ready] == ["first_order"]


def test_no_duplicates(queue, scheduler):
    queue.check_and_queue_new_achievements(["first_order", "regular"], BADGES)
    assert queue.check_and_queue_new_achievements(["first_order", "regular"], BADGES) == []

    scheduler.advance(0.5)
    assert queue.check_and_queue_new_achievements(["first_order"], BADGES) == []

    queue.add_pending_achievement(badge("regular"))
    assert [b.id for b in queue.state.pending] == ["regular"]


def test_dismiss_marks_seen_and_shows_next(queue, store, scheduler):
    queue.check_and_queue_new_achievements(["first_order", "regular"], BADGES)
    scheduler.advance(0.5)

    queue.dismiss_current_achievement()

    assert queue.state.current is None
    assert queue.has_seen_achievement("first_order")
    assert json.loads(store.data[KEY]) == ["first_order"]

    scheduler.advance(0.29)
    assert queue.state.current is None
    scheduler.advance(0.01)
    assert queue.state.current.id == "regular"


def test_dismiss_last_schedules_nothing(queue, scheduler):
    queue.check_and_queue_new_achievements(["early_bird"], BADGES)
    scheduler.advance(0.5)
    queue.dismiss_current_achievement()

    assert scheduler.pending() == []
    assert queue.state.current is None


def test_dismiss_without_current_is_noop(queue, store):
    queue.dismiss_current_achievement()
    assert store.data == {}


def test_badges_unlocked_while_showing_wait_for_dismiss(queue, scheduler):
    queue.check_and_queue_new_achievements(["first_order"], BADGES)
    scheduler.advance(0.5)

    queue.check_and_queue_new_achievements(["first_order", "regular"], BADGES)
    assert scheduler.pending() == []

    queue.dismiss_current_achievement()
    scheduler.advance(0.3)
    assert queue.state.current.id == "regular"


def test_seen_badges_are_not_queued(scheduler):
    store = MemoryStore({KEY: json.dumps(["first_order"])})
    queue = AchievementQueue(store, scheduler)

    new = queue.check_and_queue_new_achievements(["first_order", "early_bird"], BADGES)

    assert [b.id for b in new] == ["early_bird"]


def test_unreadable_seen_list_starts_empty(scheduler):
    queue = AchievementQueue(MemoryStore({KEY: "not json"}), scheduler)
    assert queue.seen == frozenset()


def test_mark_pending_as_seen(queue, scheduler):
    queue.check_and_queue_new_achievements(["first_order", "regular"], BADGES)
    queue.mark_as_seen("regular")

    assert [b.id for b in queue.state.pending] == ["first_order"]
    assert queue.has_seen_achievement("regular")


def test_mark_current_as_seen_dismisses(queue, scheduler):
    queue.check_and_queue_new_achievements(["first_order", "regular"], BADGES)
    scheduler.advance(0.5)

    queue.mark_as_seen("first_order")

    assert queue.state.current is None
    assert queue.has_seen_achievement("first_order")
    scheduler.advance(0.3)
    assert queue.state.current.id == "regular"


def test_show_next_is_noop_while_showing(queue, scheduler, ready):
    queue.check_and_queue_new_achievements(["first_order", "regular"], BADGES)
    scheduler.advance(0.5)

    queue.show_next_achievement()

    assert queue.state.current.id == "first_order"
    assert len(ready) == 1


def test_close_cancels_timer(queue, scheduler):
    queue.check_and_queue_new_achievements(["first_order"], BADGES)
    queue.close()
    scheduler.advance(1)
    assert queue.state.current is None


def test_seen_survives_restart(tmp_path, scheduler):
    db_path = str(tmp_path / "store.db")
    store = SQLiteStore(db_path)
    queue = AchievementQueue(store, scheduler)
    queue.check_and_queue_new_achievements(["first_order"], BADGES)
    scheduler.advance(0.5)
    queue.dismiss_current_achievement()
    store.close()

    store = SQLiteStore(db_path)
    queue = AchievementQueue(store, scheduler)

    assert queue.has_seen_achievement("first_order")
    assert queue.check_and_queue_new_achievements(["first_order"], BADGES) == []
    store.close()
