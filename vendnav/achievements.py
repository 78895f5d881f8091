"""Achievement unlock queue.

Decouples "badges became unlocked" from "toast is on screen": unlocks are
queued and shown one at a time, and every badge the user has dismissed is
remembered in a durable store so it is never offered again.
"""

import json
from typing import Callable, Iterable, Optional, Sequence

from .config import CONFIG
from .loop import Scheduler, TimerHandle
from .models import AchievementQueueState, AchievementReady, BadgeDefinition
from .store import KeyValueStore


class AchievementQueue:
    """
    FIFO of unlocked badges plus the persisted set of seen badge ids.

    A badge id is in at most one of seen, pending and current at a time.
    Only the seen set is durable; pending and current are rebuilt by the
    host on the next launch.
    """

    def __init__(self, store: KeyValueStore, scheduler: Scheduler,
                 show_delay: Optional[float] = None, next_delay: Optional[float] = None,
                 storage_key: Optional[str] = None,
                 on_ready: Optional[Callable[[AchievementReady], None]] = None):
        self.store = store
        self.scheduler = scheduler
        self.show_delay = show_delay if show_delay is not None else CONFIG["achievement_show_delay"]
        self.next_delay = next_delay if next_delay is not None else CONFIG["achievement_next_delay"]
        self.storage_key = storage_key or CONFIG["seen_achievements_key"]
        self.on_ready = on_ready

        self._pending: list[BadgeDefinition] = []
        self._current: Optional[BadgeDefinition] = None
        self._timer: Optional[TimerHandle] = None
        self._seen: list[str] = self._load_seen()

    def _load_seen(self) -> list[str]:
        raw = self.store.get(self.storage_key)
        if not raw:
            return []
        try:
            ids = json.loads(raw)
        except json.JSONDecodeError:
            return []
        return [str(i) for i in ids] if isinstance(ids, list) else []

    def _save_seen(self):
        self.store.set(self.storage_key, json.dumps(self._seen))

    @property
    def state(self) -> AchievementQueueState:
        return AchievementQueueState(pending=list(self._pending), current=self._current)

    @property
    def seen(self) -> frozenset[str]:
        return frozenset(self._seen)

    # ------------------------------------------------------------------
    # Seen set
    # ------------------------------------------------------------------

    def has_seen_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self._seen

    def mark_as_seen(self, achievement_id: str):
        if self._current is not None and self._current.id == achievement_id:
            self.dismiss_current_achievement()
            return
        self._pending = [b for b in self._pending if b.id != achievement_id]
        if achievement_id not in self._seen:
            self._seen.append(achievement_id)
            self._save_seen()

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def _is_known(self, badge_id: str) -> bool:
        return (badge_id in self._seen
                or any(p.id == badge_id for p in self._pending)
                or (self._current is not None and self._current.id == badge_id))

    def add_pending_achievement(self, badge: BadgeDefinition):
        if not self._is_known(badge.id):
            self._pending.append(badge)

    def check_and_queue_new_achievements(self, unlocked_ids: Iterable[str],
                                         all_badges: Sequence[BadgeDefinition]
                                         ) -> list[BadgeDefinition]:
        """Queue unlocked badges not yet seen, pending or showing.

        Returns the newly queued badges in catalog order.
        """
        unlocked = set(unlocked_ids)
        new_badges = []
        for badge in all_badges:
            if badge.id in unlocked and not self._is_known(badge.id):
                new_badges.append(badge)
                self._pending.append(badge)

        if new_badges and self._current is None:
            self._schedule_show(self.show_delay)

        return new_badges

    def show_next_achievement(self):
        if self._current is not None or not self._pending:
            return
        self._current = self._pending.pop(0)
        if self.on_ready:
            self.on_ready(AchievementReady(badge=self._current))

    def dismiss_current_achievement(self):
        if self._current is None:
            return
        badge_id = self._current.id
        self._current = None
        if badge_id not in self._seen:
            self._seen.append(badge_id)
            self._save_seen()
        if self._pending:
            self._schedule_show(self.next_delay)

    def _schedule_show(self, delay: float):
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self.scheduler.call_later(delay, self._on_timer)

    def _on_timer(self):
        self._timer = None
        self.show_next_achievement()

    def close(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
