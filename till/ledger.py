"""Daily ledger store: the single mutable root of the till's state."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable

from till.config import ACTIVITY_LOG_LIMIT
from till.models import DailyData, LogEntry, Shift
from till.money import day_key, local_now
from till.persistence import LocalStorage

logger = logging.getLogger(__name__)

Reducer = Callable[[DailyData], DailyData]
Listener = Callable[[DailyData], None]


class LedgerNotReady(RuntimeError):
    pass


def append_log(data: DailyData, action: str, now: datetime) -> DailyData:
    """Prepend an activity log entry, keeping the most recent entries only."""
    entries = (LogEntry(timestamp=now, action=action),) + data.activity_log
    return replace(data, activity_log=entries[:ACTIVITY_LOG_LIMIT])


def new_day(date: str, now: datetime) -> DailyData:
    return append_log(DailyData(date=date), "New day started", now)


class LedgerStore:
    """
    Holds the current ``DailyData`` snapshot and the closed-shift history.

    Every mutation is a reducer applied to the latest snapshot; the result is
    published and persisted in the same step, so no reducer ever works from
    a stale read.
    """

    def __init__(self, storage: LocalStorage, clock: Callable[[], datetime] = local_now) -> None:
        self.storage = storage
        self.clock = clock
        self._daily: DailyData | None = None
        self._shift_history: tuple[Shift, ...] = ()
        self._listeners: list[Listener] = []
        self._sync_requested = False

    @property
    def is_loaded(self) -> bool:
        return self._daily is not None

    @property
    def snapshot(self) -> DailyData:
        if self._daily is None:
            raise LedgerNotReady("ledger has not been initialized for today")
        return self._daily

    @property
    def shift_history(self) -> tuple[Shift, ...]:
        return self._shift_history

    def today(self) -> str:
        return day_key(self.clock())

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def initialize_for_today(self) -> DailyData:
        """Rehydrate today's snapshot or start a new day."""
        self.storage.bootstrap_schema()
        self._shift_history = self.storage.load_shift_history()

        today = self.today()
        loaded = self.storage.load_daily(today)
        if loaded is None:
            loaded = new_day(today, self.clock())
            self.storage.purge_daily_except(today)
            self.storage.save_daily(loaded)
            logger.info("Started new ledger day %s", today)
        else:
            logger.info(
                "Loaded ledger day %s: %d orders, shift=%s",
                today,
                len(loaded.completed_orders),
                loaded.current_shift.id if loaded.current_shift else None,
            )
        self._publish(loaded)
        return loaded

    def apply(self, reducer: Reducer) -> DailyData:
        """Reduce the latest snapshot, then publish and persist the result."""
        current = self.snapshot
        updated = reducer(current)
        if updated is current:
            return current
        self._publish(updated)
        self.storage.save_daily(updated)
        return updated

    def log_action(self, action: str) -> None:
        if self._daily is None:
            return
        now = self.clock()
        self.apply(lambda data: append_log(data, action, now))

    def archive_shift(self, shift: Shift) -> None:
        history = (shift,) + tuple(s for s in self._shift_history if s.id != shift.id)
        self.storage.save_shift_history(history)
        self._shift_history = history

    @property
    def sync_requested(self) -> bool:
        return self._sync_requested

    def request_sync(self) -> None:
        self._sync_requested = True

    def take_sync_request(self) -> bool:
        requested, self._sync_requested = self._sync_requested, False
        return requested

    def _publish(self, data: DailyData) -> None:
        self._daily = data
        for listener in list(self._listeners):
            listener(data)
