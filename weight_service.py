from __future__ import annotations
import datetime
import logging
import math
import sqlite3
from typing import Callable, Optional

from db import DailyLogRepository, WeightEntryRepository
from enums import GoalType, decode
from models import DailyLog, WeightEntry, start_of_day

logger = logging.getLogger(__name__)

ErrorSink = Callable[[str, Exception], None]

SYNC_MODES = ("last_write", "latest_timestamp")


def as_datetime(value: datetime.date | datetime.datetime | str) -> datetime.datetime:
    """Accept a timestamp, a bare date or an ISO string."""
    if isinstance(value, str):
        value = datetime.datetime.fromisoformat(value)
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value
    return datetime.datetime.combine(value, datetime.time.min)


class WeightSyncService:
    """Keep each day's log weight in step with the individual weight entries.

    Every day has at most one ``DailyLog``. Its weight mirrors the latest
    surviving entry of that day and is cleared, never deleted, once the last
    entry goes away so calorie data for the day is kept.

    Store failures are logged and handed to ``error_sink``; they are not
    raised to the caller.
    """

    def __init__(
        self,
        weight_repo: WeightEntryRepository,
        log_repo: DailyLogRepository,
        sync_mode: str = "last_write",
        error_sink: Optional[ErrorSink] = None,
    ) -> None:
        if sync_mode not in SYNC_MODES:
            raise ValueError(f"unknown sync mode: {sync_mode}")
        self.weights = weight_repo
        self.logs = log_repo
        self.sync_mode = sync_mode
        self.error_sink = error_sink

    def _report(self, operation: str, error: Exception) -> None:
        logger.exception("%s failed: %s", operation, error)
        if self.error_sink is not None:
            self.error_sink(operation, error)

    def record_weight(
        self,
        date: datetime.date | datetime.datetime | str,
        weight_kg: float,
        goal_type: GoalType | str,
        note: str = "",
    ) -> WeightEntry | None:
        """Insert a weight entry and update the log of its day.

        In ``last_write`` mode the new value always becomes the day's weight,
        even if an existing entry of that day has a later timestamp.
        """
        if not weight_kg > 0 or math.isinf(weight_kg):
            raise ValueError("weight must be positive")
        timestamp = as_datetime(date)
        goal = decode(GoalType, goal_type)
        try:
            with self.weights.transaction() as conn:
                entry_id = self.weights.insert(timestamp, weight_kg, note, conn)
                self._sync_day(timestamp, weight_kg, goal, conn)
        except sqlite3.Error as e:
            self._report("record_weight", e)
            return None
        return WeightEntry(id=entry_id, date=timestamp, weight_kg=weight_kg, note=note)

    def remove_weight(self, entry: WeightEntry) -> None:
        """Delete ``entry`` and recompute its day's weight from what remains."""
        try:
            self.weights.delete(entry.id)
        except sqlite3.Error as e:
            self._report("remove_weight", e)
            return
        self._repair_day(entry.day)

    def update_weight(
        self,
        entry: WeightEntry,
        new_date: datetime.date | datetime.datetime | str,
        new_weight_kg: float,
        new_note: str,
        goal_type: GoalType | str,
    ) -> WeightEntry:
        if not new_weight_kg > 0 or math.isinf(new_weight_kg):
            raise ValueError("weight must be positive")
        timestamp = as_datetime(new_date)
        goal = decode(GoalType, goal_type)
        old_day = entry.day
        updated = WeightEntry(
            id=entry.id, date=timestamp, weight_kg=new_weight_kg, note=new_note
        )
        try:
            with self.weights.transaction() as conn:
                self.weights.update(entry.id, timestamp, new_weight_kg, new_note, conn)
                self._sync_day(timestamp, new_weight_kg, goal, conn)
        except sqlite3.Error as e:
            self._report("update_weight", e)
            return entry
        if old_day != updated.day:
            self._repair_day(old_day)
        return updated

    def _sync_day(
        self,
        timestamp: datetime.datetime,
        weight_kg: float,
        goal: GoalType,
        conn: sqlite3.Connection,
    ) -> None:
        day = start_of_day(timestamp)
        if self.sync_mode == "latest_timestamp":
            latest = self.weights.fetch_for_day(day, conn=conn)
            weight_kg = latest[0].weight_kg
        log = self.logs.fetch_for_day(day, conn)
        if log is not None:
            log.weight_kg = weight_kg
            if log.goal_type is None:
                log.goal_type = goal
            self.logs.save(log, conn)
        else:
            self.logs.insert(DailyLog(date=day, weight_kg=weight_kg, goal_type=goal), conn)

    def _repair_day(self, day: datetime.date) -> None:
        try:
            with self.logs.transaction() as conn:
                remaining = self.weights.fetch_for_day(day, conn=conn)
                log = self.logs.fetch_for_day(day, conn)
                if log is None:
                    return
                weight = remaining[0].weight_kg if remaining else None
                self.logs.set_weight(day, weight, conn)
        except sqlite3.Error as e:
            self._report("repair_day", e)
