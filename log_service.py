from __future__ import annotations
import datetime
import logging
import sqlite3
from typing import Callable, Dict, List, Optional

from db import DailyLogRepository, GoalPeriodRepository, WeightEntryRepository
from enums import GoalType, decode
from models import DailyLog, GoalPeriod, start_of_day

logger = logging.getLogger(__name__)


class DailyLogService:
    """Calorie and macro bookkeeping on the per-day logs, plus goal periods."""

    def __init__(
        self,
        log_repo: DailyLogRepository,
        goal_repo: GoalPeriodRepository | None = None,
        error_sink: Optional[Callable[[str, Exception], None]] = None,
        weight_repo: WeightEntryRepository | None = None,
    ) -> None:
        self.logs = log_repo
        self.goals = goal_repo
        self.error_sink = error_sink
        self.weights = weight_repo

    def _report(self, operation: str, error: Exception) -> None:
        logger.exception("%s failed: %s", operation, error)
        if self.error_sink is not None:
            self.error_sink(operation, error)

    def _update(
        self,
        operation: str,
        date: datetime.date,
        goal_type: GoalType | str | None,
        update: Callable[[DailyLog], None],
    ) -> DailyLog | None:
        # read the row inside the write transaction so a second log for the
        # day is never created
        day = start_of_day(date)
        goal = None if goal_type is None else decode(GoalType, goal_type)
        try:
            with self.logs.transaction() as conn:
                log = self.logs.fetch_for_day(day, conn)
                if log is None:
                    log = DailyLog(date=day, goal_type=goal)
                    update(log)
                    self.logs.insert(log, conn)
                else:
                    update(log)
                    self.logs.save(log, conn)
        except sqlite3.Error as e:
            self._report(operation, e)
            return None
        return log

    def log_for(
        self, date: datetime.date, goal_type: GoalType | str | None = None
    ) -> DailyLog | None:
        existing = self.logs.fetch_for_day(start_of_day(date))
        if existing is not None:
            return existing
        return self._update("log_for", date, goal_type, lambda log: None)

    def add_manual_entry(
        self,
        date: datetime.date,
        calories: int = 0,
        protein: int = 0,
        carbs: int = 0,
        fat: int = 0,
        goal_type: GoalType | str | None = None,
    ) -> DailyLog | None:
        """Add manually entered food to the day on top of any synced totals."""

        def apply(log: DailyLog) -> None:
            log.manual_calories += calories
            log.manual_protein += protein
            log.manual_carbs += carbs
            log.manual_fat += fat
            log.calories_consumed += calories
            if protein:
                log.protein = (log.protein or 0) + protein
            if carbs:
                log.carbs = (log.carbs or 0) + carbs
            if fat:
                log.fat = (log.fat or 0) + fat

        return self._update("add_manual_entry", date, goal_type, apply)

    def sync_external_totals(
        self,
        date: datetime.date,
        consumed: float = 0,
        burned: float = 0,
        protein: float = 0,
        carbs: float = 0,
        fat: float = 0,
        include_burned: bool = True,
        goal_type: GoalType | str | None = None,
    ) -> DailyLog | None:
        """Store day totals reported by an external health source.

        Consumed values and macros are combined with the manual overrides;
        zero readings leave the stored value untouched.
        """

        def apply(log: DailyLog) -> None:
            if consumed > 0:
                log.calories_consumed = int(consumed) + log.manual_calories
            if include_burned:
                log.calories_burned = int(burned)
            if protein > 0:
                log.protein = int(protein) + log.manual_protein
            if carbs > 0:
                log.carbs = int(carbs) + log.manual_carbs
            if fat > 0:
                log.fat = int(fat) + log.manual_fat

        return self._update("sync_external_totals", date, goal_type, apply)

    def set_note(self, date: datetime.date, note: str) -> DailyLog | None:
        def apply(log: DailyLog) -> None:
            log.note = note

        return self._update("set_note", date, None, apply)

    def _goal_repo(self) -> GoalPeriodRepository:
        if self.goals is None:
            raise ValueError("goal repo not configured")
        return self.goals

    def start_goal_period(
        self,
        goal_type: GoalType | str,
        start_weight: float,
        target_weight: float,
        daily_calorie_goal: int,
        maintenance_calories: int,
        now: datetime.datetime | None = None,
    ) -> int | None:
        """Close every active goal period and open a new one."""
        goals = self._goal_repo()
        now = now or datetime.datetime.now()
        period = GoalPeriod(
            id=None,
            start_date=now,
            goal_type=decode(GoalType, goal_type),
            start_weight=start_weight,
            target_weight=target_weight,
            daily_calorie_goal=daily_calorie_goal,
            maintenance_calories=maintenance_calories,
        )
        try:
            with goals.transaction() as conn:
                goals.close_active(now, conn)
                return goals.create(period, conn)
        except sqlite3.Error as e:
            self._report("start_goal_period", e)
            return None

    def cleaned_goal_periods(
        self, first_weight: datetime.datetime | None = None
    ) -> List[GoalPeriod]:
        """Goal periods that count toward the per-goal totals, newest first.

        Only the most recent active period is kept. Closed periods ending on
        or before the day of the first weight entry are leftovers from
        onboarding and are dropped, as are periods that start and end on the
        same day.
        """
        goals = self._goal_repo()
        if first_weight is None and self.weights is not None:
            earliest = self.weights.fetch_earliest()
            first_weight = None if earliest is None else earliest.date
        first_day = None if first_weight is None else start_of_day(first_weight)
        kept: List[GoalPeriod] = []
        has_active = False
        for period in goals.fetch_periods():
            if period.end_date is None:
                if has_active:
                    continue
                has_active = True
                kept.append(period)
                continue
            end_day = start_of_day(period.end_date)
            if first_day is not None and end_day <= first_day:
                continue
            if start_of_day(period.start_date) == end_day:
                continue
            kept.append(period)
        return kept

    def goal_period_stats(
        self,
        today: datetime.date | None = None,
        first_weight: datetime.datetime | None = None,
    ) -> Dict[str, int]:
        """Days spent under each goal type; types without days are left out.

        Every counted period contributes at least one day.
        """
        today = start_of_day(today or datetime.date.today())
        counts = {g.value: 0 for g in GoalType}
        for period in self.cleaned_goal_periods(first_weight):
            end = today if period.end_date is None else start_of_day(period.end_date)
            days = (end - start_of_day(period.start_date)).days
            counts[period.goal_type.value] += max(1, days)
        return {goal: days for goal, days in counts.items() if days > 0}

    def deduplicate_goal_periods(self) -> List[int]:
        """Keep one goal period per start day and return the removed ids.

        The active period of a day wins; otherwise the first one listed,
        which is the latest started.
        """
        goals = self._goal_repo()
        try:
            by_day: Dict[datetime.date, List[GoalPeriod]] = {}
            for period in goals.fetch_periods():
                by_day.setdefault(start_of_day(period.start_date), []).append(period)
            losers: List[GoalPeriod] = []
            for group in by_day.values():
                keeper = next((p for p in group if p.is_active), group[0])
                losers.extend(p for p in group if p is not keeper)
            if not losers:
                return []
            with goals.transaction() as conn:
                for period in losers:
                    goals.delete(period.id, conn)
        except sqlite3.Error as e:
            self._report("deduplicate_goal_periods", e)
            return []
        removed = [p.id for p in losers]
        logger.info("Removed %d duplicate goal periods", len(removed))
        return removed
