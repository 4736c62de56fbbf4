from __future__ import annotations
import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from db import (
    DailyLogRepository,
    SettingsRepository,
    WeightEntryRepository,
    WorkoutRepository,
)
from enums import EstimationMethod, GoalType, MuscleGroup, decode, decode_list
from models import DailyLog, WeightEntry, Workout, start_of_day

KCAL_PER_KG = 7700.0
TREND_DAYS = 30
HABIT_DAYS = 7
PROJECTION_DAYS = 60


def days_since_last_trained(
    muscle: MuscleGroup | str,
    workouts: Iterable[Workout],
    today: datetime.date | datetime.datetime,
) -> Optional[int]:
    """Return whole calendar days since ``muscle`` was last trained.

    ``None`` means the muscle does not appear in any workout.
    """
    target = decode(MuscleGroup, muscle)
    last: Optional[datetime.date] = None
    for workout in workouts:
        if target not in workout.muscle_groups:
            continue
        day = start_of_day(workout.date)
        if last is None or day > last:
            last = day
    if last is None:
        return None
    return (start_of_day(today) - last).days


class StatisticsService:
    """Compute recovery, body weight and calorie balance statistics."""

    CHANGE_PERIODS = (7, 30, 90)

    def __init__(
        self,
        workout_repo: WorkoutRepository,
        weight_repo: WeightEntryRepository | None = None,
        settings_repo: SettingsRepository | None = None,
        log_repo: DailyLogRepository | None = None,
    ) -> None:
        self.workouts = workout_repo
        self.weights = weight_repo
        self.settings = settings_repo
        self.logs = log_repo

    def tracked_muscles(self) -> List[MuscleGroup]:
        if self.settings is None:
            return list(MuscleGroup)
        return decode_list(MuscleGroup, self.settings.get_list("tracked_muscles"))

    def days_since_last_trained(
        self,
        muscle: MuscleGroup | str,
        today: datetime.date | None = None,
    ) -> Optional[int]:
        return days_since_last_trained(
            muscle,
            self.workouts.fetch_all_workouts(),
            today or datetime.date.today(),
        )

    def recovery_report(
        self, today: datetime.date | None = None
    ) -> Dict[str, Optional[int]]:
        """Days since each tracked muscle was trained, in tracking order."""
        today = today or datetime.date.today()
        history = self.workouts.fetch_all_workouts()
        return {
            m.value: days_since_last_trained(m, history, today)
            for m in self.tracked_muscles()
        }

    def weight_change_metrics(
        self,
        today: datetime.date | None = None,
        entries: List[WeightEntry] | None = None,
    ) -> List[dict]:
        """Weight change over 7, 30 and 90 days and over the whole history."""
        if entries is None:
            if self.weights is None:
                raise ValueError("weight repo not configured")
            entries = self.weights.fetch_history(descending=True)
        else:
            entries = sorted(entries, key=lambda e: e.date, reverse=True)
        if not entries:
            return []
        today = today or datetime.date.today()
        current = entries[0].weight_kg
        oldest = entries[-1]
        metrics: List[dict] = []
        for days in self.CHANGE_PERIODS:
            cutoff = today - datetime.timedelta(days=days)
            past = next((e for e in entries if e.day <= cutoff), oldest)
            metrics.append(
                {"period": f"{days} Days", "value": round(current - past.weight_kg, 2)}
            )
        metrics.append(
            {"period": "All Time", "value": round(current - oldest.weight_kg, 2)}
        )
        return metrics

    def _history(self, entries: Iterable[WeightEntry] | None) -> List[WeightEntry]:
        if entries is None:
            if self.weights is None:
                raise ValueError("weight repo not configured")
            return self.weights.fetch_history()
        return sorted(entries, key=lambda e: e.date)

    def _daily_logs(self, logs: Iterable[DailyLog] | None) -> List[DailyLog]:
        if logs is None:
            if self.logs is None:
                raise ValueError("log repo not configured")
            return self.logs.fetch_range()
        return list(logs)

    def _setting(self, key: str, default):
        if self.settings is None:
            return default
        if isinstance(default, bool):
            return self.settings.get_bool(key, default)
        if isinstance(default, int):
            return self.settings.get_int(key, default)
        if isinstance(default, float):
            return self.settings.get_float(key, default)
        return self.settings.get_text(key, default)

    def calorie_counting_enabled(self) -> bool:
        return self._setting("calorie_counting_enabled", True)

    def estimation_method(self) -> EstimationMethod:
        """The configured method, or the weight trend when calorie counting is off."""
        if not self.calorie_counting_enabled():
            return EstimationMethod.WEIGHT_TREND
        try:
            return decode(
                EstimationMethod,
                self._setting("estimation_method", EstimationMethod.WEIGHT_TREND.value),
            )
        except ValueError:
            return EstimationMethod.WEIGHT_TREND

    @staticmethod
    def _trend_window(
        history: List[WeightEntry], today: datetime.date
    ) -> Optional[Tuple[WeightEntry, WeightEntry, int]]:
        # first and last entry of the trailing window plus the days between them
        cutoff = today - datetime.timedelta(days=TREND_DAYS)
        recent = [e for e in history if e.day >= cutoff]
        if len(recent) < 2:
            return None
        first, last = recent[0], recent[-1]
        days = (last.day - first.day).days
        if days <= 0:
            return None
        return first, last, days

    def estimated_maintenance(
        self,
        today: datetime.date | None = None,
        entries: Iterable[WeightEntry] | None = None,
        logs: Iterable[DailyLog] | None = None,
    ) -> Optional[int]:
        """Maintenance calories implied by the 30 day weight trend.

        Average intake over the days of the trend, corrected by the energy of
        the weight gained or lost at 7700 kcal per kg. Days without logged
        food and the current day are left out.
        """
        today = today or datetime.date.today()
        window = self._trend_window(self._history(entries), today)
        if window is None:
            return None
        first, last, days = window
        eaten = [
            log.calories_consumed
            for log in self._daily_logs(logs)
            if first.day <= log.date <= last.day
            and log.date < today
            and log.calories_consumed > 0
        ]
        if not eaten:
            return None
        imbalance = (last.weight_kg - first.weight_kg) * KCAL_PER_KG / days
        return int(sum(eaten) / len(eaten) - imbalance)

    def kg_change_per_day(
        self,
        method: EstimationMethod | str,
        today: datetime.date | None = None,
        entries: Iterable[WeightEntry] | None = None,
        logs: Iterable[DailyLog] | None = None,
    ) -> Optional[float]:
        """Expected weight change per day, or None without enough data."""
        method = decode(EstimationMethod, method)
        today = today or datetime.date.today()
        if method is EstimationMethod.WEIGHT_TREND:
            window = self._trend_window(self._history(entries), today)
            if window is None:
                return None
            first, last, days = window
            return (last.weight_kg - first.weight_kg) / days
        maintenance = self._setting("maintenance_calories", 2500)
        if method is EstimationMethod.EATING_HABITS:
            since = today - datetime.timedelta(days=HABIT_DAYS)
            recent = [
                log.calories_consumed
                for log in self._daily_logs(logs)
                if since <= log.date < today
            ]
            if not recent:
                return None
            return (sum(recent) / len(recent) - maintenance) / KCAL_PER_KG
        return (self._setting("daily_calorie_goal", 2000) - maintenance) / KCAL_PER_KG

    def days_remaining(
        self,
        today: datetime.date | None = None,
        entries: Iterable[WeightEntry] | None = None,
        logs: Iterable[DailyLog] | None = None,
        method: EstimationMethod | str | None = None,
    ) -> Optional[int]:
        """Whole days until the target weight at the current rate.

        None when there is no weight yet, no rate, or the rate moves away
        from the target of a cutting or bulking goal.
        """
        history = self._history(entries)
        if not history:
            return None
        rate = self.kg_change_per_day(
            method or self.estimation_method(), today, history, logs
        )
        if not rate:
            return None
        goal = decode(GoalType, self._setting("goal_type", GoalType.CUTTING.value))
        if goal is GoalType.CUTTING and rate >= 0:
            return None
        if goal is GoalType.BULKING and rate <= 0:
            return None
        target = self._setting("target_weight", 70.0)
        days = (target - history[-1].weight_kg) / rate
        return int(days) if days > 0 else None

    def projections(
        self,
        today: datetime.date | None = None,
        entries: Iterable[WeightEntry] | None = None,
        logs: Iterable[DailyLog] | None = None,
        days: int = PROJECTION_DAYS,
    ) -> List[dict]:
        """Projected weight for today and each of the next ``days`` days.

        One series per estimation method that has a rate; only the weight
        trend while calorie counting is off.
        """
        today = today or datetime.date.today()
        history = self._history(entries)
        start = history[-1].weight_kg if history else 0.0
        if self.calorie_counting_enabled():
            methods = list(EstimationMethod)
            logs = self._daily_logs(logs)
        else:
            methods = [EstimationMethod.WEIGHT_TREND]
        points: List[dict] = []
        for method in methods:
            rate = self.kg_change_per_day(method, today, history, logs)
            if rate is None:
                continue
            for i in range(days + 1):
                points.append(
                    {
                        "date": today + datetime.timedelta(days=i),
                        "weight": round(start + rate * i, 2),
                        "method": method.value,
                    }
                )
        return points

    def projection_summary(self, today: datetime.date | None = None) -> dict:
        today = today or datetime.date.today()
        history = self._history(None)
        logs = self._daily_logs(None)
        method = self.estimation_method()
        maintenance = None
        if self.calorie_counting_enabled():
            maintenance = self.estimated_maintenance(today, history, logs)
        return {
            "method": method.value,
            "estimated_maintenance": maintenance,
            "days_remaining": self.days_remaining(today, history, logs, method),
            "projections": self.projections(today, history, logs),
        }
