"""
Record types shared by the repositories and services.

Repositories convert SQLite rows into these dataclasses; services operate on
them and hand them back to the repositories for persistence.
"""

from __future__ import annotations
import datetime
from dataclasses import dataclass, field
from typing import List, Optional

from enums import GoalType, MuscleGroup, WorkoutCategory


def start_of_day(value: datetime.date | datetime.datetime) -> datetime.date:
    """Return the calendar day a timestamp falls into."""
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value.date()
    return value


@dataclass
class WeightEntry:
    id: Optional[int]
    date: datetime.datetime
    weight_kg: float
    note: str = ""

    @property
    def day(self) -> datetime.date:
        return start_of_day(self.date)


@dataclass
class DailyLog:
    date: datetime.date
    weight_kg: Optional[float] = None
    calories_consumed: int = 0
    calories_burned: int = 0
    goal_type: Optional[GoalType] = None
    protein: Optional[int] = None
    carbs: Optional[int] = None
    fat: Optional[int] = None
    manual_calories: int = 0
    manual_protein: int = 0
    manual_carbs: int = 0
    manual_fat: int = 0
    note: str = ""

    @property
    def net_calories(self) -> int:
        return self.calories_consumed - self.calories_burned

    @property
    def is_overridden(self) -> bool:
        return any(
            (self.manual_calories, self.manual_protein, self.manual_carbs, self.manual_fat)
        )


@dataclass
class ExerciseEntry:
    """One set inside a workout or template."""

    name: str
    reps: Optional[int] = None
    weight_kg: Optional[float] = None
    duration_minutes: Optional[float] = None
    distance_km: Optional[float] = None
    is_cardio: bool = False
    note: str = ""
    id: Optional[int] = None

    def is_valid(self) -> bool:
        # strength sets need reps, cardio needs distance or duration
        if self.is_cardio:
            return (self.distance_km or 0) > 0 or (self.duration_minutes or 0) > 0
        return (self.reps or 0) > 0

    def copy(self) -> "ExerciseEntry":
        return ExerciseEntry(
            name=self.name,
            reps=self.reps,
            weight_kg=self.weight_kg,
            duration_minutes=self.duration_minutes,
            distance_km=self.distance_km,
            is_cardio=self.is_cardio,
            note=self.note,
        )


@dataclass
class Workout:
    id: Optional[int]
    date: datetime.date
    category: WorkoutCategory
    muscle_groups: List[MuscleGroup] = field(default_factory=list)
    note: str = ""
    exercises: List[ExerciseEntry] = field(default_factory=list)


@dataclass
class WorkoutTemplate:
    id: Optional[int]
    name: str
    category: WorkoutCategory
    muscle_groups: List[MuscleGroup] = field(default_factory=list)
    exercises: List[ExerciseEntry] = field(default_factory=list)


@dataclass
class ExerciseDefinition:
    id: Optional[int]
    name: str
    muscle_groups: List[MuscleGroup] = field(default_factory=list)
    is_cardio: bool = False


@dataclass
class GoalPeriod:
    id: Optional[int]
    start_date: datetime.datetime
    goal_type: GoalType
    start_weight: float
    target_weight: float
    daily_calorie_goal: int
    maintenance_calories: int
    end_date: Optional[datetime.datetime] = None

    @property
    def is_active(self) -> bool:
        return self.end_date is None
