from __future__ import annotations
import logging
from enum import Enum
from typing import Iterable, List, Type, TypeVar

logger = logging.getLogger(__name__)

ENCODING_VERSION = 1

E = TypeVar("E", bound=Enum)


class UnitSystem(str, Enum):
    METRIC = "Metric"
    IMPERIAL = "Imperial"


class GoalType(str, Enum):
    CUTTING = "Cutting"
    BULKING = "Bulking"
    MAINTENANCE = "Maintenance"


class EstimationMethod(str, Enum):
    """How weight change per day is projected."""

    WEIGHT_TREND = "30-Day Weight Trend"
    EATING_HABITS = "Current Average Calorie Consumption"
    GOAL_ADHERENCE = "Perfect Calorie Target Adherence"


class MuscleGroup(str, Enum):
    CHEST = "Chest"
    BACK = "Back"
    LEGS = "Legs"
    SHOULDERS = "Shoulders"
    ABS = "Abs"
    CARDIO = "Cardio"
    BICEPS = "Biceps"
    TRICEPS = "Triceps"

    @property
    def workout_categories(self) -> List["WorkoutCategory"]:
        return [c for c in WorkoutCategory if self in c.muscle_groups]


class WorkoutCategory(str, Enum):
    PUSH = "Push"
    PULL = "Pull"
    UPPER = "Upper"
    LOWER = "Lower"
    FULL_BODY = "Full Body"
    ARMS = "Arms"
    LEGS = "Legs"
    CHEST = "Chest"
    BACK = "Back"
    SHOULDERS = "Shoulders"
    ABS = "Abs"
    CARDIO = "Cardio"

    @property
    def muscle_groups(self) -> List[MuscleGroup]:
        """Default muscle groups assigned to a new workout of this category."""
        return list(_CATEGORY_MUSCLES[self])


_CATEGORY_MUSCLES = {
    WorkoutCategory.PUSH: (MuscleGroup.CHEST, MuscleGroup.SHOULDERS, MuscleGroup.TRICEPS),
    WorkoutCategory.PULL: (MuscleGroup.BACK, MuscleGroup.BICEPS),
    WorkoutCategory.LEGS: (MuscleGroup.LEGS,),
    WorkoutCategory.LOWER: (MuscleGroup.LEGS,),
    WorkoutCategory.UPPER: (
        MuscleGroup.CHEST,
        MuscleGroup.BACK,
        MuscleGroup.SHOULDERS,
        MuscleGroup.BICEPS,
        MuscleGroup.TRICEPS,
    ),
    WorkoutCategory.FULL_BODY: tuple(MuscleGroup),
    WorkoutCategory.ARMS: (MuscleGroup.BICEPS, MuscleGroup.TRICEPS),
    WorkoutCategory.CHEST: (MuscleGroup.CHEST,),
    WorkoutCategory.BACK: (MuscleGroup.BACK,),
    WorkoutCategory.SHOULDERS: (MuscleGroup.SHOULDERS,),
    WorkoutCategory.ABS: (MuscleGroup.ABS,),
    WorkoutCategory.CARDIO: (MuscleGroup.CARDIO,),
}


def _key(raw: str) -> str:
    return "".join(ch for ch in raw.lower() if ch.isalnum())


def encode(member: Enum) -> str:
    """Return the stored label for ``member``."""
    return member.value


def decode(enum_cls: Type[E], raw: "str | E") -> E:
    """Parse a stored label into ``enum_cls``.

    Matching ignores case, spaces and underscores so labels written by
    earlier versions (``FullBody``, ``full_body``) still load.
    """
    if isinstance(raw, enum_cls):
        return raw
    if not isinstance(raw, str):
        raise ValueError(f"invalid {enum_cls.__name__}: {raw!r}")
    wanted = _key(raw)
    for member in enum_cls:
        if _key(member.value) == wanted or _key(member.name) == wanted:
            return member
    raise ValueError(f"invalid {enum_cls.__name__}: {raw!r}")


def decode_list(enum_cls: Type[E], raw: Iterable[str]) -> List[E]:
    """Decode labels, dropping duplicates and unknown values."""
    result: List[E] = []
    for item in raw:
        if not item:
            continue
        try:
            member = decode(enum_cls, item)
        except ValueError:
            logger.warning("Skipping unknown %s label %r", enum_cls.__name__, item)
            continue
        if member not in result:
            result.append(member)
    return result


def join_labels(members: Iterable[Enum]) -> str:
    return "|".join(encode(m) for m in members)


def split_labels(enum_cls: Type[E], value: str | None) -> List[E]:
    if not value:
        return []
    return decode_list(enum_cls, value.split("|"))
