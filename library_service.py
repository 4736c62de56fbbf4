from __future__ import annotations
import logging
import sqlite3
from typing import Callable, Dict, Iterable, List, Optional

from db import ExerciseDefinitionRepository
from enums import MuscleGroup, decode_list
from flag_store import SEEDED_FLAG, KeyringFlagStore
from models import ExerciseDefinition

logger = logging.getLogger(__name__)

C, B, L, S, A, CA, BI, T = (
    MuscleGroup.CHEST,
    MuscleGroup.BACK,
    MuscleGroup.LEGS,
    MuscleGroup.SHOULDERS,
    MuscleGroup.ABS,
    MuscleGroup.CARDIO,
    MuscleGroup.BICEPS,
    MuscleGroup.TRICEPS,
)

# (name, muscle groups, is_cardio)
DEFAULT_EXERCISES = [
    ("Barbell Bench Press", (C, T), False),
    ("Barbell Incline Bench Press", (C, T), False),
    ("Dumbbell Incline Bench Press", (C, T), False),
    ("Dumbbell Bench Press", (C, T), False),
    ("Dumbbell Fly", (C, T), False),
    ("Push Up", (C, T, S), False),
    ("Cable Fly", (C,), False),
    ("Dips", (C, T), False),
    ("Pull Up", (B, BI), False),
    ("Lat Pulldown", (B, BI), False),
    ("Barbell Row", (B, BI), False),
    ("Deadlift", (B, L), False),
    ("Face Pull", (B, S), False),
    ("Barbell Squat", (L,), False),
    ("Leg Press", (L,), False),
    ("Romanian Deadlift", (L, B), False),
    ("Walking Lunge", (L,), False),
    ("Leg Extension", (L,), False),
    ("Seated Leg Curl", (L,), False),
    ("Calf Raise", (L,), False),
    ("Overhead Press", (S, T), False),
    ("Lateral Raise", (S,), False),
    ("Dumbbell Shoulder Press", (S, T), False),
    ("Front Raise", (S,), False),
    ("Barbell Bicep Curl", (BI,), False),
    ("Hammer Curl", (BI,), False),
    ("Tricep Pushdown", (T,), False),
    ("Skullcrusher", (T,), False),
    ("Preacher Curl", (BI,), False),
    ("Plank", (A,), False),
    ("Crunch", (A,), False),
    ("Hanging Leg Raise", (A,), False),
    ("Russian Twist", (A,), False),
    ("Running", (CA,), True),
    ("Cycling", (CA,), True),
    ("Rowing", (CA, B), True),
    ("Jump Rope", (CA,), True),
    ("Swimming", (CA,), True),
]


def select_duplicates(
    definitions: Iterable[ExerciseDefinition],
) -> List[ExerciseDefinition]:
    """Return every definition that loses to a same-named keeper.

    The keeper is the first definition of its name that has muscle groups,
    then the first flagged as cardio, then simply the first one seen.
    """
    groups: Dict[str, List[ExerciseDefinition]] = {}
    for definition in definitions:
        groups.setdefault(definition.name, []).append(definition)
    losers: List[ExerciseDefinition] = []
    for members in groups.values():
        if len(members) < 2:
            continue
        keeper = min(members, key=lambda d: (not d.muscle_groups, not d.is_cardio))
        losers.extend(d for d in members if d is not keeper)
    return losers


class ExerciseLibraryService:
    """Exercise library maintenance: seeding, lookup and deduplication."""

    def __init__(
        self,
        definition_repo: ExerciseDefinitionRepository,
        flag_store: KeyringFlagStore | None = None,
        error_sink: Optional[Callable[[str, Exception], None]] = None,
    ) -> None:
        self.definitions = definition_repo
        self.flags = flag_store
        self.error_sink = error_sink

    def _report(self, operation: str, error: Exception) -> None:
        logger.exception("%s failed: %s", operation, error)
        if self.error_sink is not None:
            self.error_sink(operation, error)

    def all_definitions(self) -> List[ExerciseDefinition]:
        return self.definitions.fetch_definitions()

    def definition_for(self, name: str) -> ExerciseDefinition | None:
        """Look up the library entry an exercise name refers to.

        Workout history stores names rather than ids, so a missing entry is
        expected after a library record has been removed.
        """
        matches = self.definitions.fetch_by_name(name.strip())
        return matches[0] if matches else None

    def add_definition(
        self,
        name: str,
        muscle_groups: Iterable[MuscleGroup | str] = (),
        is_cardio: bool = False,
    ) -> int:
        if self.definition_for(name) is not None:
            raise ValueError("exercise already exists")
        return self.definitions.add(
            name, decode_list(MuscleGroup, muscle_groups), is_cardio
        )

    def update_definition(
        self,
        definition_id: int,
        name: str,
        muscle_groups: Iterable[MuscleGroup | str],
        is_cardio: bool,
    ) -> None:
        self.definitions.update(
            definition_id, name, decode_list(MuscleGroup, muscle_groups), is_cardio
        )

    def delete_definition(self, definition_id: int) -> None:
        self.definitions.fetch_detail(definition_id)
        self.definitions.delete(definition_id)

    def deduplicate(
        self, definitions: Iterable[ExerciseDefinition] | None = None
    ) -> List[int]:
        """Delete same-named duplicates and return the removed ids.

        Two passes running at the same time may both pick the same rows, so
        callers run this from a single writer.
        """
        try:
            if definitions is None:
                definitions = self.definitions.fetch_definitions()
            losers = select_duplicates(definitions)
            if not losers:
                return []
            with self.definitions.transaction() as conn:
                for definition in losers:
                    self.definitions.delete(definition.id, conn)
        except sqlite3.Error as e:
            self._report("deduplicate", e)
            return []
        removed = [d.id for d in losers]
        logger.info("Removed %d duplicate exercise definitions", len(removed))
        return removed

    def ensure_seeded(self) -> bool:
        """Insert the default library once per keychain.

        Returns True when rows were inserted.
        """
        if self.flags is not None and self.flags.has_flag(SEEDED_FLAG):
            logger.info("Default exercises already seeded, skipping")
            return False
        try:
            if self.definitions.count() > 0:
                logger.info("Library already has exercises, marking as seeded")
                self._mark_seeded()
                return False
            with self.definitions.transaction() as conn:
                for name, muscles, is_cardio in DEFAULT_EXERCISES:
                    self.definitions.add(name, muscles, is_cardio, conn)
        except sqlite3.Error as e:
            self._report("ensure_seeded", e)
            return False
        self._mark_seeded()
        logger.info("Seeded %d default exercises", len(DEFAULT_EXERCISES))
        return True

    def _mark_seeded(self) -> None:
        if self.flags is not None:
            self.flags.set_flag(SEEDED_FLAG)
