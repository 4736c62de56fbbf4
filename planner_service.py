from __future__ import annotations
import datetime
from typing import Iterable, Optional

from db import (
    WorkoutRepository,
    TemplateWorkoutRepository,
)
from enums import MuscleGroup, WorkoutCategory, decode, decode_list
from models import ExerciseEntry


class PlannerService:
    """Saves workouts and converts between workouts and templates."""

    def __init__(
        self,
        workout_repo: WorkoutRepository,
        template_workout_repo: TemplateWorkoutRepository | None = None,
    ) -> None:
        self.workouts = workout_repo
        self.exercises = workout_repo.exercises
        self.templates = template_workout_repo or TemplateWorkoutRepository(
            workout_repo._db_path
        )
        self.template_exercises = self.templates.exercises

    def save_workout(
        self,
        date: datetime.date,
        category: WorkoutCategory | str,
        exercises: Iterable[ExerciseEntry],
        muscle_groups: Optional[Iterable[MuscleGroup | str]] = None,
        note: str = "",
        workout_id: int | None = None,
    ) -> int | None:
        """Create or replace a workout, keeping only exercises with data.

        Returns None without touching the store when no exercise is valid.
        """
        valid = [e for e in exercises if e.is_valid()]
        if not valid:
            return None
        cat = decode(WorkoutCategory, category)
        muscles = (
            cat.muscle_groups
            if muscle_groups is None
            else decode_list(MuscleGroup, muscle_groups)
        )
        if workout_id is not None:
            self.workouts.fetch_detail(workout_id)
        with self.workouts.transaction() as conn:
            if workout_id is None:
                workout_id = self.workouts.create(date, cat, muscles, note, conn)
            else:
                self.workouts.update(workout_id, date, cat, muscles, note, conn)
            self.exercises.replace_all(workout_id, valid, conn)
        return workout_id

    def save_as_template(
        self,
        name: str,
        category: WorkoutCategory | str,
        muscle_groups: Iterable[MuscleGroup | str],
        exercises: Iterable[ExerciseEntry],
    ) -> int:
        name = name.strip()
        if not name:
            raise ValueError("template name required")
        cat = decode(WorkoutCategory, category)
        with self.templates.transaction() as conn:
            template_id = self.templates.create(
                name, cat, decode_list(MuscleGroup, muscle_groups), conn
            )
            for entry in exercises:
                self.template_exercises.add(template_id, entry.copy(), conn)
        return template_id

    def create_workout_from_template(
        self, template_id: int, date: datetime.date, note: str = ""
    ) -> int:
        template = self.templates.fetch_detail(template_id)
        with self.workouts.transaction() as conn:
            workout_id = self.workouts.create(
                date, template.category, template.muscle_groups, note, conn
            )
            for entry in template.exercises:
                self.exercises.add(workout_id, entry.copy(), conn)
        return workout_id

    def copy_workout_to_template(
        self, workout_id: int, name: str | None = None
    ) -> int:
        """Create a template from an existing workout."""
        workout = self.workouts.fetch_detail(workout_id)
        return self.save_as_template(
            name or f"{workout.category.value} {workout.date.isoformat()}",
            workout.category,
            workout.muscle_groups,
            workout.exercises,
        )

