import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Response, Body
from pydantic import BaseModel

from config import APP_VERSION
from db import (
    WeightEntryRepository,
    AsyncWeightEntryRepository,
    DailyLogRepository,
    GoalPeriodRepository,
    WorkoutRepository,
    AsyncWorkoutRepository,
    TemplateWorkoutRepository,
    ExerciseDefinitionRepository,
    SettingsRepository,
)
from enums import (
    EstimationMethod,
    GoalType,
    MuscleGroup,
    UnitSystem,
    WorkoutCategory,
    decode,
)
from flag_store import KeyringFlagStore, ONBOARDING_FLAG
from library_service import ExerciseLibraryService
from log_service import DailyLogService
from models import DailyLog, ExerciseEntry, WeightEntry, Workout
from planner_service import PlannerService
from stats_service import StatisticsService, days_since_last_trained
from tools import WeightConverter
from weight_service import WeightSyncService, as_datetime


class ExerciseIn(BaseModel):
    name: str
    reps: Optional[int] = None
    weight: Optional[float] = None
    duration: Optional[float] = None
    distance: Optional[float] = None
    is_cardio: bool = False
    note: str = ""

    def to_entry(self) -> ExerciseEntry:
        return ExerciseEntry(
            name=self.name,
            reps=self.reps,
            weight_kg=self.weight,
            duration_minutes=self.duration,
            distance_km=self.distance,
            is_cardio=self.is_cardio,
            note=self.note,
        )


class WorkoutIn(BaseModel):
    date: Optional[datetime.date] = None
    category: str
    muscle_groups: Optional[List[str]] = None
    note: str = ""
    exercises: List[ExerciseIn] = []


class TemplateIn(BaseModel):
    name: str
    category: str
    muscle_groups: List[str] = []
    exercises: List[ExerciseIn] = []


def _weight_dict(entry: WeightEntry) -> dict:
    return {
        "id": entry.id,
        "date": entry.date.isoformat(),
        "weight": entry.weight_kg,
        "note": entry.note,
    }


def _log_dict(log: DailyLog) -> dict:
    return {
        "date": log.date.isoformat(),
        "weight": log.weight_kg,
        "calories_consumed": log.calories_consumed,
        "calories_burned": log.calories_burned,
        "net_calories": log.net_calories,
        "goal_type": None if log.goal_type is None else log.goal_type.value,
        "protein": log.protein,
        "carbs": log.carbs,
        "fat": log.fat,
        "is_overridden": log.is_overridden,
        "note": log.note,
    }


def _exercise_dict(entry: ExerciseEntry) -> dict:
    return {
        "id": entry.id,
        "name": entry.name,
        "reps": entry.reps,
        "weight": entry.weight_kg,
        "duration": entry.duration_minutes,
        "distance": entry.distance_km,
        "is_cardio": entry.is_cardio,
        "note": entry.note,
    }


def _workout_dict(workout: Workout, with_exercises: bool = False) -> dict:
    data = {
        "id": workout.id,
        "date": workout.date.isoformat(),
        "category": workout.category.value,
        "muscle_groups": [m.value for m in workout.muscle_groups],
        "note": workout.note,
    }
    if with_exercises:
        data["exercises"] = [_exercise_dict(e) for e in workout.exercises]
    return data


def _parse_date(value: Optional[str]) -> datetime.date:
    try:
        return datetime.date.today() if value is None else datetime.date.fromisoformat(value)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail="date must be in YYYY-MM-DD format",
        )


class TrackerAPI:
    """Provides REST endpoints for weight, calorie and workout tracking."""

    def __init__(
        self,
        db_path: str = "tracker.db",
        yaml_path: str = "settings.yaml",
        *,
        flag_store: Optional[KeyringFlagStore] = None,
        error_sink=None,
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        self.weights = WeightEntryRepository(db_path)
        self.async_weights = AsyncWeightEntryRepository(db_path)
        self.logs = DailyLogRepository(db_path)
        self.goal_periods = GoalPeriodRepository(db_path)
        self.workouts = WorkoutRepository(db_path)
        self.async_workouts = AsyncWorkoutRepository(db_path)
        self.templates = TemplateWorkoutRepository(db_path)
        self.definitions = ExerciseDefinitionRepository(db_path)
        self.flags = flag_store or KeyringFlagStore()
        self.error_sink = error_sink
        self.weight_sync = WeightSyncService(
            self.weights,
            self.logs,
            self.settings.get_text("weight_sync_mode", "last_write"),
            error_sink=error_sink,
        )
        self.daily_logs = DailyLogService(
            self.logs, self.goal_periods, error_sink=error_sink, weight_repo=self.weights
        )
        self.library = ExerciseLibraryService(
            self.definitions, self.flags, error_sink=error_sink
        )
        self.planner = PlannerService(self.workouts, self.templates)
        self.statistics = StatisticsService(
            self.workouts, self.weights, self.settings, self.logs
        )
        self.app = FastAPI(
            title="RepScale API",
            description="REST API for weight, calorie and workout tracking",
            version=APP_VERSION,
        )
        self._setup_routes()

    def _goal_type(self, goal_type: Optional[str]) -> GoalType:
        try:
            return decode(
                GoalType, goal_type or self.settings.get_text("goal_type", "Cutting")
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    def _unit_system(self) -> str:
        return self.settings.get_text("unit_system", "Metric")

    def _setup_routes(self) -> None:
        @self.app.get("/health")
        def health():
            try:
                self.weights.count()
                return {"status": "ok"}
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @self.app.post("/weights")
        def log_weight(
            weight: float,
            date: str = None,
            note: str = "",
            goal_type: str = None,
        ):
            try:
                timestamp = datetime.datetime.now() if date is None else as_datetime(date)
            except ValueError:
                raise HTTPException(status_code=400, detail="invalid date")
            weight_kg = WeightConverter.to_stored(weight, self._unit_system())
            try:
                entry = self.weight_sync.record_weight(
                    timestamp, weight_kg, self._goal_type(goal_type), note
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            if entry is None:
                raise HTTPException(status_code=500, detail="weight not saved")
            return {"id": entry.id}

        @self.app.get("/weights")
        def list_weights(start_date: str = None, end_date: str = None):
            start = _parse_date(start_date) if start_date else None
            end = _parse_date(end_date) if end_date else None
            return [_weight_dict(e) for e in self.weights.fetch_history(start, end)]

        @self.app.get("/weights/history")
        async def weight_history(start_date: str = None, end_date: str = None):
            start = _parse_date(start_date) if start_date else None
            end = _parse_date(end_date) if end_date else None
            rows = await self.async_weights.fetch_history(start, end)
            return [_weight_dict(e) for e in rows]

        @self.app.get("/weights/export_csv")
        def export_weights_csv():
            lines = ["Date,Weight"]
            for entry in self.weights.fetch_history():
                lines.append(f"{entry.date.isoformat()},{entry.weight_kg}")
            return Response(
                content="\n".join(lines),
                media_type="text/csv",
                headers={"Content-Disposition": "attachment; filename=weights.csv"},
            )

        @self.app.put("/weights/{entry_id}")
        def update_weight(
            entry_id: int,
            weight: float,
            date: str,
            note: str = "",
            goal_type: str = None,
        ):
            try:
                entry = self.weights.fetch(entry_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            try:
                self.weight_sync.update_weight(
                    entry,
                    as_datetime(date),
                    WeightConverter.to_stored(weight, self._unit_system()),
                    note,
                    self._goal_type(goal_type),
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"status": "updated"}

        @self.app.delete("/weights/{entry_id}")
        def delete_weight(entry_id: int):
            try:
                entry = self.weights.fetch(entry_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            self.weight_sync.remove_weight(entry)
            return {"status": "deleted"}

        @self.app.get("/logs")
        def list_logs(start_date: str = None, end_date: str = None):
            start = _parse_date(start_date) if start_date else None
            end = _parse_date(end_date) if end_date else None
            return [_log_dict(log) for log in self.logs.fetch_range(start, end)]

        @self.app.get("/logs/{date}")
        def get_log(date: str):
            log = self.logs.fetch_for_day(_parse_date(date))
            if log is None:
                raise HTTPException(status_code=404, detail="log not found")
            return _log_dict(log)

        @self.app.post("/logs/{date}/manual")
        def add_manual_entry(
            date: str,
            calories: int = 0,
            protein: int = 0,
            carbs: int = 0,
            fat: int = 0,
        ):
            log = self.daily_logs.add_manual_entry(
                _parse_date(date),
                calories,
                protein,
                carbs,
                fat,
                goal_type=self._goal_type(None),
            )
            if log is None:
                raise HTTPException(status_code=500, detail="log not saved")
            return _log_dict(log)

        @self.app.put("/logs/{date}/totals")
        def sync_totals(
            date: str,
            consumed: float = 0,
            burned: float = 0,
            protein: float = 0,
            carbs: float = 0,
            fat: float = 0,
        ):
            log = self.daily_logs.sync_external_totals(
                _parse_date(date),
                consumed,
                burned,
                protein,
                carbs,
                fat,
                include_burned=self.settings.get_bool("enable_calories_burned", True),
                goal_type=self._goal_type(None),
            )
            if log is None:
                raise HTTPException(status_code=500, detail="log not saved")
            return _log_dict(log)

        @self.app.put("/logs/{date}/note")
        def set_log_note(date: str, note: str = Body(..., embed=True)):
            log = self.daily_logs.set_note(_parse_date(date), note)
            if log is None:
                raise HTTPException(status_code=500, detail="log not saved")
            return _log_dict(log)

        @self.app.post("/goal_periods")
        def start_goal_period(
            goal_type: str,
            start_weight: float,
            target_weight: float,
            daily_calorie_goal: int,
            maintenance_calories: int,
        ):
            goal = self._goal_type(goal_type)
            pid = self.daily_logs.start_goal_period(
                goal,
                start_weight,
                target_weight,
                daily_calorie_goal,
                maintenance_calories,
            )
            if pid is None:
                raise HTTPException(status_code=500, detail="goal period not saved")
            self.settings.set_text("goal_type", goal.value)
            self.settings.set_float("target_weight", target_weight)
            self.settings.set_int("daily_calorie_goal", daily_calorie_goal)
            self.settings.set_int("maintenance_calories", maintenance_calories)
            return {"id": pid}

        @self.app.get("/goal_periods")
        def list_goal_periods():
            return [
                {
                    "id": p.id,
                    "start_date": p.start_date.isoformat(),
                    "end_date": None if p.end_date is None else p.end_date.isoformat(),
                    "goal_type": p.goal_type.value,
                    "start_weight": p.start_weight,
                    "target_weight": p.target_weight,
                    "daily_calorie_goal": p.daily_calorie_goal,
                    "maintenance_calories": p.maintenance_calories,
                    "active": p.is_active,
                }
                for p in self.goal_periods.fetch_periods()
            ]

        @self.app.get("/goal_periods/stats")
        def goal_period_stats(today: str = None):
            return self.daily_logs.goal_period_stats(_parse_date(today))

        @self.app.post("/goal_periods/deduplicate")
        def deduplicate_goal_periods():
            return {"removed": self.daily_logs.deduplicate_goal_periods()}

        @self.app.post("/workouts")
        def save_workout(payload: WorkoutIn):
            try:
                wid = self.planner.save_workout(
                    payload.date or datetime.date.today(),
                    payload.category,
                    [e.to_entry() for e in payload.exercises],
                    payload.muscle_groups,
                    payload.note,
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": wid}

        @self.app.get("/workouts")
        def list_workouts(start_date: str = None, end_date: str = None):
            start = _parse_date(start_date) if start_date else None
            end = _parse_date(end_date) if end_date else None
            return [
                _workout_dict(w) for w in self.workouts.fetch_all_workouts(start, end)
            ]

        @self.app.get("/workouts/{workout_id}")
        def get_workout(workout_id: int):
            try:
                return _workout_dict(self.workouts.fetch_detail(workout_id), True)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @self.app.put("/workouts/{workout_id}")
        def replace_workout(workout_id: int, payload: WorkoutIn):
            try:
                self.workouts.fetch_detail(workout_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            try:
                wid = self.planner.save_workout(
                    payload.date or datetime.date.today(),
                    payload.category,
                    [e.to_entry() for e in payload.exercises],
                    payload.muscle_groups,
                    payload.note,
                    workout_id=workout_id,
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": wid}

        @self.app.put("/workouts/{workout_id}/muscles")
        def set_workout_muscles(workout_id: int, muscles: str):
            try:
                groups = [decode(MuscleGroup, m) for m in muscles.split("|") if m]
                self.workouts.set_muscle_groups(workout_id, groups)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"status": "updated"}

        @self.app.delete("/workouts/{workout_id}")
        def delete_workout(workout_id: int):
            try:
                self.workouts.delete(workout_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        @self.app.get("/workouts/{workout_id}/exercises")
        def list_workout_exercises(workout_id: int):
            return [
                _exercise_dict(e)
                for e in self.workouts.exercises.fetch_for_workout(workout_id)
            ]

        @self.app.post("/workouts/{workout_id}/copy_to_template")
        def copy_to_template(workout_id: int, name: str = None):
            try:
                tid = self.planner.copy_workout_to_template(workout_id, name)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"id": tid}

        @self.app.get("/categories")
        def list_categories():
            return {c.value: [m.value for m in c.muscle_groups] for c in WorkoutCategory}

        @self.app.post("/templates")
        def create_template(payload: TemplateIn):
            try:
                tid = self.planner.save_as_template(
                    payload.name,
                    payload.category,
                    payload.muscle_groups,
                    [e.to_entry() for e in payload.exercises],
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": tid}

        @self.app.get("/templates")
        def list_templates():
            return [
                {
                    "id": t.id,
                    "name": t.name,
                    "category": t.category.value,
                    "muscle_groups": [m.value for m in t.muscle_groups],
                }
                for t in self.templates.fetch_templates()
            ]

        @self.app.get("/templates/{template_id}")
        def get_template(template_id: int):
            try:
                t = self.templates.fetch_detail(template_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {
                "id": t.id,
                "name": t.name,
                "category": t.category.value,
                "muscle_groups": [m.value for m in t.muscle_groups],
                "exercises": [_exercise_dict(e) for e in t.exercises],
            }

        @self.app.post("/templates/{template_id}/start")
        def start_from_template(template_id: int, date: str = None):
            try:
                wid = self.planner.create_workout_from_template(
                    template_id, _parse_date(date)
                )
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"id": wid}

        @self.app.delete("/templates/{template_id}")
        def delete_template(template_id: int):
            try:
                self.templates.delete(template_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        @self.app.get("/library")
        def list_library():
            return [
                {
                    "id": d.id,
                    "name": d.name,
                    "muscle_groups": [m.value for m in d.muscle_groups],
                    "is_cardio": d.is_cardio,
                }
                for d in self.library.all_definitions()
            ]

        @self.app.post("/library")
        def add_library_exercise(name: str, muscles: str = "", is_cardio: bool = False):
            try:
                did = self.library.add_definition(
                    name, [m for m in muscles.split("|") if m], is_cardio
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": did}

        @self.app.put("/library/{definition_id}")
        def update_library_exercise(
            definition_id: int, name: str, muscles: str = "", is_cardio: bool = False
        ):
            try:
                self.library.update_definition(
                    definition_id, name, [m for m in muscles.split("|") if m], is_cardio
                )
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "updated"}

        @self.app.delete("/library/{definition_id}")
        def delete_library_exercise(definition_id: int):
            try:
                self.library.delete_definition(definition_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        @self.app.post("/library/deduplicate")
        def deduplicate_library():
            return {"removed": self.library.deduplicate()}

        @self.app.post("/library/seed")
        def seed_library():
            return {"seeded": self.library.ensure_seeded()}

        @self.app.get("/recovery")
        def recovery(today: str = None):
            return self.statistics.recovery_report(_parse_date(today))

        @self.app.get("/recovery/async")
        async def recovery_async(muscle: str, today: str = None):
            try:
                target = decode(MuscleGroup, muscle)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            history = await self.async_workouts.fetch_all_workouts()
            return {
                "muscle": target.value,
                "days": days_since_last_trained(target, history, _parse_date(today)),
            }

        @self.app.get("/recovery/{muscle}")
        def recovery_for_muscle(muscle: str, today: str = None):
            try:
                days = self.statistics.days_since_last_trained(muscle, _parse_date(today))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"muscle": decode(MuscleGroup, muscle).value, "days": days}

        @self.app.get("/stats/weight_change")
        def weight_change(today: str = None):
            return self.statistics.weight_change_metrics(_parse_date(today))

        @self.app.get("/stats/projection")
        def projection(today: str = None):
            return self.statistics.projection_summary(_parse_date(today))

        @self.app.get("/settings")
        def get_settings():
            return self.settings.all_settings()

        @self.app.post("/settings/general")
        def update_settings(
            unit_system: str = None,
            daily_calorie_goal: int = None,
            maintenance_calories: int = None,
            target_weight: float = None,
            tracked_muscles: str = None,
            enable_calories_burned: bool = None,
            weight_sync_mode: str = None,
            estimation_method: str = None,
            calorie_counting_enabled: bool = None,
        ):
            try:
                if unit_system is not None:
                    self.settings.set_text("unit_system", decode(UnitSystem, unit_system).value)
                if tracked_muscles is not None:
                    muscles = [decode(MuscleGroup, m.strip()) for m in tracked_muscles.split(",") if m.strip()]
                    self.settings.set_list("tracked_muscles", [m.value for m in muscles])
                if weight_sync_mode is not None:
                    if weight_sync_mode not in ("last_write", "latest_timestamp"):
                        raise ValueError("invalid weight_sync_mode")
                    self.settings.set_text("weight_sync_mode", weight_sync_mode)
                    self.weight_sync.sync_mode = weight_sync_mode
                if estimation_method is not None:
                    self.settings.set_text(
                        "estimation_method", decode(EstimationMethod, estimation_method).value
                    )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            if daily_calorie_goal is not None:
                self.settings.set_int("daily_calorie_goal", daily_calorie_goal)
            if maintenance_calories is not None:
                self.settings.set_int("maintenance_calories", maintenance_calories)
            if target_weight is not None:
                self.settings.set_float("target_weight", target_weight)
            if enable_calories_burned is not None:
                self.settings.set_bool("enable_calories_burned", enable_calories_burned)
            if calorie_counting_enabled is not None:
                self.settings.set_bool("calorie_counting_enabled", calorie_counting_enabled)
            return {"status": "updated"}

        @self.app.get("/onboarding")
        def onboarding_status():
            return {"complete": self.flags.has_flag(ONBOARDING_FLAG)}

        @self.app.post("/onboarding/complete")
        def complete_onboarding():
            self.flags.set_flag(ONBOARDING_FLAG)
            return {"complete": True}


api = TrackerAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
