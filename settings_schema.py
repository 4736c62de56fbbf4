from typing import Literal

from pydantic import BaseModel, ValidationError, field_validator

from enums import EstimationMethod, GoalType, MuscleGroup, UnitSystem, decode


class SettingsSchema(BaseModel):
    unit_system: str = UnitSystem.METRIC.value
    goal_type: str = GoalType.CUTTING.value
    daily_calorie_goal: int = 2000
    maintenance_calories: int = 2500
    maintenance_tolerance: float = 2.0
    target_weight: float = 70.0
    tracked_muscles: str = ",".join(m.value for m in MuscleGroup)
    calorie_counting_enabled: bool = True
    enable_calories_burned: bool = True
    dark_mode: bool = True
    weight_sync_mode: Literal["last_write", "latest_timestamp"] = "last_write"
    estimation_method: str = EstimationMethod.WEIGHT_TREND.value
    enum_encoding_version: int = 1

    @field_validator("unit_system")
    @classmethod
    def _unit_system(cls, value: str) -> str:
        return decode(UnitSystem, value).value

    @field_validator("goal_type")
    @classmethod
    def _goal_type(cls, value: str) -> str:
        return decode(GoalType, value).value

    @field_validator("estimation_method")
    @classmethod
    def _estimation_method(cls, value: str) -> str:
        return decode(EstimationMethod, value).value

    @field_validator("tracked_muscles")
    @classmethod
    def _tracked_muscles(cls, value: str) -> str:
        for label in value.split(","):
            if label.strip():
                decode(MuscleGroup, label.strip())
        return value


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
