import os
import sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from enums import (
    GoalType,
    MuscleGroup,
    UnitSystem,
    WorkoutCategory,
    decode,
    decode_list,
    encode,
    join_labels,
    split_labels,
)


def test_encode_uses_display_label():
    assert encode(WorkoutCategory.FULL_BODY) == "Full Body"
    assert encode(GoalType.BULKING) == "Bulking"


@pytest.mark.parametrize("raw", ["Full Body", "FullBody", "full_body", "FULL_BODY", " full body "])
def test_decode_accepts_legacy_spellings(raw):
    assert decode(WorkoutCategory, raw) is WorkoutCategory.FULL_BODY


def test_decode_rejects_unknown():
    with pytest.raises(ValueError):
        decode(MuscleGroup, "Forearms")
    with pytest.raises(ValueError):
        decode(UnitSystem, None)


def test_decode_list_skips_unknown(caplog):
    with caplog.at_level("WARNING"):
        result = decode_list(MuscleGroup, ["Chest", "", "Forearms", "chest", "Back"])
    assert result == [MuscleGroup.CHEST, MuscleGroup.BACK]
    assert "Forearms" in caplog.text


def test_label_join_and_split():
    stored = join_labels([MuscleGroup.BICEPS, MuscleGroup.TRICEPS])
    assert stored == "Biceps|Triceps"
    assert split_labels(MuscleGroup, stored) == [MuscleGroup.BICEPS, MuscleGroup.TRICEPS]
    assert split_labels(MuscleGroup, "") == []
    assert split_labels(MuscleGroup, None) == []


def test_category_defaults():
    assert WorkoutCategory.PULL.muscle_groups == [MuscleGroup.BACK, MuscleGroup.BICEPS]
    assert WorkoutCategory.FULL_BODY.muscle_groups == list(MuscleGroup)
    assert WorkoutCategory.CARDIO.muscle_groups == [MuscleGroup.CARDIO]
    assert WorkoutCategory.PUSH in MuscleGroup.TRICEPS.workout_categories
