import os
import sys
import datetime
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    AsyncBaseRepository,
    AsyncWeightEntryRepository,
    AsyncWorkoutRepository,
    WeightEntryRepository,
    WorkoutRepository,
)
from enums import MuscleGroup, WorkoutCategory

class NumberRepository(AsyncBaseRepository):
    async def init_db(self) -> None:
        async with self._async_connection() as conn:
            await conn.execute("CREATE TABLE IF NOT EXISTS numbers (val INTEGER)")
            await conn.commit()

    async def add(self, val: int) -> int:
        return await self.execute("INSERT INTO numbers (val) VALUES (?)", (val,))

    async def all(self):
        rows = await self.fetch_all("SELECT val FROM numbers")
        return [r[0] for r in rows]

@pytest.mark.asyncio
async def test_async_repository(tmp_path):
    repo = NumberRepository(str(tmp_path / "test.db"))
    await repo.init_db()
    await repo.add(5)
    assert await repo.all() == [5]


@pytest.mark.asyncio
async def test_async_weight_history(tmp_path):
    db_file = str(tmp_path / "weights.db")
    sync_repo = WeightEntryRepository(db_file)
    sync_repo.insert(datetime.datetime(2024, 1, 1, 8), 80.5)
    sync_repo.insert(datetime.datetime(2024, 1, 2, 8), 80.1, "after run")
    sync_repo.insert(datetime.datetime(2024, 1, 3, 8), 79.9)
    repo = AsyncWeightEntryRepository(db_file)
    rows = await repo.fetch_history()
    assert [r.weight_kg for r in rows] == [79.9, 80.1, 80.5]
    rows = await repo.fetch_history(datetime.date(2024, 1, 2), datetime.date(2024, 1, 2))
    assert len(rows) == 1
    assert rows[0].note == "after run"


@pytest.mark.asyncio
async def test_async_workout_repo(tmp_path):
    db_file = str(tmp_path / "workout.db")
    workouts = WorkoutRepository(db_file)
    first = workouts.create(datetime.date(2024, 1, 1), WorkoutCategory.PULL)
    second = workouts.create(datetime.date(2024, 1, 3), WorkoutCategory.LEGS)
    repo = AsyncWorkoutRepository(db_file)
    rows = await repo.fetch_all_workouts()
    assert [w.id for w in rows] == [second, first]
    assert rows[1].muscle_groups == [MuscleGroup.BACK, MuscleGroup.BICEPS]
    rows = await repo.fetch_all_workouts(descending=False)
    assert rows[0].id == first
