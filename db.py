import math
import sqlite3
import aiosqlite
import datetime
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Iterable

from config import YamlConfig
from settings_schema import validate_settings
from enums import (
    ENCODING_VERSION,
    EstimationMethod,
    GoalType,
    MuscleGroup,
    WorkoutCategory,
    decode,
    encode,
    join_labels,
    split_labels,
)
from models import (
    DailyLog,
    ExerciseDefinition,
    ExerciseEntry,
    GoalPeriod,
    WeightEntry,
    Workout,
    WorkoutTemplate,
    start_of_day,
)


def to_timestamp(value: datetime.datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.isoformat()


def day_bounds(day: datetime.date) -> Tuple[str, str]:
    """Return the ``[start, end)`` timestamp range covering ``day``."""
    start = datetime.datetime.combine(day, datetime.time.min)
    return start.isoformat(), (start + datetime.timedelta(days=1)).isoformat()


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "weight_entries": (
            """CREATE TABLE weight_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    date TEXT NOT NULL,
                    weight REAL NOT NULL,
                    note TEXT NOT NULL DEFAULT ''
                );""",
            ["id", "date", "weight", "note"],
        ),
        "daily_logs": (
            """CREATE TABLE daily_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    date TEXT NOT NULL UNIQUE,
                    weight REAL,
                    calories_consumed INTEGER NOT NULL DEFAULT 0,
                    calories_burned INTEGER NOT NULL DEFAULT 0,
                    goal_type TEXT,
                    protein INTEGER,
                    carbs INTEGER,
                    fat INTEGER,
                    manual_calories INTEGER NOT NULL DEFAULT 0,
                    manual_protein INTEGER NOT NULL DEFAULT 0,
                    manual_carbs INTEGER NOT NULL DEFAULT 0,
                    manual_fat INTEGER NOT NULL DEFAULT 0,
                    note TEXT NOT NULL DEFAULT ''
                );""",
            [
                "id",
                "date",
                "weight",
                "calories_consumed",
                "calories_burned",
                "goal_type",
                "protein",
                "carbs",
                "fat",
                "manual_calories",
                "manual_protein",
                "manual_carbs",
                "manual_fat",
                "note",
            ],
        ),
        "goal_periods": (
            """CREATE TABLE goal_periods (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    start_date TEXT NOT NULL,
                    end_date TEXT,
                    goal_type TEXT NOT NULL,
                    start_weight REAL NOT NULL,
                    target_weight REAL NOT NULL,
                    daily_calorie_goal INTEGER NOT NULL,
                    maintenance_calories INTEGER NOT NULL
                );""",
            [
                "id",
                "start_date",
                "end_date",
                "goal_type",
                "start_weight",
                "target_weight",
                "daily_calorie_goal",
                "maintenance_calories",
            ],
        ),
        "workouts": (
            """CREATE TABLE workouts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    date TEXT NOT NULL,
                    category TEXT NOT NULL,
                    muscle_groups TEXT NOT NULL DEFAULT '',
                    note TEXT NOT NULL DEFAULT ''
                );""",
            ["id", "date", "category", "muscle_groups", "note"],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_id INTEGER NOT NULL,
                    position INTEGER NOT NULL DEFAULT 0,
                    name TEXT NOT NULL,
                    reps INTEGER,
                    weight REAL,
                    duration REAL,
                    distance REAL,
                    is_cardio INTEGER NOT NULL DEFAULT 0,
                    note TEXT NOT NULL DEFAULT '',
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "workout_id",
                "position",
                "name",
                "reps",
                "weight",
                "duration",
                "distance",
                "is_cardio",
                "note",
            ],
        ),
        "workout_templates": (
            """CREATE TABLE workout_templates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    muscle_groups TEXT NOT NULL DEFAULT ''
                );""",
            ["id", "name", "category", "muscle_groups"],
        ),
        "template_exercises": (
            """CREATE TABLE template_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    template_id INTEGER NOT NULL,
                    position INTEGER NOT NULL DEFAULT 0,
                    name TEXT NOT NULL,
                    reps INTEGER,
                    weight REAL,
                    duration REAL,
                    distance REAL,
                    is_cardio INTEGER NOT NULL DEFAULT 0,
                    note TEXT NOT NULL DEFAULT '',
                    FOREIGN KEY(template_id) REFERENCES workout_templates(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "template_id",
                "position",
                "name",
                "reps",
                "weight",
                "duration",
                "distance",
                "is_cardio",
                "note",
            ],
        ),
        "exercise_definitions": (
            """CREATE TABLE exercise_definitions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    muscle_groups TEXT NOT NULL DEFAULT '',
                    is_cardio INTEGER NOT NULL DEFAULT 0
                );""",
            ["id", "name", "muscle_groups", "is_cardio"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "tracker.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col in ("note", "muscle_groups"):
                        return "''"
                    if col == "category":
                        return f"'{WorkoutCategory.FULL_BODY.value}'"
                    if col in (
                        "position",
                        "is_cardio",
                        "calories_consumed",
                        "calories_burned",
                        "manual_calories",
                        "manual_protein",
                        "manual_carbs",
                        "manual_fat",
                    ):
                        return "0"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        defaults = {
            "unit_system": "Metric",
            "goal_type": "Cutting",
            "daily_calorie_goal": "2000",
            "maintenance_calories": "2500",
            "maintenance_tolerance": "2.0",
            "target_weight": "70.0",
            "tracked_muscles": ",".join(m.value for m in MuscleGroup),
            "calorie_counting_enabled": "1",
            "enable_calories_burned": "1",
            "dark_mode": "1",
            "weight_sync_mode": "last_write",
            "estimation_method": EstimationMethod.WEIGHT_TREND.value,
            "enum_encoding_version": str(ENCODING_VERSION),
        }
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, value),
                )

    def vacuum(self) -> None:
        """Run SQLite VACUUM to reduce database size."""
        with self._connection() as conn:
            conn.execute("VACUUM;")


class BaseRepository(Database):
    """Base repository providing helper methods.

    ``conn`` lets several calls share one transaction; without it every call
    commits on its own.
    """

    def execute(
        self, query: str, params: Tuple = (), conn: sqlite3.Connection | None = None
    ) -> int:
        if conn is not None:
            return conn.execute(query, params).lastrowid
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(
        self, query: str, params: Tuple = (), conn: sqlite3.Connection | None = None
    ) -> List[Tuple]:
        if conn is not None:
            return conn.execute(query, params).fetchall()
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    @contextmanager
    def transaction(self):
        """Yield a connection that commits once, at the end of the block."""
        with self._connection() as conn:
            yield conn

    def _delete_all(self, table: str) -> None:
        self.execute(f"DELETE FROM {table};")


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return rows

    async def _delete_all(self, table: str) -> None:
        await self.execute(f"DELETE FROM {table};")


def _weight_from_row(row: Tuple) -> WeightEntry:
    return WeightEntry(
        id=int(row[0]),
        date=datetime.datetime.fromisoformat(row[1]),
        weight_kg=float(row[2]),
        note=row[3] or "",
    )


def _workout_from_row(row: Tuple) -> Workout:
    return Workout(
        id=int(row[0]),
        date=datetime.date.fromisoformat(row[1]),
        category=decode(WorkoutCategory, row[2]),
        muscle_groups=split_labels(MuscleGroup, row[3]),
        note=row[4] or "",
    )


def _exercise_from_row(row: Tuple) -> ExerciseEntry:
    return ExerciseEntry(
        id=int(row[0]),
        name=row[1],
        reps=None if row[2] is None else int(row[2]),
        weight_kg=None if row[3] is None else float(row[3]),
        duration_minutes=None if row[4] is None else float(row[4]),
        distance_km=None if row[5] is None else float(row[5]),
        is_cardio=bool(row[6]),
        note=row[7] or "",
    )


class WeightEntryRepository(BaseRepository):
    """Repository for individual body weight measurements."""

    _COLUMNS = "id, date, weight, note"

    def insert(
        self,
        date: datetime.datetime,
        weight: float,
        note: str = "",
        conn: sqlite3.Connection | None = None,
    ) -> int:
        if not weight > 0 or math.isinf(weight):
            raise ValueError("weight must be positive")
        return self.execute(
            "INSERT INTO weight_entries (date, weight, note) VALUES (?, ?, ?);",
            (to_timestamp(date), weight, note),
            conn,
        )

    def update(
        self,
        entry_id: int,
        date: datetime.datetime,
        weight: float,
        note: str = "",
        conn: sqlite3.Connection | None = None,
    ) -> None:
        if not weight > 0 or math.isinf(weight):
            raise ValueError("weight must be positive")
        self.execute(
            "UPDATE weight_entries SET date = ?, weight = ?, note = ? WHERE id = ?;",
            (to_timestamp(date), weight, note, entry_id),
            conn,
        )

    def delete(self, entry_id: int, conn: sqlite3.Connection | None = None) -> None:
        self.execute("DELETE FROM weight_entries WHERE id = ?;", (entry_id,), conn)

    def fetch(self, entry_id: int) -> WeightEntry:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM weight_entries WHERE id = ?;",
            (entry_id,),
        )
        if not rows:
            raise ValueError("weight entry not found")
        return _weight_from_row(rows[0])

    def fetch_for_day(
        self,
        day: datetime.date,
        descending: bool = True,
        conn: sqlite3.Connection | None = None,
    ) -> List[WeightEntry]:
        start, end = day_bounds(day)
        order = "DESC" if descending else "ASC"
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM weight_entries WHERE date >= ? AND date < ? "
            f"ORDER BY date {order}, id {order};",
            (start, end),
            conn,
        )
        return [_weight_from_row(r) for r in rows]

    def fetch_history(
        self,
        start_date: Optional[datetime.date] = None,
        end_date: Optional[datetime.date] = None,
        descending: bool = False,
    ) -> List[WeightEntry]:
        query = f"SELECT {self._COLUMNS} FROM weight_entries WHERE 1=1"
        params: list[str] = []
        if start_date:
            query += " AND date >= ?"
            params.append(day_bounds(start_date)[0])
        if end_date:
            query += " AND date < ?"
            params.append(day_bounds(end_date)[1])
        order = "DESC" if descending else "ASC"
        query += f" ORDER BY date {order}, id {order};"
        return [_weight_from_row(r) for r in self.fetch_all(query, tuple(params))]

    def fetch_latest(self) -> WeightEntry | None:
        """Return the most recent weight entry if available."""
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM weight_entries ORDER BY date DESC, id DESC LIMIT 1;"
        )
        return _weight_from_row(rows[0]) if rows else None

    def fetch_earliest(self) -> WeightEntry | None:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM weight_entries ORDER BY date ASC, id ASC LIMIT 1;"
        )
        return _weight_from_row(rows[0]) if rows else None

    def count(self) -> int:
        return int(self.fetch_all("SELECT COUNT(*) FROM weight_entries;")[0][0])


class AsyncWeightEntryRepository(AsyncBaseRepository):
    """Async read access to weight entries."""

    async def fetch_history(
        self,
        start_date: Optional[datetime.date] = None,
        end_date: Optional[datetime.date] = None,
    ) -> List[WeightEntry]:
        query = "SELECT id, date, weight, note FROM weight_entries WHERE 1=1"
        params: list[str] = []
        if start_date:
            query += " AND date >= ?"
            params.append(day_bounds(start_date)[0])
        if end_date:
            query += " AND date < ?"
            params.append(day_bounds(end_date)[1])
        query += " ORDER BY date DESC, id DESC;"
        rows = await self.fetch_all(query, tuple(params))
        return [_weight_from_row(r) for r in rows]


class DailyLogRepository(BaseRepository):
    """Repository for the per-day summary rows."""

    _COLUMNS = (
        "date, weight, calories_consumed, calories_burned, goal_type, protein, carbs, fat, "
        "manual_calories, manual_protein, manual_carbs, manual_fat, note"
    )

    @staticmethod
    def _from_row(row: Tuple) -> DailyLog:
        return DailyLog(
            date=datetime.date.fromisoformat(row[0]),
            weight_kg=None if row[1] is None else float(row[1]),
            calories_consumed=int(row[2]),
            calories_burned=int(row[3]),
            goal_type=None if row[4] is None else decode(GoalType, row[4]),
            protein=row[5],
            carbs=row[6],
            fat=row[7],
            manual_calories=int(row[8]),
            manual_protein=int(row[9]),
            manual_carbs=int(row[10]),
            manual_fat=int(row[11]),
            note=row[12] or "",
        )

    @staticmethod
    def _values(log: DailyLog) -> Tuple:
        return (
            log.weight_kg,
            log.calories_consumed,
            log.calories_burned,
            None if log.goal_type is None else encode(log.goal_type),
            log.protein,
            log.carbs,
            log.fat,
            log.manual_calories,
            log.manual_protein,
            log.manual_carbs,
            log.manual_fat,
            log.note,
        )

    def fetch_for_day(
        self, day: datetime.date, conn: sqlite3.Connection | None = None
    ) -> DailyLog | None:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM daily_logs WHERE date = ?;",
            (start_of_day(day).isoformat(),),
            conn,
        )
        return self._from_row(rows[0]) if rows else None

    def insert(self, log: DailyLog, conn: sqlite3.Connection | None = None) -> int:
        return self.execute(
            f"INSERT INTO daily_logs ({self._COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (start_of_day(log.date).isoformat(),) + self._values(log),
            conn,
        )

    def save(self, log: DailyLog, conn: sqlite3.Connection | None = None) -> None:
        self.execute(
            "UPDATE daily_logs SET weight = ?, calories_consumed = ?, calories_burned = ?, goal_type = ?, "
            "protein = ?, carbs = ?, fat = ?, manual_calories = ?, manual_protein = ?, manual_carbs = ?, "
            "manual_fat = ?, note = ? WHERE date = ?;",
            self._values(log) + (start_of_day(log.date).isoformat(),),
            conn,
        )

    def set_weight(
        self,
        day: datetime.date,
        weight: float | None,
        conn: sqlite3.Connection | None = None,
    ) -> None:
        self.execute(
            "UPDATE daily_logs SET weight = ? WHERE date = ?;",
            (weight, start_of_day(day).isoformat()),
            conn,
        )

    def fetch_range(
        self,
        start_date: Optional[datetime.date] = None,
        end_date: Optional[datetime.date] = None,
    ) -> List[DailyLog]:
        query = f"SELECT {self._COLUMNS} FROM daily_logs WHERE 1=1"
        params: list[str] = []
        if start_date:
            query += " AND date >= ?"
            params.append(start_date.isoformat())
        if end_date:
            query += " AND date <= ?"
            params.append(end_date.isoformat())
        query += " ORDER BY date DESC;"
        return [self._from_row(r) for r in self.fetch_all(query, tuple(params))]

    def count_for_day(self, day: datetime.date) -> int:
        rows = self.fetch_all(
            "SELECT COUNT(*) FROM daily_logs WHERE date = ?;",
            (start_of_day(day).isoformat(),),
        )
        return int(rows[0][0])

    def delete(self, day: datetime.date) -> None:
        rows = self.fetch_all(
            "SELECT id FROM daily_logs WHERE date = ?;", (start_of_day(day).isoformat(),)
        )
        if not rows:
            raise ValueError("log not found")
        self.execute("DELETE FROM daily_logs WHERE id = ?;", (rows[0][0],))


class GoalPeriodRepository(BaseRepository):
    """Repository for goal periods; an open end date marks the active one."""

    _COLUMNS = (
        "id, start_date, end_date, goal_type, start_weight, target_weight, "
        "daily_calorie_goal, maintenance_calories"
    )

    @staticmethod
    def _from_row(row: Tuple) -> GoalPeriod:
        return GoalPeriod(
            id=int(row[0]),
            start_date=datetime.datetime.fromisoformat(row[1]),
            end_date=None if row[2] is None else datetime.datetime.fromisoformat(row[2]),
            goal_type=decode(GoalType, row[3]),
            start_weight=float(row[4]),
            target_weight=float(row[5]),
            daily_calorie_goal=int(row[6]),
            maintenance_calories=int(row[7]),
        )

    def create(self, period: GoalPeriod, conn: sqlite3.Connection | None = None) -> int:
        return self.execute(
            "INSERT INTO goal_periods (start_date, end_date, goal_type, start_weight, target_weight, "
            "daily_calorie_goal, maintenance_calories) VALUES (?, ?, ?, ?, ?, ?, ?);",
            (
                to_timestamp(period.start_date),
                None if period.end_date is None else to_timestamp(period.end_date),
                encode(period.goal_type),
                period.start_weight,
                period.target_weight,
                period.daily_calorie_goal,
                period.maintenance_calories,
            ),
            conn,
        )

    def close_active(
        self, end_date: datetime.datetime, conn: sqlite3.Connection | None = None
    ) -> None:
        self.execute(
            "UPDATE goal_periods SET end_date = ? WHERE end_date IS NULL;",
            (to_timestamp(end_date),),
            conn,
        )

    def delete(self, period_id: int, conn: sqlite3.Connection | None = None) -> None:
        self.execute("DELETE FROM goal_periods WHERE id = ?;", (period_id,), conn)

    def fetch_active(self) -> List[GoalPeriod]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM goal_periods WHERE end_date IS NULL ORDER BY start_date DESC;"
        )
        return [self._from_row(r) for r in rows]

    def fetch_periods(self) -> List[GoalPeriod]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM goal_periods ORDER BY start_date DESC, id DESC;"
        )
        return [self._from_row(r) for r in rows]


class WorkoutRepository(BaseRepository):
    """Repository for workout table operations."""

    _COLUMNS = "id, date, category, muscle_groups, note"

    def __init__(self, db_path: str = "tracker.db") -> None:
        super().__init__(db_path)
        self.exercises = ExerciseEntryRepository(db_path)

    def create(
        self,
        date: datetime.date,
        category: WorkoutCategory,
        muscle_groups: Optional[Iterable[MuscleGroup]] = None,
        note: str = "",
        conn: sqlite3.Connection | None = None,
    ) -> int:
        if muscle_groups is None:
            muscle_groups = category.muscle_groups
        return self.execute(
            "INSERT INTO workouts (date, category, muscle_groups, note) VALUES (?, ?, ?, ?);",
            (
                start_of_day(date).isoformat(),
                encode(category),
                join_labels(muscle_groups),
                note,
            ),
            conn,
        )

    def update(
        self,
        workout_id: int,
        date: datetime.date,
        category: WorkoutCategory,
        muscle_groups: Iterable[MuscleGroup],
        note: str = "",
        conn: sqlite3.Connection | None = None,
    ) -> None:
        self.execute(
            "UPDATE workouts SET date = ?, category = ?, muscle_groups = ?, note = ? WHERE id = ?;",
            (
                start_of_day(date).isoformat(),
                encode(category),
                join_labels(muscle_groups),
                note,
                workout_id,
            ),
            conn,
        )

    def set_muscle_groups(
        self, workout_id: int, muscle_groups: Iterable[MuscleGroup]
    ) -> None:
        self.fetch_detail(workout_id)
        self.execute(
            "UPDATE workouts SET muscle_groups = ? WHERE id = ?;",
            (join_labels(muscle_groups), workout_id),
        )

    def set_note(self, workout_id: int, note: str) -> None:
        self.execute(
            "UPDATE workouts SET note = ? WHERE id = ?;",
            (note, workout_id),
        )

    def fetch_all_workouts(
        self,
        start_date: Optional[datetime.date] = None,
        end_date: Optional[datetime.date] = None,
        descending: bool = True,
        with_exercises: bool = False,
    ) -> List[Workout]:
        query = f"SELECT {self._COLUMNS} FROM workouts"
        params: list[str] = []
        where_clauses: list[str] = []
        if start_date:
            where_clauses.append("date >= ?")
            params.append(start_date.isoformat())
        if end_date:
            where_clauses.append("date <= ?")
            params.append(end_date.isoformat())
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        order = "DESC" if descending else "ASC"
        query += f" ORDER BY date {order}, id {order};"
        workouts = [_workout_from_row(r) for r in self.fetch_all(query, tuple(params))]
        if with_exercises:
            for workout in workouts:
                workout.exercises = self.exercises.fetch_for_workout(workout.id)
        return workouts

    def fetch_detail(self, workout_id: int) -> Workout:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM workouts WHERE id = ?;",
            (workout_id,),
        )
        if not rows:
            raise ValueError("workout not found")
        workout = _workout_from_row(rows[0])
        workout.exercises = self.exercises.fetch_for_workout(workout_id)
        return workout

    def delete(self, workout_id: int) -> None:
        rows = super().fetch_all(
            "SELECT id FROM workouts WHERE id = ?;",
            (workout_id,),
        )
        if not rows:
            raise ValueError("workout not found")
        self.execute("DELETE FROM workouts WHERE id = ?;", (workout_id,))

    def delete_all(self) -> None:
        self._delete_all("workouts")


class AsyncWorkoutRepository(AsyncBaseRepository):
    """Async read access to workout history."""

    async def fetch_all_workouts(self, descending: bool = True) -> List[Workout]:
        order = "DESC" if descending else "ASC"
        rows = await self.fetch_all(
            f"SELECT id, date, category, muscle_groups, note FROM workouts ORDER BY date {order}, id {order};"
        )
        return [_workout_from_row(r) for r in rows]


class ExerciseEntryRepository(BaseRepository):
    """Repository for the sets logged inside a workout."""

    _TABLE = "exercises"
    _PARENT = "workout_id"

    def add(
        self,
        parent_id: int,
        entry: ExerciseEntry,
        conn: sqlite3.Connection | None = None,
    ) -> int:
        rows = self.fetch_all(
            f"SELECT COALESCE(MAX(position), 0) + 1 FROM {self._TABLE} WHERE {self._PARENT} = ?;",
            (parent_id,),
            conn,
        )
        position = int(rows[0][0]) if rows else 1
        return self.execute(
            f"INSERT INTO {self._TABLE} ({self._PARENT}, position, name, reps, weight, duration, distance, is_cardio, note) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                parent_id,
                position,
                entry.name,
                entry.reps,
                entry.weight_kg,
                entry.duration_minutes,
                entry.distance_km,
                int(entry.is_cardio),
                entry.note,
            ),
            conn,
        )

    def replace_all(
        self,
        parent_id: int,
        entries: Iterable[ExerciseEntry],
        conn: sqlite3.Connection | None = None,
    ) -> List[int]:
        self.execute(
            f"DELETE FROM {self._TABLE} WHERE {self._PARENT} = ?;", (parent_id,), conn
        )
        return [self.add(parent_id, e, conn) for e in entries]

    def remove(self, exercise_id: int) -> None:
        self.execute(f"DELETE FROM {self._TABLE} WHERE id = ?;", (exercise_id,))

    def fetch_for_workout(self, parent_id: int) -> List[ExerciseEntry]:
        rows = self.fetch_all(
            f"SELECT id, name, reps, weight, duration, distance, is_cardio, note FROM {self._TABLE} "
            f"WHERE {self._PARENT} = ? ORDER BY position, id;",
            (parent_id,),
        )
        return [_exercise_from_row(r) for r in rows]

    def update_note(self, exercise_id: int, note: str) -> None:
        self.execute(
            f"UPDATE {self._TABLE} SET note = ? WHERE id = ?;",
            (note, exercise_id),
        )


class TemplateExerciseRepository(ExerciseEntryRepository):
    """Repository for exercises belonging to templates."""

    _TABLE = "template_exercises"
    _PARENT = "template_id"

    def fetch_for_template(self, template_id: int) -> List[ExerciseEntry]:
        return self.fetch_for_workout(template_id)


class TemplateWorkoutRepository(BaseRepository):
    """Repository for workout templates."""

    def __init__(self, db_path: str = "tracker.db") -> None:
        super().__init__(db_path)
        self.exercises = TemplateExerciseRepository(db_path)

    @staticmethod
    def _from_row(row: Tuple) -> WorkoutTemplate:
        return WorkoutTemplate(
            id=int(row[0]),
            name=row[1],
            category=decode(WorkoutCategory, row[2]),
            muscle_groups=split_labels(MuscleGroup, row[3]),
        )

    def create(
        self,
        name: str,
        category: WorkoutCategory,
        muscle_groups: Iterable[MuscleGroup],
        conn: sqlite3.Connection | None = None,
    ) -> int:
        if not name:
            raise ValueError("template name required")
        return self.execute(
            "INSERT INTO workout_templates (name, category, muscle_groups) VALUES (?, ?, ?);",
            (name, encode(category), join_labels(muscle_groups)),
            conn,
        )

    def fetch_templates(self) -> List[WorkoutTemplate]:
        rows = self.fetch_all(
            "SELECT id, name, category, muscle_groups FROM workout_templates ORDER BY name, id;"
        )
        return [self._from_row(r) for r in rows]

    def fetch_detail(self, template_id: int) -> WorkoutTemplate:
        rows = self.fetch_all(
            "SELECT id, name, category, muscle_groups FROM workout_templates WHERE id = ?;",
            (template_id,),
        )
        if not rows:
            raise ValueError("template not found")
        template = self._from_row(rows[0])
        template.exercises = self.exercises.fetch_for_template(template_id)
        return template

    def delete(self, template_id: int) -> None:
        self.fetch_detail(template_id)
        self.execute("DELETE FROM workout_templates WHERE id = ?;", (template_id,))


class ExerciseDefinitionRepository(BaseRepository):
    """Repository for the exercise library.

    Names are not unique at the table level; duplicates are collapsed by
    ``ExerciseLibraryService.deduplicate``.
    """

    @staticmethod
    def _from_row(row: Tuple) -> ExerciseDefinition:
        return ExerciseDefinition(
            id=int(row[0]),
            name=row[1],
            muscle_groups=split_labels(MuscleGroup, row[2]),
            is_cardio=bool(row[3]),
        )

    def add(
        self,
        name: str,
        muscle_groups: Iterable[MuscleGroup] = (),
        is_cardio: bool = False,
        conn: sqlite3.Connection | None = None,
    ) -> int:
        name = name.strip()
        if not name:
            raise ValueError("exercise name required")
        return self.execute(
            "INSERT INTO exercise_definitions (name, muscle_groups, is_cardio) VALUES (?, ?, ?);",
            (name, join_labels(muscle_groups), int(is_cardio)),
            conn,
        )

    def update(
        self,
        definition_id: int,
        name: str,
        muscle_groups: Iterable[MuscleGroup],
        is_cardio: bool,
    ) -> None:
        self.fetch_detail(definition_id)
        self.execute(
            "UPDATE exercise_definitions SET name = ?, muscle_groups = ?, is_cardio = ? WHERE id = ?;",
            (name.strip(), join_labels(muscle_groups), int(is_cardio), definition_id),
        )

    def delete(self, definition_id: int, conn: sqlite3.Connection | None = None) -> None:
        self.execute(
            "DELETE FROM exercise_definitions WHERE id = ?;", (definition_id,), conn
        )

    def fetch_detail(self, definition_id: int) -> ExerciseDefinition:
        rows = self.fetch_all(
            "SELECT id, name, muscle_groups, is_cardio FROM exercise_definitions WHERE id = ?;",
            (definition_id,),
        )
        if not rows:
            raise ValueError("exercise not found")
        return self._from_row(rows[0])

    def fetch_definitions(self) -> List[ExerciseDefinition]:
        rows = self.fetch_all(
            "SELECT id, name, muscle_groups, is_cardio FROM exercise_definitions ORDER BY id;"
        )
        return [self._from_row(r) for r in rows]

    def fetch_by_name(self, name: str) -> List[ExerciseDefinition]:
        rows = self.fetch_all(
            "SELECT id, name, muscle_groups, is_cardio FROM exercise_definitions WHERE name = ? ORDER BY id;",
            (name,),
        )
        return [self._from_row(r) for r in rows]

    def count(self) -> int:
        return int(self.fetch_all("SELECT COUNT(*) FROM exercise_definitions;")[0][0])


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    BOOL_KEYS = {
        "calorie_counting_enabled",
        "enable_calories_burned",
        "dark_mode",
    }
    TEXT_KEYS = {
        "unit_system",
        "goal_type",
        "tracked_muscles",
        "weight_sync_mode",
        "estimation_method",
        "cloud_sync_token",
    }

    def __init__(
        self, db_path: str = "tracker.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, float | str | bool] = {}
        for k, v in rows:
            if k in self.BOOL_KEYS:
                result[k] = v in {"1", "1.0", "true", "True"}
                continue
            if k in self.TEXT_KEYS:
                result[k] = v
                continue
            try:
                result[k] = float(v)
            except ValueError:
                result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                val = str(value)
                if key in self.BOOL_KEYS:
                    if val in {"1", "1.0", "true", "True"}:
                        val = "1"
                    else:
                        val = "0"
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, val),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def get_float(self, key: str, default: float) -> float:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return float(rows[0][0]) if rows else default

    def set_float(self, key: str, value: float) -> None:
        self.set_text(key, str(value))

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_text(self, key: str, value: str) -> None:
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def get_list(self, key: str) -> list[str]:
        val = self.get_text(key, "")
        return [v.strip() for v in val.split(",") if v.strip()]

    def set_list(self, key: str, items: list[str]) -> None:
        self.set_text(key, ",".join(items))

    def get_bool(self, key: str, default: bool) -> bool:
        return self.get_text(key, "1" if default else "0") in {
            "1",
            "true",
            "True",
            "1.0",
        }

    def set_bool(self, key: str, value: bool) -> None:
        self.set_text(key, "1" if value else "0")

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        data = self._raw_all_settings()
        for k in self.BOOL_KEYS:
            data[k] = bool(data.get(k, False))
        return data
