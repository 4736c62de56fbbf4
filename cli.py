import argparse
import csv
import datetime
import io
import json
import logging
import shutil

from db import Database, WeightEntryRepository, WorkoutRepository
from enums import GoalType, decode
from models import ExerciseEntry
from tools import WeightConverter, DistanceConverter
from rest_api import TrackerAPI

logger = logging.getLogger(__name__)


def export_weights(db_path: str, fmt: str, output_dir: str = ".") -> str:
    """Write the full weight history to ``weights.<fmt>`` and return the path."""
    entries = WeightEntryRepository(db_path).fetch_history()
    out_path = f"{output_dir}/weights.{fmt}"
    if fmt == "csv":
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(["Date", "Weight", "Note"])
        for e in entries:
            writer.writerow([e.date.isoformat(), e.weight_kg, e.note])
        data = buf.getvalue()
    else:
        data = json.dumps(
            [
                {"date": e.date.isoformat(), "weight": e.weight_kg, "note": e.note}
                for e in entries
            ],
            indent=2,
        )
    with open(out_path, "w", encoding="utf-8", newline="") as f:
        f.write(data)
    return out_path


def export_workouts(db_path: str, fmt: str, output_dir: str = ".") -> list[str]:
    workouts = WorkoutRepository(db_path).fetch_all_workouts(with_exercises=True)
    paths = []
    for workout in workouts:
        if fmt == "csv":
            buf = io.StringIO()
            writer = csv.writer(buf)
            writer.writerow(
                ["Exercise", "Reps", "Weight", "Duration", "Distance", "Cardio", "Note"]
            )
            for e in workout.exercises:
                writer.writerow(
                    [
                        e.name,
                        e.reps,
                        e.weight_kg,
                        e.duration_minutes,
                        e.distance_km,
                        int(e.is_cardio),
                        e.note,
                    ]
                )
            data = buf.getvalue()
        else:
            data = json.dumps(
                {
                    "date": workout.date.isoformat(),
                    "category": workout.category.value,
                    "muscle_groups": [m.value for m in workout.muscle_groups],
                    "note": workout.note,
                    "exercises": [
                        {
                            "name": e.name,
                            "reps": e.reps,
                            "weight": e.weight_kg,
                            "duration": e.duration_minutes,
                            "distance": e.distance_km,
                            "is_cardio": e.is_cardio,
                            "note": e.note,
                        }
                        for e in workout.exercises
                    ],
                },
                indent=2,
            )
        out_path = f"{output_dir}/workout_{workout.id}.{fmt}"
        with open(out_path, "w", encoding="utf-8", newline="") as f:
            f.write(data)
        paths.append(out_path)
    return paths


def backup_db(db_path: str, backup_path: str) -> None:
    Database(db_path).vacuum()
    shutil.copy(db_path, backup_path)
    logger.info("Backed up %s to %s", db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)
    logger.info("Restored %s from %s", db_path, backup_path)


def demo_data(db_path: str, yaml_path: str) -> None:
    """Populate the database with a week of demo data if it is empty."""
    api = TrackerAPI(db_path=db_path, yaml_path=yaml_path)
    if api.workouts.fetch_all_workouts() or api.weights.count():
        print("Database already contains data")
        return
    goal = decode(GoalType, api.settings.get_text("goal_type", "Cutting"))
    today = datetime.date.today()
    for offset in range(7):
        day = today - datetime.timedelta(days=6 - offset)
        stamp = datetime.datetime.combine(day, datetime.time(7, 30))
        api.weight_sync.record_weight(stamp, 80.0 - 0.2 * offset, goal)
        api.daily_logs.add_manual_entry(day, 1900 + 25 * offset, 140, 180, 60, goal)
    api.planner.save_workout(
        today - datetime.timedelta(days=2),
        "Push",
        [
            ExerciseEntry("Barbell Bench Press", reps=8, weight_kg=80.0),
            ExerciseEntry("Overhead Press", reps=8, weight_kg=45.0),
        ],
    )
    api.planner.save_workout(
        today - datetime.timedelta(days=1),
        "Cardio",
        [ExerciseEntry("Running", duration_minutes=30.0, distance_km=5.0, is_cardio=True)],
    )
    print("Demo data inserted")


def dedupe_library(db_path: str, yaml_path: str) -> list[int]:
    api = TrackerAPI(db_path=db_path, yaml_path=yaml_path)
    removed = api.library.deduplicate()
    print(f"Removed {len(removed)} duplicate exercises")
    return removed


def seed_library(db_path: str, yaml_path: str) -> bool:
    api = TrackerAPI(db_path=db_path, yaml_path=yaml_path)
    seeded = api.library.ensure_seeded()
    print("Default exercises inserted" if seeded else "Library already seeded")
    return seeded


def main() -> None:
    parser = argparse.ArgumentParser(description="Utility commands")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default="tracker.db")
    exp.add_argument("--fmt", choices=["csv", "json"], default="csv")
    exp.add_argument("--what", choices=["weights", "workouts"], default="weights")
    exp.add_argument("--out", default=".")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="tracker.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="tracker.db")

    for name in ("demo", "dedupe", "seed"):
        cmd = sub.add_parser(name)
        cmd.add_argument("--db", default="tracker.db")
        cmd.add_argument("--yaml", default="settings.yaml")

    conv = sub.add_parser("convert")
    conv.add_argument("--value", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb", "km", "mi"], required=True)

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "export":
        if args.what == "weights":
            export_weights(args.db, args.fmt, args.out)
        else:
            export_workouts(args.db, args.fmt, args.out)
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)
    elif args.cmd == "dedupe":
        dedupe_library(args.db, args.yaml)
    elif args.cmd == "seed":
        seed_library(args.db, args.yaml)
    elif args.cmd == "convert":
        if args.unit == "kg":
            print(f"{args.value} kg = {WeightConverter.kg_to_lb(args.value)} lb")
        elif args.unit == "lb":
            print(f"{args.value} lb = {WeightConverter.lb_to_kg(args.value)} kg")
        elif args.unit == "km":
            print(f"{args.value} km = {DistanceConverter.km_to_mi(args.value)} mi")
        else:
            print(f"{args.value} mi = {DistanceConverter.mi_to_km(args.value)} km")


if __name__ == "__main__":
    main()
