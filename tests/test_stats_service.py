import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    DailyLogRepository,
    SettingsRepository,
    TemplateWorkoutRepository,
    WeightEntryRepository,
    WorkoutRepository,
)
from enums import EstimationMethod, MuscleGroup, WorkoutCategory
from models import DailyLog, WeightEntry, Workout
from stats_service import StatisticsService, days_since_last_trained


def _workout(wid: int, day: datetime.date, *muscles: MuscleGroup) -> Workout:
    return Workout(id=wid, date=day, category=WorkoutCategory.FULL_BODY, muscle_groups=list(muscles))


class DaysSinceLastTrainedTest(unittest.TestCase):
    def setUp(self) -> None:
        self.today = datetime.date(2024, 5, 10)

    def test_recent_and_missing_muscles(self) -> None:
        history = [
            _workout(1, self.today - datetime.timedelta(days=2), MuscleGroup.CHEST),
            _workout(2, self.today - datetime.timedelta(days=5), MuscleGroup.BACK),
        ]
        self.assertEqual(days_since_last_trained("Chest", history, self.today), 2)
        self.assertEqual(days_since_last_trained(MuscleGroup.BACK, history, self.today), 5)
        self.assertIsNone(days_since_last_trained("Legs", history, self.today))

    def test_order_of_history_does_not_matter(self) -> None:
        history = [
            _workout(1, self.today - datetime.timedelta(days=9), MuscleGroup.LEGS),
            _workout(2, self.today - datetime.timedelta(days=3), MuscleGroup.LEGS),
        ]
        self.assertEqual(days_since_last_trained("Legs", history, self.today), 3)
        self.assertEqual(
            days_since_last_trained("Legs", list(reversed(history)), self.today), 3
        )

    def test_trained_today_counts_as_zero(self) -> None:
        history = [_workout(1, self.today, MuscleGroup.ABS)]
        now = datetime.datetime.combine(self.today, datetime.time(22, 15))
        self.assertEqual(days_since_last_trained("Abs", history, now), 0)

    def test_unknown_muscle_rejected(self) -> None:
        with self.assertRaises(ValueError):
            days_since_last_trained("Neck", [], self.today)


class StatisticsServiceTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_stats.db"
        self.yaml_path = "test_stats.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.workouts = WorkoutRepository(self.db_path)
        self.weights = WeightEntryRepository(self.db_path)
        self.settings = SettingsRepository(self.db_path, self.yaml_path)
        self.stats = StatisticsService(self.workouts, self.weights, self.settings)
        self.today = datetime.date(2024, 5, 10)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_days_since_from_store(self) -> None:
        self.workouts.create(self.today - datetime.timedelta(days=2), WorkoutCategory.CHEST)
        self.workouts.create(self.today - datetime.timedelta(days=5), WorkoutCategory.BACK)
        self.assertEqual(self.stats.days_since_last_trained("Chest", self.today), 2)
        self.assertIsNone(self.stats.days_since_last_trained("Legs", self.today))

    def test_recovery_report_follows_tracked_muscles(self) -> None:
        self.settings.set_list("tracked_muscles", ["Legs", "Chest"])
        self.workouts.create(self.today - datetime.timedelta(days=1), WorkoutCategory.PUSH)
        report = self.stats.recovery_report(self.today)
        self.assertEqual(list(report), ["Legs", "Chest"])
        self.assertEqual(report, {"Legs": None, "Chest": 1})

    def test_templates_do_not_count_as_training(self) -> None:
        TemplateWorkoutRepository(self.db_path).create(
            "Leg day", WorkoutCategory.LEGS, [MuscleGroup.LEGS]
        )
        self.assertIsNone(self.stats.days_since_last_trained("Legs", self.today))

    def test_weight_change_metrics(self) -> None:
        def entry(days_ago: int, kg: float) -> WeightEntry:
            stamp = datetime.datetime.combine(
                self.today - datetime.timedelta(days=days_ago), datetime.time(8)
            )
            return WeightEntry(id=None, date=stamp, weight_kg=kg)

        entries = [entry(0, 80.0), entry(8, 81.0), entry(40, 83.5), entry(120, 86.0)]
        metrics = self.stats.weight_change_metrics(self.today, entries)
        self.assertEqual(
            metrics,
            [
                {"period": "7 Days", "value": -1.0},
                {"period": "30 Days", "value": -3.5},
                {"period": "90 Days", "value": -6.0},
                {"period": "All Time", "value": -6.0},
            ],
        )

    def test_weight_change_short_history_uses_oldest(self) -> None:
        self.weights.insert(datetime.datetime(2024, 5, 8, 7), 75.0)
        self.weights.insert(datetime.datetime(2024, 5, 10, 7), 74.4)
        metrics = self.stats.weight_change_metrics(self.today)
        self.assertEqual([m["value"] for m in metrics], [-0.6, -0.6, -0.6, -0.6])

    def test_weight_change_empty(self) -> None:
        self.assertEqual(self.stats.weight_change_metrics(self.today), [])



class CalorieBalanceTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_balance.db"
        self.yaml_path = "test_balance.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.weights = WeightEntryRepository(self.db_path)
        self.logs = DailyLogRepository(self.db_path)
        self.settings = SettingsRepository(self.db_path, self.yaml_path)
        self.stats = StatisticsService(
            WorkoutRepository(self.db_path), self.weights, self.settings, self.logs
        )
        self.today = datetime.date(2024, 5, 10)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def weigh(self, days_ago: int, kg: float) -> None:
        day = self.today - datetime.timedelta(days=days_ago)
        self.weights.insert(datetime.datetime.combine(day, datetime.time(8)), kg)

    def eat(self, days_ago: int, calories: int) -> None:
        day = self.today - datetime.timedelta(days=days_ago)
        self.logs.insert(DailyLog(date=day, calories_consumed=calories))

    def losing_a_tenth_per_day(self) -> None:
        self.weigh(20, 82.0)
        self.weigh(0, 80.0)
        for days_ago in range(1, 21):
            self.eat(days_ago, 1730)
        self.eat(0, 5000)

    def test_estimated_maintenance(self) -> None:
        self.losing_a_tenth_per_day()
        self.eat(25, 0)
        self.assertEqual(self.stats.estimated_maintenance(self.today), 2500)

    def test_maintenance_needs_trend_and_intake(self) -> None:
        self.weigh(3, 80.0)
        self.assertIsNone(self.stats.estimated_maintenance(self.today))
        self.weigh(0, 79.8)
        self.assertIsNone(self.stats.estimated_maintenance(self.today))
        self.weigh(40, 90.0)
        self.eat(1, 2000)
        self.assertEqual(self.stats.estimated_maintenance(self.today), 2513)

    def test_rate_per_method(self) -> None:
        self.losing_a_tenth_per_day()
        self.assertAlmostEqual(
            self.stats.kg_change_per_day(EstimationMethod.WEIGHT_TREND, self.today), -0.1
        )
        self.assertAlmostEqual(
            self.stats.kg_change_per_day("eating_habits", self.today), -0.1
        )
        self.assertAlmostEqual(
            self.stats.kg_change_per_day(EstimationMethod.GOAL_ADHERENCE, self.today),
            -500 / 7700,
        )
        with self.assertRaises(ValueError):
            self.stats.kg_change_per_day("average", self.today)

    def test_eating_habits_without_logs(self) -> None:
        self.eat(9, 1800)
        self.assertIsNone(
            self.stats.kg_change_per_day(EstimationMethod.EATING_HABITS, self.today)
        )

    def test_days_remaining(self) -> None:
        self.losing_a_tenth_per_day()
        self.assertEqual(self.stats.days_remaining(self.today), 100)
        self.settings.set_text("goal_type", "Bulking")
        self.assertIsNone(self.stats.days_remaining(self.today))

    def test_days_remaining_uses_configured_method(self) -> None:
        self.weigh(0, 80.0)
        self.settings.set_int("daily_calorie_goal", 1730)
        self.assertIsNone(self.stats.days_remaining(self.today))
        self.settings.set_text("estimation_method", EstimationMethod.GOAL_ADHERENCE.value)
        self.assertEqual(self.stats.estimation_method(), EstimationMethod.GOAL_ADHERENCE)
        self.assertEqual(self.stats.days_remaining(self.today), 100)
        self.settings.set_bool("calorie_counting_enabled", False)
        self.assertEqual(self.stats.estimation_method(), EstimationMethod.WEIGHT_TREND)
        self.assertIsNone(self.stats.days_remaining(self.today))

    def test_target_already_passed(self) -> None:
        self.settings.set_float("target_weight", 85.0)
        self.losing_a_tenth_per_day()
        self.assertIsNone(self.stats.days_remaining(self.today))

    def test_projections(self) -> None:
        self.losing_a_tenth_per_day()
        points = self.stats.projections(self.today)
        self.assertEqual(len(points), 3 * 61)
        trend = [p for p in points if p["method"] == EstimationMethod.WEIGHT_TREND.value]
        self.assertEqual(
            trend[0], {"date": self.today, "weight": 80.0, "method": "30-Day Weight Trend"}
        )
        self.assertEqual(trend[-1]["date"], self.today + datetime.timedelta(days=60))
        self.assertEqual(trend[-1]["weight"], 74.0)
        self.settings.set_bool("calorie_counting_enabled", False)
        self.assertEqual(len(self.stats.projections(self.today)), 61)

    def test_projection_summary(self) -> None:
        self.losing_a_tenth_per_day()
        summary = self.stats.projection_summary(self.today)
        self.assertEqual(summary["method"], "30-Day Weight Trend")
        self.assertEqual(summary["estimated_maintenance"], 2500)
        self.assertEqual(summary["days_remaining"], 100)
        self.settings.set_bool("calorie_counting_enabled", False)
        self.assertIsNone(self.stats.projection_summary(self.today)["estimated_maintenance"])


if __name__ == "__main__":
    unittest.main()
