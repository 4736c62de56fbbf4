import os
import sys
import json
import unittest
import keyring
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from cli import (
    export_weights,
    export_workouts,
    backup_db,
    restore_db,
    demo_data,
    dedupe_library,
    seed_library,
)
from library_service import DEFAULT_EXERCISES
from rest_api import TrackerAPI
from fastapi.testclient import TestClient

class DummyKeyring(keyring.backend.KeyringBackend):
    priority = 1
    def __init__(self):
        self.store = {}
    def get_password(self, service, username):
        return self.store.get((service, username))
    def set_password(self, service, username, password):
        self.store[(service, username)] = password
    def delete_password(self, service, username):
        self.store.pop((service, username), None)

class CLIToolsTest(unittest.TestCase):
    def setUp(self) -> None:
        keyring.set_keyring(DummyKeyring())
        self.db_path = "test_cli.db"
        self.yaml_path = "test_cli.yaml"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        if os.path.exists(self.yaml_path):
            os.remove(self.yaml_path)
        self.api = TrackerAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = TestClient(self.api.app)

    def tearDown(self) -> None:
        for path in [self.db_path, self.yaml_path, "backup.db", "exports"]:
            if os.path.exists(path):
                if os.path.isdir(path):
                    for f in os.listdir(path):
                        os.remove(os.path.join(path, f))
                    os.rmdir(path)
                else:
                    os.remove(path)

    def test_export_backup_restore(self) -> None:
        os.makedirs("exports", exist_ok=True)
        self.client.post("/weights", params={"weight": 80.0, "date": "2024-01-01T08:00:00"})
        self.client.post(
            "/workouts",
            json={"date": "2024-01-01", "category": "Pull", "exercises": [{"name": "Pull Up", "reps": 8}]},
        )
        path = export_weights(self.db_path, "csv", "exports")
        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
        self.assertEqual(lines, ["Date,Weight,Note", "2024-01-01T08:00:00,80.0,"])
        paths = export_workouts(self.db_path, "json", "exports")
        self.assertEqual(paths, ["exports/workout_1.json"])
        with open(paths[0], encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data["category"], "Pull")
        self.assertEqual(data["exercises"][0]["name"], "Pull Up")
        backup_db(self.db_path, "backup.db")
        self.assertTrue(os.path.exists("backup.db"))
        os.remove(self.db_path)
        restore_db("backup.db", self.db_path)
        api2 = TrackerAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.assertEqual(api2.weights.count(), 1)

    def test_demo_data(self) -> None:
        demo_data(self.db_path, self.yaml_path)
        api2 = TrackerAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.assertEqual(len(api2.workouts.fetch_all_workouts()), 2)
        self.assertEqual(api2.weights.count(), 7)
        self.assertEqual(len(api2.logs.fetch_range()), 7)
        demo_data(self.db_path, self.yaml_path)
        self.assertEqual(api2.weights.count(), 7)

    def test_seed_and_dedupe(self) -> None:
        self.assertTrue(seed_library(self.db_path, self.yaml_path))
        self.api.definitions.add("Plank")
        removed = dedupe_library(self.db_path, self.yaml_path)
        self.assertEqual(len(removed), 1)
        self.assertEqual(self.api.definitions.count(), len(DEFAULT_EXERCISES))

if __name__ == "__main__":
    unittest.main()
