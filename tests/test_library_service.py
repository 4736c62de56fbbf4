import os
import sqlite3
import sys
import unittest
import keyring

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import ExerciseDefinitionRepository
from enums import MuscleGroup
from flag_store import KeyringFlagStore, SEEDED_FLAG
from library_service import DEFAULT_EXERCISES, ExerciseLibraryService, select_duplicates
from models import ExerciseDefinition


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


class LockedDefinitionRepository(ExerciseDefinitionRepository):
    added = 0

    def add(self, name, muscles=(), is_cardio=False, conn=None):
        self.added += 1
        if self.added > 5:
            raise sqlite3.OperationalError("database is locked")
        return super().add(name, muscles, is_cardio, conn)

    def delete(self, definition_id, conn=None):
        raise sqlite3.OperationalError("database is locked")


class SelectDuplicatesTest(unittest.TestCase):
    def test_prefers_muscles_then_cardio(self) -> None:
        plain = ExerciseDefinition(1, "Squat")
        legs = ExerciseDefinition(2, "Squat", [MuscleGroup.LEGS])
        cardio = ExerciseDefinition(3, "Squat", is_cardio=True)
        losers = select_duplicates([plain, legs, cardio])
        self.assertEqual(sorted(d.id for d in losers), [1, 3])

    def test_cardio_beats_plain(self) -> None:
        losers = select_duplicates(
            [ExerciseDefinition(1, "Row"), ExerciseDefinition(2, "Row", is_cardio=True)]
        )
        self.assertEqual([d.id for d in losers], [1])

    def test_first_seen_wins_ties(self) -> None:
        losers = select_duplicates(
            [
                ExerciseDefinition(5, "Plank", [MuscleGroup.ABS]),
                ExerciseDefinition(6, "Plank", [MuscleGroup.ABS]),
                ExerciseDefinition(7, "Crunch"),
            ]
        )
        self.assertEqual([d.id for d in losers], [6])


class ExerciseLibraryServiceTest(unittest.TestCase):
    def setUp(self) -> None:
        keyring.set_keyring(DummyKeyring())
        self.db_path = "test_library.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.repo = ExerciseDefinitionRepository(self.db_path)
        self.flags = KeyringFlagStore("repscale.test")
        self.service = ExerciseLibraryService(self.repo, self.flags)

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def test_deduplicate_keeps_best_row(self) -> None:
        self.repo.add("Squat")
        keeper = self.repo.add("Squat", [MuscleGroup.LEGS])
        self.repo.add("Squat", is_cardio=True)
        self.repo.add("Plank", [MuscleGroup.ABS])
        removed = self.service.deduplicate()
        self.assertEqual(sorted(removed), [1, 3])
        squats = self.repo.fetch_by_name("Squat")
        self.assertEqual([d.id for d in squats], [keeper])
        self.assertEqual(squats[0].muscle_groups, [MuscleGroup.LEGS])
        self.assertEqual(self.repo.count(), 2)

    def test_deduplicate_is_idempotent(self) -> None:
        for _ in range(3):
            self.repo.add("Bench Press", [MuscleGroup.CHEST])
        self.repo.add("Running", [MuscleGroup.CARDIO], is_cardio=True)
        self.service.deduplicate()
        after_first = self.repo.fetch_definitions()
        self.assertEqual(self.service.deduplicate(), [])
        self.assertEqual(self.repo.fetch_definitions(), after_first)

    def test_seed_inserts_defaults_once(self) -> None:
        with self.assertLogs("library_service", level="INFO"):
            self.assertTrue(self.service.ensure_seeded())
        self.assertEqual(self.repo.count(), len(DEFAULT_EXERCISES))
        self.assertTrue(self.flags.has_flag(SEEDED_FLAG))
        self.assertFalse(self.service.ensure_seeded())
        self.assertEqual(self.repo.count(), len(DEFAULT_EXERCISES))
        running = self.service.definition_for("Running")
        self.assertTrue(running.is_cardio)
        self.assertEqual(running.muscle_groups, [MuscleGroup.CARDIO])

    def test_seed_skipped_when_library_has_rows(self) -> None:
        self.repo.add("Custom Move", [MuscleGroup.BACK])
        self.assertFalse(self.service.ensure_seeded())
        self.assertEqual(self.repo.count(), 1)
        self.assertTrue(self.flags.has_flag(SEEDED_FLAG))

    def test_seed_respects_flag(self) -> None:
        self.flags.set_flag(SEEDED_FLAG)
        self.assertFalse(self.service.ensure_seeded())
        self.assertEqual(self.repo.count(), 0)
        self.flags.clear_flag(SEEDED_FLAG)
        self.assertTrue(self.service.ensure_seeded())

    def test_definition_lookup_and_crud(self) -> None:
        did = self.service.add_definition("Face Pull", ["Back", "Shoulders"])
        self.assertEqual(self.service.definition_for(" Face Pull ").id, did)
        with self.assertRaises(ValueError):
            self.service.add_definition("Face Pull")
        self.service.update_definition(did, "Face Pull", ["Shoulders"], False)
        self.assertEqual(
            self.service.definition_for("Face Pull").muscle_groups,
            [MuscleGroup.SHOULDERS],
        )
        self.service.delete_definition(did)
        self.assertIsNone(self.service.definition_for("Face Pull"))
        with self.assertRaises(ValueError):
            self.service.delete_definition(did)


    def test_failed_deduplicate_reported(self) -> None:
        self.repo.add("Squat")
        self.repo.add("Squat", [MuscleGroup.LEGS])
        errors = []
        service = ExerciseLibraryService(
            LockedDefinitionRepository(self.db_path),
            self.flags,
            error_sink=lambda op, exc: errors.append(op),
        )
        with self.assertLogs("library_service", level="ERROR"):
            self.assertEqual(service.deduplicate(), [])
        self.assertEqual(errors, ["deduplicate"])
        self.assertEqual(self.repo.count(), 2)

    def test_failed_seed_rolled_back(self) -> None:
        errors = []
        service = ExerciseLibraryService(
            LockedDefinitionRepository(self.db_path),
            self.flags,
            error_sink=lambda op, exc: errors.append(op),
        )
        with self.assertLogs("library_service", level="ERROR"):
            self.assertFalse(service.ensure_seeded())
        self.assertEqual(errors, ["ensure_seeded"])
        self.assertEqual(self.repo.count(), 0)
        self.assertFalse(self.flags.has_flag(SEEDED_FLAG))


if __name__ == "__main__":
    unittest.main()
