import os
import sys
import json
import sqlite3
import datetime
import tempfile
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import PLAN_KEY_PREFIX, STATE_KEY, PlanRepository, StateRepository
from errors import MalformedRecordError
from models import AppState, ExerciseLog, SetLog, WorkoutPlan, WorkoutSessionLog


class DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        fd, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(fd)

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)


class PlanRepositoryTest(DatabaseTestCase):
    def test_default_plan_seeded_once(self) -> None:
        repo = PlanRepository(self.db_path)
        self.assertEqual([p.id for p in repo.list_plans()], ["3m-machine"])
        plan = repo.load_plan("3m-machine")
        self.assertEqual(plan.day_workouts[1], "FullBodyA")
        self.assertEqual(plan.workouts["FullBodyA"][0].exercise_id, "leg-press")

        custom = plan.model_copy(update={"name": "Edited"})
        repo.save_plan(custom)
        PlanRepository(self.db_path)
        self.assertEqual(repo.load_plan("3m-machine").name, "Edited")

    def test_save_and_load(self) -> None:
        repo = PlanRepository(self.db_path, seed_defaults=False)
        plan = WorkoutPlan(
            id="custom",
            name="Custom",
            duration_weeks=6,
            day_workouts={3: "Upper"},
            workouts={"Upper": []},
        )
        repo.save_plan(plan)
        self.assertEqual(repo.load_plan("custom"), plan)
        self.assertIsNone(repo.load_plan("unknown"))
        repo.delete("custom")
        self.assertEqual(repo.list_plans(), [])

    def test_corrupt_plan_is_skipped(self) -> None:
        repo = PlanRepository(self.db_path, seed_defaults=False)
        repo.set_value(PLAN_KEY_PREFIX + "broken", "{not json")
        with self.assertLogs("db", level="ERROR"):
            self.assertIsNone(repo.load_plan("broken"))


class StateRepositoryTest(DatabaseTestCase):
    def test_empty_store_gives_default_state(self) -> None:
        state = StateRepository(self.db_path).load_state()
        self.assertEqual(state, AppState())

    def test_round_trip(self) -> None:
        repo = StateRepository(self.db_path)
        session = WorkoutSessionLog(
            date=datetime.date(2024, 1, 1),
            workout_type="FullBodyA",
            exercises=[
                ExerciseLog(
                    exercise_id="leg-press",
                    target_reps=[12, 12],
                    target_weight=120,
                    sets=[SetLog(reps=12, weight=120), SetLog(reps=11, weight=120)],
                    effort=3,
                    notes="felt fine",
                )
            ],
        )
        state = AppState().with_plan(
            "3m-machine", datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
        ).with_session(session)
        repo.save_state(state)
        self.assertEqual(StateRepository(self.db_path).load_state(), state)
        repo.reset()
        self.assertEqual(repo.load_state(), AppState())

    def test_corrupt_blob_raises(self) -> None:
        repo = StateRepository(self.db_path)
        repo.set_value(STATE_KEY, "[[[")
        with self.assertRaises(MalformedRecordError):
            repo.load_state()

    def test_legacy_blob_migrates(self) -> None:
        repo = StateRepository(self.db_path)
        legacy = {
            "currentPlanId": "3m-machine",
            "logs": [
                {
                    "date": "2024-01-01",
                    "workoutType": "FullBodyA",
                    "exercises": [
                        {
                            "exerciseId": "leg-press",
                            "targetReps": 12,
                            "targetWeight": 120,
                            "actualReps": 12,
                            "actualWeight": 120,
                            "effort": 2,
                        }
                    ],
                }
            ],
        }
        repo.set_value(STATE_KEY, json.dumps(legacy))
        state = repo.load_state()
        self.assertEqual(state.current_plan_id, "3m-machine")
        self.assertEqual(state.logs[0].exercises[0].target_reps, [12])
        repo.save_state(state)
        stored = json.loads(repo.get_value(STATE_KEY))
        self.assertEqual(stored["schemaVersion"], 2)
        self.assertNotIn("actualReps", stored["logs"][0]["exercises"][0])


class SchemaUpgradeTest(DatabaseTestCase):
    def test_two_column_store_keeps_rows(self) -> None:
        conn = sqlite3.connect(self.db_path)
        conn.execute("CREATE TABLE kv_store (key TEXT PRIMARY KEY, value TEXT NOT NULL);")
        conn.execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?);",
            (STATE_KEY, json.dumps({"currentPlanId": "3m-machine"})),
        )
        conn.commit()
        conn.close()

        repo = StateRepository(self.db_path)
        self.assertEqual(repo.load_state().current_plan_id, "3m-machine")
        columns = [row[1] for row in repo.fetch_all("PRAGMA table_info(kv_store);")]
        self.assertEqual(columns, ["key", "value", "updated_at"])
        repo.save_state(AppState())
        self.assertIsNone(repo.load_state().current_plan_id)


if __name__ == "__main__":
    unittest.main()
