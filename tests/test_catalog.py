import os
import sys
import json
import asyncio
import shutil
import tempfile
import unittest
from unittest import mock

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from catalog import DATA_DIR, ExerciseCatalog
from errors import DatasetUnavailable

GOOD = {
    "exerciseId": "leg-press",
    "name": "Leg Press",
    "equipments": ["leverage machine"],
    "targetMuscles": ["quads"],
    "bodyParts": ["upper legs"],
    "secondaryMuscles": ["glutes"],
    "instructions": ["Press."],
}
MISSING_NAME = {
    "exerciseId": "broken",
    "equipments": [],
    "targetMuscles": [],
    "bodyParts": [],
}


class ExerciseCatalogTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.mkdtemp()

    def tearDown(self) -> None:
        shutil.rmtree(self.tmp, ignore_errors=True)

    def write(self, name: str, data) -> None:
        with open(os.path.join(self.tmp, f"{name}.json"), "w", encoding="utf-8") as f:
            json.dump(data, f)

    def test_malformed_records_are_dropped(self) -> None:
        self.write("exercises", [GOOD, MISSING_NAME])
        catalog = ExerciseCatalog(data_dir=self.tmp)
        with self.assertLogs("catalog", level="WARNING"):
            records = catalog.load_exercises()
        self.assertEqual([r.id for r in records], ["leg-press"])

    def test_loaded_once_and_cached(self) -> None:
        self.write("exercises", [GOOD])
        catalog = ExerciseCatalog(data_dir=self.tmp)
        first = catalog.load_exercises()
        os.remove(os.path.join(self.tmp, "exercises.json"))
        self.assertIs(catalog.load_exercises(), first)
        self.assertTrue(catalog.is_cached("exercises"))

    def test_missing_file(self) -> None:
        catalog = ExerciseCatalog(data_dir=self.tmp)
        with self.assertLogs("catalog", level="ERROR"):
            with self.assertRaises(DatasetUnavailable) as ctx:
                catalog.load_exercises()
        self.assertEqual(ctx.exception.resource, "exercises")
        self.assertFalse(catalog.is_cached("exercises"))

    def test_invalid_json(self) -> None:
        with open(os.path.join(self.tmp, "exercises.json"), "w", encoding="utf-8") as f:
            f.write("[{not json")
        catalog = ExerciseCatalog(data_dir=self.tmp)
        with self.assertLogs("catalog", level="ERROR"):
            with self.assertRaises(DatasetUnavailable):
                catalog.load_exercises()

    def test_not_an_array(self) -> None:
        self.write("exercises", {"exercises": []})
        with self.assertRaises(DatasetUnavailable):
            ExerciseCatalog(data_dir=self.tmp).load_exercises()

    def test_name_lists(self) -> None:
        self.write("equipments", [{"name": "cable"}, "barbell", 3])
        self.write("bodyparts", [{"name": "back"}])
        self.write("muscles", [{"name": "lats"}])
        catalog = ExerciseCatalog(data_dir=self.tmp)
        self.assertEqual(catalog.load_equipments(), ["cable", "barbell"])
        self.assertEqual(catalog.load_body_parts(), ["back"])
        self.assertEqual(catalog.load_muscles(), ["lats"])

    def test_get_exercise(self) -> None:
        self.write("exercises", [GOOD])
        catalog = ExerciseCatalog(data_dir=self.tmp)
        self.assertEqual(catalog.get_exercise("leg-press").name, "Leg Press")
        self.assertIsNone(catalog.get_exercise("nope"))

    def test_remote_dataset_fetched_once(self) -> None:
        response = mock.Mock()
        response.json.return_value = [GOOD]
        response.raise_for_status.return_value = None
        with mock.patch("catalog.requests.get", return_value=response) as get:
            catalog = ExerciseCatalog(base_url="https://example.test/data/")
            catalog.load_exercises()
            catalog.load_json("exercises")
        get.assert_called_once_with("https://example.test/data/exercises.json", timeout=10.0)

    def test_async_load(self) -> None:
        self.write("muscles", [{"name": "lats"}])
        catalog = ExerciseCatalog(data_dir=self.tmp)
        data = asyncio.run(catalog.aload("muscles"))
        self.assertEqual(data, [{"name": "lats"}])

    def test_bundled_dataset(self) -> None:
        catalog = ExerciseCatalog(data_dir=DATA_DIR)
        records = catalog.load_exercises()
        self.assertTrue(records)
        self.assertEqual(len({r.id for r in records}), len(records))
        self.assertIsNotNone(catalog.get_exercise("leg-press"))


if __name__ == "__main__":
    unittest.main()
