from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from typing import Any

import requests
from pydantic import ValidationError

from errors import DatasetUnavailable
from models import ExerciseRecord

logger = logging.getLogger(__name__)

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")
RESOURCES = ("exercises", "equipments", "bodyparts", "muscles")


class ExerciseCatalog:
    """Read-only access to the static exercise dataset.

    Resources are addressed by name (``exercises``, ``equipments``,
    ``bodyparts``, ``muscles``) and resolved against either a local directory
    or an http(s) base URL. Each resolved location is fetched once; later
    calls return the cached value. There is no refresh path.
    """

    def __init__(
        self,
        data_dir: str = DATA_DIR,
        base_url: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.data_dir = data_dir
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self._cache: dict[str, Any] = {}
        self._lock = threading.Lock()

    def location(self, name: str) -> str:
        filename = name if name.endswith(".json") else f"{name}.json"
        if self.base_url:
            return f"{self.base_url}/{filename}"
        return os.path.join(self.data_dir, filename)

    def _fetch(self, location: str) -> Any:
        if location.startswith(("http://", "https://")):
            resp = requests.get(location, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        with open(location, "r", encoding="utf-8") as f:
            return json.load(f)

    def load_json(self, name: str) -> Any:
        location = self.location(name)
        with self._lock:
            if location in self._cache:
                return self._cache[location]
            try:
                data = self._fetch(location)
            except (OSError, ValueError, requests.RequestException) as e:
                logger.error("Error loading dataset %s: %s", location, e)
                raise DatasetUnavailable(name, str(e)) from e
            self._cache[location] = data
            return data

    async def aload(self, name: str) -> Any:
        return await asyncio.to_thread(self.load_json, name)

    def load_exercises(self) -> list[ExerciseRecord]:
        location = self.location("exercises")
        key = f"records:{location}"
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached
        raw = self.load_json("exercises")
        if not isinstance(raw, list):
            raise DatasetUnavailable("exercises", "expected a JSON array")
        records: list[ExerciseRecord] = []
        for index, item in enumerate(raw):
            try:
                records.append(ExerciseRecord.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "Dropping malformed exercise record #%d: %s",
                    index,
                    e.errors()[0]["msg"] if e.errors() else e,
                )
        with self._lock:
            return self._cache.setdefault(key, records)

    def load_equipments(self) -> list[str]:
        return self._load_names("equipments")

    def load_body_parts(self) -> list[str]:
        return self._load_names("bodyparts")

    def load_muscles(self) -> list[str]:
        return self._load_names("muscles")

    def _load_names(self, name: str) -> list[str]:
        raw = self.load_json(name)
        if not isinstance(raw, list):
            raise DatasetUnavailable(name, "expected a JSON array")
        names = []
        for item in raw:
            if isinstance(item, str):
                names.append(item)
            elif isinstance(item, dict) and isinstance(item.get("name"), str):
                names.append(item["name"])
        return names

    def get_exercise(self, exercise_id: str) -> ExerciseRecord | None:
        for record in self.load_exercises():
            if record.id == exercise_id:
                return record
        return None

    def is_cached(self, name: str) -> bool:
        return self.location(name) in self._cache
