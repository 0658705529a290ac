import sqlite3
import aiosqlite
import json
import logging
import os
import datetime
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional

from errors import MalformedRecordError
from models import AppState, WorkoutPlan

logger = logging.getLogger(__name__)

STATE_KEY = "betterTrainingData"
PLAN_KEY_PREFIX = "betterTrainingPlan_"
DEFAULT_PLANS_PATH = os.path.join(os.path.dirname(__file__), "data", "default_plans.json")


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "kv_store": (
            """CREATE TABLE kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );""",
            ["key", "value", "updated_at"],
        ),
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)

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

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)
        common = [c for c in existing_cols if c in columns]
        missing = [c for c in columns if c not in existing_cols]
        if common:
            cols = ", ".join(common)
            if missing:
                defaults = ", ".join("''" for _ in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;")
        conn.execute(f"DROP TABLE {table}_old;")


class BaseRepository(Database):
    """Base repository providing key-value helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def get_value(self, key: str) -> Optional[str]:
        rows = self.fetch_all("SELECT value FROM kv_store WHERE key = ?;", (key,))
        return rows[0][0] if rows else None

    def set_value(self, key: str, value: str) -> None:
        self.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at;",
            (key, value, datetime.datetime.now().isoformat(timespec="seconds")),
        )

    def delete_value(self, key: str) -> None:
        self.execute("DELETE FROM kv_store WHERE key = ?;", (key,))

    def keys_with_prefix(self, prefix: str) -> List[str]:
        rows = self.fetch_all(
            "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key;",
            (len(prefix), prefix),
        )
        return [r[0] for r in rows]


class PlanRepository(BaseRepository):
    """Repository for stored workout plans."""

    def __init__(self, db_path: str = "workout.db", seed_defaults: bool = True) -> None:
        super().__init__(db_path)
        if seed_defaults:
            self._init_default_plans()

    def _init_default_plans(self) -> None:
        if not os.path.exists(DEFAULT_PLANS_PATH):
            return
        with open(DEFAULT_PLANS_PATH, "r", encoding="utf-8") as f:
            records = json.load(f)
        for record in records:
            plan = WorkoutPlan.from_dict(record)
            if self.get_value(PLAN_KEY_PREFIX + plan.id) is None:
                self.save_plan(plan)
                logger.info("Default plan %s initialized", plan.id)

    def save_plan(self, plan: WorkoutPlan) -> None:
        self.set_value(PLAN_KEY_PREFIX + plan.id, json.dumps(plan.to_dict()))

    def load_plan(self, plan_id: str) -> Optional[WorkoutPlan]:
        raw = self.get_value(PLAN_KEY_PREFIX + plan_id)
        if raw is None:
            return None
        try:
            return WorkoutPlan.from_dict(json.loads(raw))
        except (ValueError, MalformedRecordError) as e:
            logger.error("Error loading plan %s: %s", plan_id, e)
            return None

    def list_plans(self) -> List[WorkoutPlan]:
        plans: List[WorkoutPlan] = []
        for key in self.keys_with_prefix(PLAN_KEY_PREFIX):
            plan = self.load_plan(key[len(PLAN_KEY_PREFIX):])
            if plan is not None:
                plans.append(plan)
        return plans

    def delete(self, plan_id: str) -> None:
        self.delete_value(PLAN_KEY_PREFIX + plan_id)


def _decode_state(raw: Optional[str]) -> AppState:
    if raw is None:
        return AppState()
    try:
        return AppState.from_dict(json.loads(raw), drop_malformed_logs=True)
    except (ValueError, MalformedRecordError) as e:
        raise MalformedRecordError(f"stored state is unreadable: {e}") from e


def _encode_state(state: AppState) -> str:
    return json.dumps(state.to_dict())


class StateRepository(BaseRepository):
    """Repository for the single tracker state blob."""

    def load_state(self) -> AppState:
        return _decode_state(self.get_value(STATE_KEY))

    def save_state(self, state: AppState) -> None:
        self.set_value(STATE_KEY, _encode_state(state))

    def reset(self) -> None:
        self.delete_value(STATE_KEY)


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

    async def get_value(self, key: str) -> Optional[str]:
        rows = await self.fetch_all("SELECT value FROM kv_store WHERE key = ?;", (key,))
        return rows[0][0] if rows else None

    async def set_value(self, key: str, value: str) -> None:
        await self.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at;",
            (key, value, datetime.datetime.now().isoformat(timespec="seconds")),
        )


class AsyncStateRepository(AsyncBaseRepository):
    """Async repository for the tracker state blob."""

    async def load_state(self) -> AppState:
        return _decode_state(await self.get_value(STATE_KEY))

    async def save_state(self, state: AppState) -> None:
        await self.set_value(STATE_KEY, _encode_state(state))


class AsyncPlanRepository(AsyncBaseRepository):
    """Async read access to stored plans."""

    async def load_plan(self, plan_id: str) -> Optional[WorkoutPlan]:
        raw = await self.get_value(PLAN_KEY_PREFIX + plan_id)
        if raw is None:
            return None
        try:
            return WorkoutPlan.from_dict(json.loads(raw))
        except (ValueError, MalformedRecordError) as e:
            logger.error("Error loading plan %s: %s", plan_id, e)
            return None
