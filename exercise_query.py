from __future__ import annotations

import logging
from typing import Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field

from algorithms import FuzzyMatcher, MathTools
from catalog import ExerciseCatalog
from errors import DatasetUnavailable
from models import ExerciseRecord
from settings_schema import DEFAULT_SEARCH, SearchSettings

logger = logging.getLogger(__name__)

SEARCH_KEYS: list[tuple[str, float]] = [
    ("name", 0.4),
    ("target_muscles", 0.25),
    ("body_parts", 0.2),
    ("equipments", 0.15),
    ("secondary_muscles", 0.1),
]


def _sort_fields() -> dict[str, str]:
    fields: dict[str, str] = {}
    for name, info in ExerciseRecord.model_fields.items():
        fields[name] = name
        if info.alias:
            fields[info.alias] = name
    return fields


SORT_FIELDS = _sort_fields()


class SortSpec(BaseModel):
    field: str
    direction: Literal[1, -1] = 1


class ExerciseQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    search: str | None = None
    search_threshold: float | None = Field(None, alias="searchThreshold", ge=0, le=1)
    target_muscles: list[str] = Field(default_factory=list, alias="targetMuscles")
    include_secondary_muscles: bool = Field(False, alias="includeSecondaryMuscles")
    equipments: list[str] = Field(default_factory=list)
    body_parts: list[str] = Field(default_factory=list, alias="bodyParts")
    sort: SortSpec | None = None
    offset: int = 0
    limit: int = DEFAULT_SEARCH.page_limit


class QueryResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exercises: list[ExerciseRecord]
    total_pages: int = Field(alias="totalPages")
    total_exercises: int = Field(alias="totalExercises")
    current_page: int = Field(alias="currentPage")

    @classmethod
    def empty(cls, query: ExerciseQuery) -> "QueryResult":
        return paginate([], query.offset, query.limit)


def substring_search(query: str, records: Sequence[ExerciseRecord]) -> list[ExerciseRecord]:
    term = query.lower()
    return [r for r in records if term in r.name.lower()]


def _intersects(values: Sequence[str], wanted: set[str]) -> bool:
    return any(v in wanted for v in values)


def apply_facets(records: Sequence[ExerciseRecord], query: ExerciseQuery) -> list[ExerciseRecord]:
    result = list(records)
    if query.target_muscles:
        wanted = set(query.target_muscles)
        if query.include_secondary_muscles:
            result = [
                r
                for r in result
                if _intersects(r.target_muscles, wanted)
                or _intersects(r.secondary_muscles, wanted)
            ]
        else:
            result = [r for r in result if _intersects(r.target_muscles, wanted)]
    if query.equipments:
        wanted = set(query.equipments)
        result = [r for r in result if _intersects(r.equipments, wanted)]
    if query.body_parts:
        wanted = set(query.body_parts)
        result = [r for r in result if _intersects(r.body_parts, wanted)]
    return result


def sort_records(records: Sequence[ExerciseRecord], sort: SortSpec) -> list[ExerciseRecord]:
    attr = SORT_FIELDS.get(sort.field)
    if attr is None:
        raise ValueError(f"cannot sort by unknown field {sort.field!r}")
    # sorted() is stable in both directions
    return sorted(records, key=lambda r: getattr(r, attr), reverse=sort.direction == -1)


def paginate(records: Sequence[ExerciseRecord], offset: int, limit: int) -> QueryResult:
    total = len(records)
    if limit <= 0:
        return QueryResult(exercises=[], total_pages=0, total_exercises=total, current_page=1)
    offset = max(offset, 0)
    return QueryResult(
        exercises=list(records[offset : offset + limit]),
        total_pages=MathTools.total_pages(total, limit),
        total_exercises=total,
        current_page=offset // limit + 1,
    )


def query_exercises(
    records: Sequence[ExerciseRecord],
    query: ExerciseQuery,
    fuzzy: bool = True,
    default_threshold: float = DEFAULT_SEARCH.threshold,
) -> QueryResult:
    """Search, filter, sort and paginate ``records``.

    ``fuzzy=False`` restricts search to a case-insensitive substring match on
    the exercise name.
    """
    result: list[ExerciseRecord] = list(records)
    if query.search:
        if fuzzy:
            threshold = (
                query.search_threshold
                if query.search_threshold is not None
                else default_threshold
            )
            result = FuzzyMatcher(SEARCH_KEYS, threshold).search(query.search, result)
        else:
            result = substring_search(query.search, result)
    result = apply_facets(result, query)
    if query.sort is not None:
        result = sort_records(result, query.sort)
    return paginate(result, query.offset, query.limit)


class ExerciseService:
    """Query-facing facade over the exercise catalog."""

    def __init__(
        self,
        catalog: ExerciseCatalog,
        search_settings: SearchSettings | None = None,
        fuzzy: bool = True,
    ) -> None:
        self.catalog = catalog
        self.settings = search_settings or DEFAULT_SEARCH
        self.fuzzy = fuzzy

    def execute(self, query: ExerciseQuery) -> QueryResult:
        try:
            records = self.catalog.load_exercises()
        except DatasetUnavailable as e:
            logger.error("Exercise query returned no results: %s", e)
            return QueryResult.empty(query)
        return query_exercises(
            records, query, fuzzy=self.fuzzy, default_threshold=self.settings.threshold
        )

    def _limit(self, limit: int | None) -> int:
        return self.settings.page_limit if limit is None else limit

    def search_exercises(
        self,
        query: str,
        offset: int = 0,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> QueryResult:
        return self.execute(
            ExerciseQuery(
                search=query,
                search_threshold=threshold,
                offset=offset,
                limit=self._limit(limit),
            )
        )

    def get_all_exercises(
        self,
        search: str | None = None,
        muscle: str | None = None,
        bodypart: str | None = None,
        equipment: str | None = None,
        sort: SortSpec | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> QueryResult:
        return self.execute(
            ExerciseQuery(
                search=search,
                target_muscles=[muscle] if muscle else [],
                body_parts=[bodypart] if bodypart else [],
                equipments=[equipment] if equipment else [],
                sort=sort,
                offset=offset,
                limit=self._limit(limit),
            )
        )

    def filter_exercises(
        self,
        search: str | None = None,
        target_muscles: list[str] | None = None,
        equipments: list[str] | None = None,
        body_parts: list[str] | None = None,
        sort: SortSpec | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> QueryResult:
        return self.execute(
            ExerciseQuery(
                search=search,
                target_muscles=target_muscles or [],
                equipments=equipments or [],
                body_parts=body_parts or [],
                sort=sort,
                offset=offset,
                limit=self._limit(limit),
            )
        )

    def get_exercises_by_body_part(
        self, body_part: str, offset: int = 0, limit: int | None = None
    ) -> QueryResult:
        return self.execute(
            ExerciseQuery(body_parts=[body_part], offset=offset, limit=self._limit(limit))
        )

    def get_exercises_by_equipment(
        self, equipment: str, offset: int = 0, limit: int | None = None
    ) -> QueryResult:
        return self.execute(
            ExerciseQuery(equipments=[equipment], offset=offset, limit=self._limit(limit))
        )

    def get_exercises_by_muscle(
        self,
        muscle: str,
        include_secondary: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> QueryResult:
        return self.execute(
            ExerciseQuery(
                target_muscles=[muscle],
                include_secondary_muscles=include_secondary,
                offset=offset,
                limit=self._limit(limit),
            )
        )

    def get_exercise_by_id(self, exercise_id: str) -> ExerciseRecord | None:
        try:
            return self.catalog.get_exercise(exercise_id)
        except DatasetUnavailable as e:
            logger.error("Exercise lookup failed: %s", e)
            return None
