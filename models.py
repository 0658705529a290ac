"""Closed, versioned schema for catalog records, plans and session logs.

All persisted shapes use the camelCase keys of the stored JSON blobs while the
Python attributes are snake_case. Records are validated once at the load
boundary; code past that point never touches raw dictionaries.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from errors import MalformedRecordError

logger = logging.getLogger(__name__)

# Version 1 is the flat log shape with actualReps/actualWeight per exercise.
SCHEMA_VERSION = 2


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ExerciseRecord(_Record):
    id: str = Field(
        validation_alias=AliasChoices("id", "exerciseId"), serialization_alias="id"
    )
    name: str
    equipments: list[str]
    target_muscles: list[str] = Field(alias="targetMuscles")
    body_parts: list[str] = Field(alias="bodyParts")
    secondary_muscles: list[str] = Field(default_factory=list, alias="secondaryMuscles")
    instructions: list[str] = Field(default_factory=list)


class WorkoutExercise(_Record):
    exercise_id: str = Field(alias="exerciseId")
    target_reps: list[int] = Field(alias="targetReps")
    starting_weight: float = Field(alias="startingWeight", ge=0)
    sets: int = Field(gt=0)


class WorkoutPlan(_Record):
    id: str
    name: str
    duration_weeks: int = Field(alias="durationWeeks", gt=0)
    day_workouts: dict[int, str] = Field(alias="dayWorkouts")
    workouts: dict[str, list[WorkoutExercise]]

    @model_validator(mode="after")
    def _check_schedule(self) -> "WorkoutPlan":
        for day, name in self.day_workouts.items():
            if not 0 <= day <= 6:
                raise ValueError(f"weekday {day} outside 0..6")
            if name not in self.workouts:
                raise ValueError(f"weekday {day} refers to unknown workout {name!r}")
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "WorkoutPlan":
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedRecordError(f"invalid plan: {e}") from e


class SetLog(_Record):
    reps: int = Field(ge=0)
    weight: float = Field(ge=0)


class ExerciseLog(_Record):
    exercise_id: str = Field(alias="exerciseId")
    target_reps: list[int] = Field(alias="targetReps")
    target_weight: float = Field(alias="targetWeight", ge=0)
    sets: list[SetLog] = Field(default_factory=list)
    effort: int = Field(ge=1, le=5)
    notes: str = ""

    @model_validator(mode="before")
    @classmethod
    def _migrate_flat_log(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "sets" not in data and "actualReps" in data:
            data["sets"] = [
                {
                    "reps": data.pop("actualReps"),
                    "weight": data.pop("actualWeight", data.get("targetWeight", 0)),
                }
            ]
        target = data.get("targetReps")
        if isinstance(target, (int, float)) and not isinstance(target, bool):
            data["targetReps"] = [int(target)]
        return data


class WorkoutSessionLog(_Record):
    date: datetime.date
    workout_type: str = Field(alias="workoutType")
    exercises: list[ExerciseLog] = Field(default_factory=list)

    def exercise_log(self, exercise_id: str) -> ExerciseLog | None:
        for log in self.exercises:
            if log.exercise_id == exercise_id:
                return log
        return None


class MissingSession(_Record):
    date: datetime.date
    workout_type: str = Field(alias="workoutType")


class AppState(_Record):
    """Process-wide tracker state, passed explicitly to every operation."""

    schema_version: int = Field(SCHEMA_VERSION, alias="schemaVersion")
    current_plan_id: str | None = Field(None, alias="currentPlanId")
    plan_started_at: datetime.datetime | None = Field(None, alias="planStartedAt")
    last_session_date: datetime.date | None = Field(None, alias="lastSessionDate")
    logs: list[WorkoutSessionLog] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict, drop_malformed_logs: bool = False) -> "AppState":
        """Validate a stored state blob, migrating older schema versions.

        With ``drop_malformed_logs`` a session log that fails validation is
        skipped with a warning instead of rejecting the whole state.
        """
        if not isinstance(data, dict):
            raise MalformedRecordError("state must be a mapping")
        version = data.get("schemaVersion", 1)
        if not isinstance(version, int) or version > SCHEMA_VERSION:
            raise MalformedRecordError(f"unsupported schema version: {version!r}")
        data = dict(data)
        raw_logs = data.pop("logs", None) or []
        logs: list[WorkoutSessionLog] = []
        for index, raw in enumerate(raw_logs):
            try:
                logs.append(WorkoutSessionLog.model_validate(raw))
            except ValidationError as e:
                if not drop_malformed_logs:
                    raise MalformedRecordError(f"invalid session log #{index}: {e}") from e
                logger.warning("Skipping malformed session log #%d: %s", index, e)
        data["schemaVersion"] = SCHEMA_VERSION
        try:
            return cls.model_validate({**data, "logs": logs})
        except ValidationError as e:
            raise MalformedRecordError(f"invalid state: {e}") from e

    def with_plan(
        self, plan_id: str, started_at: datetime.datetime
    ) -> "AppState":
        return self.model_copy(
            update={"current_plan_id": plan_id, "plan_started_at": started_at}
        )

    def with_session(self, session: WorkoutSessionLog) -> "AppState":
        return self.model_copy(
            update={
                "logs": [*self.logs, session],
                "last_session_date": session.date,
            }
        )

    def logged_dates(self) -> set[datetime.date]:
        return {log.date for log in self.logs}
