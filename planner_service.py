from __future__ import annotations

import datetime
import logging
import re

from db import PlanRepository, StateRepository
from errors import PlanNotFoundError
from models import (
    AppState,
    ExerciseLog,
    MissingSession,
    SetLog,
    WorkoutExercise,
    WorkoutPlan,
    WorkoutSessionLog,
)
from progression import resolve_prescription
from schedule import find_missing_sessions, next_workout_type, workout_for_date
from settings_schema import DEFAULT_PROGRESSION, ProgressionSettings

logger = logging.getLogger(__name__)


def plan_slug(name: str) -> str:
    """Lowercase ``name``, turn whitespace runs into dashes and drop anything else."""
    slug = re.sub(r"\s+", "-", name.lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


class PlannerService:
    """Connects stored plans and session history to the scheduling logic."""

    def __init__(
        self,
        plan_repo: PlanRepository,
        state_repo: StateRepository,
        progression: ProgressionSettings | None = None,
    ) -> None:
        self.plans = plan_repo
        self.state = state_repo
        self.progression = progression or DEFAULT_PROGRESSION

    def select_plan(
        self, plan_id: str, now: datetime.datetime | None = None
    ) -> AppState:
        if self.plans.load_plan(plan_id) is None:
            raise PlanNotFoundError(plan_id)
        started = now or datetime.datetime.now().astimezone()
        state = self.state.load_state().with_plan(plan_id, started)
        self.state.save_state(state)
        logger.info("Plan %s selected", plan_id)
        return state

    def create_plan(
        self,
        name: str,
        duration_weeks: int,
        day_workouts: dict[int, str],
        workouts: dict[str, list[WorkoutExercise]],
        now: datetime.datetime | None = None,
    ) -> WorkoutPlan:
        """Store a user-built plan and make it the current plan.

        The plan id is derived from ``name``; an existing plan with the same
        id is replaced. Raises ``ValueError`` for a blank name or a plan
        without any exercise.
        """
        if not name.strip():
            raise ValueError("plan name must not be blank")
        if not any(workouts.values()):
            raise ValueError("a plan needs at least one exercise")
        plan_id = plan_slug(name)
        if not plan_id:
            raise ValueError(f"cannot derive a plan id from {name!r}")
        plan = WorkoutPlan.from_dict(
            {
                "id": plan_id,
                "name": name,
                "durationWeeks": duration_weeks,
                "dayWorkouts": day_workouts,
                "workouts": workouts,
            }
        )
        self.plans.save_plan(plan)
        logger.info("Plan %s created", plan_id)
        self.select_plan(plan_id, now)
        return plan

    def current_plan(self, state: AppState | None = None) -> WorkoutPlan | None:
        state = state or self.state.load_state()
        if not state.current_plan_id:
            return None
        plan = self.plans.load_plan(state.current_plan_id)
        if plan is None:
            logger.warning("Current plan %s no longer exists", state.current_plan_id)
        return plan

    def due_workout(self, date: datetime.date | None = None) -> str | None:
        """Workout due on ``date``, or the next scheduled one after it."""
        return next_workout_type(self.current_plan(), date or datetime.date.today(), 0)

    def next_workout(self, date: datetime.date | None = None) -> str | None:
        """Workout due after the session on ``date``."""
        return next_workout_type(self.current_plan(), date or datetime.date.today(), 1)

    def scheduled_workout(self, date: datetime.date) -> str | None:
        return workout_for_date(self.current_plan(), date)

    def prescription(self, workout_name: str) -> list[WorkoutExercise]:
        state = self.state.load_state()
        return resolve_prescription(
            self.current_plan(state), workout_name, state.logs, self.progression
        )

    def start_session(self, workout_name: str) -> list[ExerciseLog]:
        """Draft exercise logs prefilled with the suggested weights."""
        drafts = []
        for exercise in self.prescription(workout_name):
            reps = exercise.target_reps or [0]
            drafts.append(
                ExerciseLog(
                    exercise_id=exercise.exercise_id,
                    target_reps=list(exercise.target_reps),
                    target_weight=exercise.starting_weight,
                    sets=[
                        SetLog(
                            reps=reps[i] if i < len(reps) else reps[0],
                            weight=exercise.starting_weight,
                        )
                        for i in range(exercise.sets)
                    ],
                    effort=self.progression.default_effort,
                )
            )
        return drafts

    def complete_session(
        self,
        workout_name: str,
        exercises: list[ExerciseLog],
        date: datetime.date | None = None,
    ) -> AppState:
        """Append a finished session and persist it before returning."""
        session = WorkoutSessionLog(
            date=date or datetime.date.today(),
            workout_type=workout_name,
            exercises=exercises,
        )
        state = self.state.load_state().with_session(session)
        self.state.save_state(state)
        logger.info("Logged %s session for %s", workout_name, session.date)
        return state

    def is_completed(self, date: datetime.date) -> bool:
        return date in self.state.load_state().logged_dates()

    def missing_sessions(self, today: datetime.date | None = None) -> list[MissingSession]:
        state = self.state.load_state()
        return find_missing_sessions(
            self.current_plan(state), state, today or datetime.date.today()
        )
