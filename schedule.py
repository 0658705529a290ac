from __future__ import annotations

import datetime

from models import AppState, MissingSession, WorkoutPlan

DAYS_PER_WEEK = 7
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def weekday(date: datetime.date) -> int:
    """Weekday index with 0 = Sunday through 6 = Saturday."""
    return date.isoweekday() % DAYS_PER_WEEK


def workout_for_date(plan: WorkoutPlan | None, date: datetime.date) -> str | None:
    if plan is None:
        return None
    return plan.day_workouts.get(weekday(date))


def next_workout_type(
    plan: WorkoutPlan | None, date: datetime.date, offset: int = 0
) -> str | None:
    """Return the first scheduled workout at or after ``date + offset`` days.

    At most one week of weekdays is scanned, wrapping past Saturday.
    """
    if plan is None:
        return None
    start = weekday(date) + offset
    for step in range(DAYS_PER_WEEK):
        name = plan.day_workouts.get((start + step) % DAYS_PER_WEEK)
        if name:
            return name
    return None


def _local_start_date(
    started_at: datetime.datetime | None, today: datetime.date
) -> datetime.date:
    # ``today`` is a local calendar day, so aware start times are compared in local time
    if started_at is None:
        return today
    if started_at.tzinfo is not None:
        return started_at.astimezone().date()
    return started_at.date()


def find_missing_sessions(
    plan: WorkoutPlan | None, state: AppState, today: datetime.date
) -> list[MissingSession]:
    """List scheduled days from plan start through ``today`` with no logged session."""
    if plan is None:
        return []
    start = _local_start_date(state.plan_started_at, today)
    logged = state.logged_dates()
    missing: list[MissingSession] = []
    day = start
    while day <= today:
        name = workout_for_date(plan, day)
        if name and day not in logged:
            missing.append(MissingSession(date=day, workout_type=name))
        day = day + datetime.timedelta(days=1)
    return missing
