"""Next-session weight suggestions from logged performance."""

from __future__ import annotations

from typing import Sequence

from algorithms import MathTools
from models import ExerciseLog, WorkoutExercise, WorkoutPlan, WorkoutSessionLog
from settings_schema import DEFAULT_PROGRESSION, ProgressionSettings


def suggest_next_weight(
    last_log: ExerciseLog, settings: ProgressionSettings = DEFAULT_PROGRESSION
) -> float:
    """Return the weight to prescribe after ``last_log``.

    Full completion at easy or moderate effort earns an increase, full
    completion at high effort holds, and a large rep shortfall or maximal
    effort deloads. A rep ratio between the deload ratio and 1.0 at easy or
    moderate effort keeps the weight unchanged.
    """
    if not last_log.sets:
        return last_log.target_weight
    last_set = last_log.sets[-1]
    position = len(last_log.sets) - 1
    targets = last_log.target_reps
    target = targets[position] if position < len(targets) else (targets[0] if targets else 0)
    if target <= 0:
        return last_log.target_weight

    ratio = MathTools.rep_ratio(last_set.reps, target)
    weight = last_set.weight
    effort = last_log.effort
    if ratio >= 1 and effort <= settings.easy_effort_max:
        return MathTools.round_half_up(weight * settings.increase_factor)
    if ratio >= 1 and effort == settings.hold_effort:
        return weight
    if ratio < settings.deload_rep_ratio or effort == settings.max_effort:
        return MathTools.round_half_up(weight * settings.decrease_factor)
    # TODO: confirm whether a near-miss at low effort should hold or progress
    return weight


def latest_session(
    logs: Sequence[WorkoutSessionLog], workout_name: str
) -> WorkoutSessionLog | None:
    """Most recent session of ``workout_name``; equal dates keep input order."""
    matching = [log for log in logs if log.workout_type == workout_name]
    if not matching:
        return None
    return sorted(matching, key=lambda log: log.date, reverse=True)[0]


def resolve_prescription(
    plan: WorkoutPlan | None,
    workout_name: str,
    logs: Sequence[WorkoutSessionLog],
    settings: ProgressionSettings = DEFAULT_PROGRESSION,
) -> list[WorkoutExercise]:
    if plan is None:
        return []
    prescribed = plan.workouts.get(workout_name, [])
    session = latest_session(logs, workout_name)
    if session is None:
        return list(prescribed)
    result = []
    for exercise in prescribed:
        last = session.exercise_log(exercise.exercise_id)
        if last is None:
            result.append(exercise)
            continue
        result.append(
            exercise.model_copy(
                update={"starting_weight": suggest_next_weight(last, settings)}
            )
        )
    return result
