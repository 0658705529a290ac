from __future__ import annotations

from typing import Sequence

import pandas as pd

from algorithms import MathTools
from models import ExerciseLog, WorkoutSessionLog


class StatisticsService:
    """Compute progress series from logged sessions."""

    @staticmethod
    def exercise_options(logs: Sequence[WorkoutSessionLog]) -> list[str]:
        return sorted({ex.exercise_id for log in logs for ex in log.exercises})

    @staticmethod
    def _frame(logs: Sequence[WorkoutSessionLog]) -> pd.DataFrame:
        rows = []
        for order, log in enumerate(logs):
            for ex in log.exercises:
                weights = [s.weight for s in ex.sets]
                rows.append(
                    {
                        "order": order,
                        "date": log.date,
                        "workout_type": log.workout_type,
                        "exercise_id": ex.exercise_id,
                        "weight": max(weights) if weights else ex.target_weight,
                        "volume": MathTools.volume((s.reps, s.weight) for s in ex.sets),
                    }
                )
        return pd.DataFrame(
            rows,
            columns=["order", "date", "workout_type", "exercise_id", "weight", "volume"],
        )

    def weight_progression(
        self, logs: Sequence[WorkoutSessionLog], exercise_id: str
    ) -> list[dict]:
        """Heaviest logged weight per session for one exercise, oldest first."""
        df = self._frame(logs)
        df = df[df["exercise_id"] == exercise_id]
        if df.empty:
            return []
        df = df.sort_values(["date", "order"], kind="stable")
        return [
            {"date": row.date.isoformat(), "weight": float(row.weight)}
            for row in df.itertuples(index=False)
        ]

    def session_volume(self, logs: Sequence[WorkoutSessionLog]) -> list[dict]:
        """Total reps times weight per session, oldest first."""
        df = self._frame(logs)
        if df.empty:
            return []
        grouped = (
            df.groupby(["order", "date", "workout_type"], sort=False)["volume"]
            .sum()
            .reset_index()
            .sort_values(["date", "order"], kind="stable")
        )
        return [
            {
                "date": row.date.isoformat(),
                "workoutType": row.workout_type,
                "volume": round(float(row.volume), 2),
            }
            for row in grouped.itertuples(index=False)
        ]

    def effort_progression(
        self, logs: Sequence[WorkoutSessionLog], exercise_id: str
    ) -> list[dict]:
        """Reported effort per session for one exercise, oldest first."""
        rows = [
            (log.date, order, ex.effort)
            for order, log in enumerate(logs)
            for ex in log.exercises
            if ex.exercise_id == exercise_id
        ]
        if not rows:
            return []
        df = pd.DataFrame(rows, columns=["date", "order", "effort"])
        df = df.sort_values(["date", "order"], kind="stable")
        return [
            {"date": row.date.isoformat(), "effort": int(row.effort)}
            for row in df.itertuples(index=False)
        ]

    @staticmethod
    def progress_score(exercise: ExerciseLog) -> int:
        """Completed share of target reps scaled by effort, as a 0-100 score.

        Returns 0 when the targets sum to zero.
        """
        total_target = sum(exercise.target_reps)
        if total_target == 0:
            return 0
        total_reps = sum(s.reps for s in exercise.sets)
        return MathTools.round_half_up(total_reps / total_target * (exercise.effort / 5) * 100)
