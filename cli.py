import argparse
import datetime
import json
import logging
import sys
from typing import Optional

from catalog import DATA_DIR, ExerciseCatalog
from config import load_settings
from db import PlanRepository, StateRepository
from errors import PlanNotFoundError
from exercise_query import ExerciseService
from planner_service import PlannerService
from schedule import WEEKDAY_NAMES
from settings_schema import SettingsSchema
from stats_service import StatisticsService


def build_planner(db_path: str, settings: SettingsSchema) -> PlannerService:
    return PlannerService(
        PlanRepository(db_path), StateRepository(db_path), settings.progression
    )


def build_exercise_service(settings: SettingsSchema, data_dir: Optional[str]) -> ExerciseService:
    catalog = ExerciseCatalog(
        data_dir=data_dir or settings.data_dir or DATA_DIR,
        base_url=settings.dataset_url,
    )
    return ExerciseService(catalog, settings.search, fuzzy=settings.fuzzy_search_enabled)


def list_plans(planner: PlannerService) -> None:
    current = planner.state.load_state().current_plan_id
    for plan in planner.plans.list_plans():
        marker = "*" if plan.id == current else " "
        days = ", ".join(
            f"{WEEKDAY_NAMES[d]}: {name}" for d, name in sorted(plan.day_workouts.items())
        )
        print(f"{marker} {plan.id}  {plan.name} ({plan.duration_weeks} weeks) [{days}]")


def show_suggestions(planner: PlannerService, workout: str) -> None:
    exercises = planner.prescription(workout)
    if not exercises:
        print(f"No exercises prescribed for {workout}")
        return
    for ex in exercises:
        reps = "/".join(str(r) for r in ex.target_reps)
        print(f"{ex.exercise_id}: {ex.sets} x {reps} @ {ex.starting_weight:g}")


def log_session(planner: PlannerService, workout: str, date: Optional[datetime.date]) -> int:
    drafts = planner.start_session(workout)
    if not drafts:
        print(f"No exercises prescribed for {workout}", file=sys.stderr)
        return 1
    state = planner.complete_session(workout, drafts, date)
    session = state.logs[-1]
    print(f"Logged {workout} on {session.date.isoformat()}")
    for ex in session.exercises:
        score = StatisticsService.progress_score(ex)
        print(f"{ex.exercise_id}: {len(ex.sets)} sets @ {ex.target_weight:g} (score {score})")
    return 0


def search(service: ExerciseService, args: argparse.Namespace) -> None:
    result = service.get_all_exercises(
        search=args.query,
        muscle=args.muscle,
        bodypart=args.bodypart,
        equipment=args.equipment,
        offset=args.offset,
        limit=args.limit,
    )
    for record in result.exercises:
        print(f"{record.id}: {record.name} ({', '.join(record.equipments)})")
    print(
        f"Page {result.current_page}/{result.total_pages}, "
        f"{result.total_exercises} exercises"
    )


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Workout tracker commands")
    parser.add_argument("--db", default=None)
    parser.add_argument("--yaml", default="settings.yaml")
    parser.add_argument("--data-dir", default=None)
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("plans")
    sel = sub.add_parser("select")
    sel.add_argument("--plan", required=True)
    sub.add_parser("today")
    sub.add_parser("next")
    sug = sub.add_parser("suggest")
    sug.add_argument("--workout", required=True)
    sub.add_parser("missing")
    lg = sub.add_parser("log")
    lg.add_argument("--workout", required=True)
    lg.add_argument("--date", type=datetime.date.fromisoformat, default=None)

    srch = sub.add_parser("search")
    srch.add_argument("--query", default=None)
    srch.add_argument("--muscle", default=None)
    srch.add_argument("--equipment", default=None)
    srch.add_argument("--bodypart", default=None)
    srch.add_argument("--offset", type=int, default=0)
    srch.add_argument("--limit", type=int, default=None)

    stats = sub.add_parser("stats")
    stats.add_argument("--exercise", required=True)

    args = parser.parse_args(argv)
    settings = load_settings(args.yaml)
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    db_path = args.db or settings.db_path

    if args.cmd == "search":
        search(build_exercise_service(settings, args.data_dir), args)
        return 0

    planner = build_planner(db_path, settings)
    if args.cmd == "plans":
        list_plans(planner)
    elif args.cmd == "select":
        try:
            planner.select_plan(args.plan)
        except PlanNotFoundError as e:
            print(str(e), file=sys.stderr)
            return 1
        print(f"Selected plan {args.plan}")
    elif args.cmd == "today":
        print(planner.due_workout() or "No workout scheduled")
    elif args.cmd == "next":
        print(planner.next_workout() or "No workout scheduled")
    elif args.cmd == "suggest":
        show_suggestions(planner, args.workout)
    elif args.cmd == "missing":
        missing = planner.missing_sessions()
        if not missing:
            print("No missing sessions found")
        for item in missing:
            print(f"{item.date.isoformat()}  {item.workout_type}")
    elif args.cmd == "log":
        return log_session(planner, args.workout, args.date)
    elif args.cmd == "stats":
        logs = planner.state.load_state().logs
        series = StatisticsService().weight_progression(logs, args.exercise)
        print(json.dumps(series, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
