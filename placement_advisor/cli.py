"""Command-line interface for the placement advisor."""

from __future__ import annotations

import argparse
import json
import logging
from typing import List, Optional

from placement_advisor.config import AdvisorConfig, load_config
from placement_advisor.domain.db import DEFAULT_DB_URL, get_session, init_database
from placement_advisor.domain.repositories import DueSoonJobRepository, SqlSnapshotSource
from placement_advisor.domain.types import (
    CandidateSlot,
    DueSoonPlacementRequest,
    MoveJobRequest,
    ScoreBreakdown,
)
from placement_advisor.engine.advisor import PlacementAdvisor
from placement_advisor.errors import AdvisorError, AdvisorValidationError, RecordNotFoundError
from placement_advisor.io.export_csv import candidates_frame, export_candidates_csv
from placement_advisor.io.import_csv import (
    import_availability_csv,
    import_due_soon_csv,
    import_schedules_csv,
    import_technicians_csv,
)
from placement_advisor.services.calendar import parse_date_key
from placement_advisor.services.estimates import estimate_job_hours

TABLE_COLUMNS = ["job_id", "rank", "date", "technician_names", "score", "reason"]


def _split(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]


def _configure_logging(args: argparse.Namespace, cfg: AdvisorConfig) -> None:
    level = (args.log_level or cfg.log_level).upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _print_result(result, args: argparse.Namespace, job_id: Optional[str] = None) -> None:
    if args.json:
        print(json.dumps(result.as_dict(), indent=2))
        return
    df = candidates_frame(result, job_id)
    if df.empty:
        print("[INFO] No viable slot in the requested window")
    else:
        print(df[TABLE_COLUMNS].to_string(index=False))


def _cmd_init_db(args: argparse.Namespace) -> None:
    """Initialize the database."""
    init_database(args.db)
    print(f"[OK] Database initialized: {args.db}")


def _cmd_import_csv(args: argparse.Namespace) -> None:
    """Import CSV data into database."""
    session = get_session(args.db)

    try:
        if args.technicians:
            count = import_technicians_csv(session, args.technicians)
            print(f"[OK] Imported {count} technicians")

        if args.availability:
            count = import_availability_csv(session, args.availability)
            print(f"[OK] Imported {count} availability blocks")

        if args.schedules:
            count = import_schedules_csv(session, args.schedules)
            print(f"[OK] Imported {count} schedules")

        if args.due_soon:
            count = import_due_soon_csv(session, args.due_soon)
            print(f"[OK] Imported {count} due-soon jobs")

        print("[OK] CSV import complete")

    except Exception as e:
        session.rollback()
        print(f"[ERROR] Import failed: {e}")
        raise
    finally:
        session.close()


def _cmd_due_soon(args: argparse.Namespace) -> None:
    """Rank placements for unscheduled due-soon jobs."""
    cfg = args.cfg
    session = get_session(args.db)

    try:
        job_ids = _split(args.jobs)
        if job_ids is None:
            due_by = parse_date_key(args.date_to)
            if due_by is None:
                raise AdvisorValidationError(f"Invalid --to {args.date_to!r}, expected YYYY-MM-DD")
            job_ids = [j.job_id for j in DueSoonJobRepository.get_unscheduled_due_by(session, due_by)]
            if not args.json:
                print(f"[INFO] {len(job_ids)} unscheduled job(s) due by {due_by}")

        request = DueSoonPlacementRequest(
            job_ids=tuple(job_ids),
            date_from=args.date_from,
            date_to=args.date_to,
            technician_ids=_split(args.technicians),
            crew_size=args.crew_size or cfg.policy.crew_size,
            due_policy=args.due_policy or cfg.policy.due_policy,
            max_candidates=args.max,
        )
        advisor = PlacementAdvisor(SqlSnapshotSource(session), cfg, workers=args.workers)
        result = advisor.analyze_due_soon_placement(request)

        _print_result(result, args)
        if args.out:
            count = export_candidates_csv(result, args.out)
            print(f"[OK] Exported {count} candidates to {args.out}")

    except AdvisorError as e:
        print(f"[ERROR] Due-soon placement failed: {e}")
        raise
    finally:
        session.close()


def _cmd_move_job(args: argparse.Namespace) -> None:
    """Rank new placements for an existing schedule entry."""
    cfg = args.cfg
    session = get_session(args.db)

    try:
        request = MoveJobRequest(
            schedule_id=args.schedule,
            date_from=args.date_from,
            date_to=args.date_to,
            technician_ids=_split(args.technicians),
            crew_size=args.crew_size or cfg.move_job.crew_size,
            due_policy=args.due_policy or cfg.move_job.due_policy,
            buffer_minutes=args.buffer if args.buffer is not None else cfg.move_job.buffer_minutes,
            max_candidates=args.max or cfg.move_job.max_candidates,
        )
        result = PlacementAdvisor(SqlSnapshotSource(session), cfg).analyze_move_job(request)

        _print_result(result, args, job_id=args.schedule)
        if args.out:
            count = export_candidates_csv(result, args.out, job_id=args.schedule)
            print(f"[OK] Exported {count} candidates to {args.out}")

    except AdvisorError as e:
        print(f"[ERROR] Move-job analysis failed: {e}")
        raise
    finally:
        session.close()


def _job_hours(source: SqlSnapshotSource, job_id: str) -> float:
    schedule = source.get_schedule(job_id)
    if schedule is not None:
        return estimate_job_hours(schedule.hours)
    jobs = source.get_due_soon_jobs([job_id])
    if jobs:
        return jobs[0].estimated_hours
    raise RecordNotFoundError(f"No schedule or due-soon job {job_id}")


def _cmd_apply(args: argparse.Namespace) -> None:
    """Re-validate a chosen slot and write it."""
    cfg = args.cfg
    session = get_session(args.db)

    try:
        day = parse_date_key(args.date)
        if day is None:
            raise AdvisorValidationError(f"Invalid --date {args.date!r}, expected YYYY-MM-DD")
        technician_ids = tuple(_split(args.technicians) or ())
        if not technician_ids:
            raise AdvisorValidationError("--technicians is required")

        source = SqlSnapshotSource(session)
        hours = args.hours if args.hours is not None else _job_hours(source, args.job)
        candidate = CandidateSlot(
            date=day,
            technician_ids=technician_ids,
            score=0.0,
            breakdown=ScoreBreakdown(0.0, 0, 0.0, 0.0),
            reason="chosen on the command line",
        )
        start = PlacementAdvisor(source, cfg).apply_placement(args.job, candidate, hours, args.buffer)
        print(f"[OK] Applied {args.job}: {start.isoformat()} with {', '.join(technician_ids)}")

    except AdvisorError as e:
        session.rollback()
        print(f"[ERROR] Apply failed: {e}")
        for reason in getattr(e, "reasons", []):
            print(f"  - {reason}")
        raise
    finally:
        session.close()


def _add_window(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--from", dest="date_from", required=True, help="Window start (YYYY-MM-DD)")
    parser.add_argument("--to", dest="date_to", required=True, help="Window end (YYYY-MM-DD, inclusive)")
    parser.add_argument("--technicians", help="Comma-separated technician ids (default: whole roster)")
    parser.add_argument("--max", type=int, help="Candidates to return")
    parser.add_argument("--out", help="Optional: export candidates to CSV")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="placement-advisor",
        description="Ranked schedule placement suggestions for field-service jobs",
    )

    # Global options
    parser.add_argument("--db", default=DEFAULT_DB_URL, help=f"Database URL (default: {DEFAULT_DB_URL})")
    parser.add_argument("--config", help="Path to config YAML or JSON")
    parser.add_argument("--log-level", help="Logging level (default: from config)")

    sub = parser.add_subparsers(dest="command", required=True)

    # init-db command
    init = sub.add_parser("init-db", help="Initialize database")
    init.set_defaults(func=_cmd_init_db)

    # import-csv command
    imp = sub.add_parser("import-csv", help="Import CSV data into database")
    imp.add_argument("--technicians", help="Path to technicians CSV")
    imp.add_argument("--availability", help="Path to availability CSV")
    imp.add_argument("--schedules", help="Path to schedules CSV")
    imp.add_argument("--due-soon", dest="due_soon", help="Path to due-soon jobs CSV")
    imp.set_defaults(func=_cmd_import_csv)

    # due-soon command
    due = sub.add_parser("due-soon", help="Suggest placements for due-soon jobs")
    due.add_argument("--jobs", help="Comma-separated due-soon job ids (default: all unscheduled due by --to)")
    _add_window(due)
    due.add_argument("--crew-size", type=int, help="Technicians per job (default: from config)")
    due.add_argument("--due-policy", choices=["hard", "soft"], help="Due-date policy (default: from config)")
    due.add_argument("--workers", type=int, default=1, help="Threads for evaluating jobs")
    due.set_defaults(func=_cmd_due_soon)

    # move-job command
    move = sub.add_parser("move-job", help="Suggest new placements for a scheduled job")
    move.add_argument("--schedule", required=True, help="Schedule id to move")
    _add_window(move)
    move.add_argument("--crew-size", type=int, help="Technicians per job (default: from config)")
    move.add_argument("--due-policy", choices=["hard", "soft"], help="Due-date policy (default: from config)")
    move.add_argument("--buffer", type=int, help="Minutes between jobs (default: from config)")
    move.set_defaults(func=_cmd_move_job)

    # apply command
    app = sub.add_parser("apply", help="Re-validate and write a chosen slot")
    app.add_argument("--job", required=True, help="Schedule id or due-soon job id")
    app.add_argument("--date", required=True, help="Service date (YYYY-MM-DD)")
    app.add_argument("--technicians", required=True, help="Comma-separated technician ids")
    app.add_argument("--hours", type=float, help="Job duration (default: estimated)")
    app.add_argument("--buffer", type=int, help="Minutes between jobs (default: from config)")
    app.set_defaults(func=_cmd_apply)

    args = parser.parse_args(argv)
    args.cfg = load_config(args.config)
    _configure_logging(args, args.cfg)
    args.func(args)


if __name__ == "__main__":
    main()
