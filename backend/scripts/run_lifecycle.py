"""CLI script to run lifecycle ticks, archive sweeps, and cron registration."""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path
from uuid import UUID

BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

ARCHIVE_SCHEDULES = ("daily", "weekly_sunday", "weekly_monday")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the recurring-task lifecycle engine outside its cron triggers.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    tick = subcommands.add_parser("tick", help="Generate due instances, then sweep overdue tasks")
    tick.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        default=None,
        help="ISO timestamp to run the tick at (default: now, UTC)",
    )
    tick.add_argument(
        "--archive-organization-id",
        type=UUID,
        default=None,
        help="Also run the manual archive pass for this organization",
    )

    archive = subcommands.add_parser("archive", help="Run one archive sweep")
    archive.add_argument("schedule", choices=ARCHIVE_SCHEDULES)
    archive.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        default=None,
        help="ISO timestamp to compute the retention cutoff from",
    )

    subcommands.add_parser(
        "bootstrap-schedules",
        help="Register (or replace) the rq-scheduler cron jobs",
    )
    return parser.parse_args(argv)


def _write_summary(fields: dict[str, object]) -> None:
    sys.stdout.write(" ".join(f"{key}={value}" for key, value in fields.items()) + "\n")


async def _run(args: argparse.Namespace) -> int:
    from app.core.logging import configure_logging
    from app.services.lifecycle_driver import run_tick

    configure_logging()
    if args.command == "tick":
        summary = await run_tick(now=args.as_of, archive_organization_id=args.archive_organization_id)
    else:
        summary = await run_tick(now=args.as_of, generate=False, archive_schedule=args.schedule)
    _write_summary(summary.log_fields())
    if summary.skipped:
        return 2
    return 1 if summary.failures else 0


def main(argv: list[str] | None = None) -> None:
    """Dispatch the selected subcommand and exit with its return code."""
    args = _parse_args(argv)
    if args.command == "bootstrap-schedules":
        from app.services.scheduler import bootstrap_lifecycle_schedules

        for job_id in bootstrap_lifecycle_schedules():
            sys.stdout.write(f"registered={job_id}\n")
        raise SystemExit(0)
    raise SystemExit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
