#!/usr/bin/env python3
"""
Scan the schedule for delayed and imminent team assignments.

Prints one line per alert.  With --watch the scan repeats every
poll_interval_seconds of the active configuration set and new alerts are
written to the structured log.

Usage:
  python3 scripts/scan_schedule.py [--database-url URL] [--config default]
    [--company ID] [--project ID] [--horizon DAYS] [--as-of YYYY-MM-DD]
    [--mark-delayed] [--watch] [--iterations N]

DATABASE_URL is used when --database-url is not given.
"""

from __future__ import annotations

import argparse
import os
import sys
import threading
from datetime import date
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from construction_config import get_active_config  # noqa: E402
from construction_config.bridges import build_scanner  # noqa: E402
from construction_kernel.db.engine import init_engine_from_url, session_scope  # noqa: E402
from construction_kernel.domain.clock import DeterministicClock, SystemClock  # noqa: E402
from construction_kernel.domain.dtos import ScanReport  # noqa: E402
from construction_kernel.services.alert_dispatcher import (  # noqa: E402
    AlertDispatcher,
    LoggingNotificationSink,
    ScheduleMonitor,
)
from construction_kernel.services.assignment_service import AssignmentService  # noqa: E402

DEFAULT_DB_URL = "sqlite:///construction.db"


def print_report(report: ScanReport) -> None:
    print(f"Scan for {report.today} (horizon {report.horizon_days} days)")
    print(f"  delayed:  {len(report.delayed)}")
    for alert in report.delayed:
        print(
            f"    {alert.project_name} / {alert.unit_name} / {alert.category_name}"
            f" [{alert.team_name or alert.team_id}]  {alert.days} days overdue"
        )
    print(f"  imminent: {len(report.imminent)}")
    for alert in report.imminent:
        print(
            f"    {alert.project_name} / {alert.unit_name} / {alert.category_name}"
            f" [{alert.team_name or alert.team_id}]  starts in {alert.days} days"
        )
    if report.skipped:
        print(f"  skipped (broken links): {len(report.skipped)}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Report delayed and imminent team assignments.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--database-url", default=os.environ.get("DATABASE_URL", DEFAULT_DB_URL))
    parser.add_argument("--config", default="default", help="Configuration set name")
    parser.add_argument("--company", type=UUID, default=None, help="Restrict to a company id")
    parser.add_argument("--project", type=UUID, default=None, help="Restrict to a project id")
    parser.add_argument("--horizon", type=int, default=None, help="Imminent horizon in days")
    parser.add_argument("--as-of", type=str, default=None, help="Scan date YYYY-MM-DD (default: today)")
    parser.add_argument(
        "--mark-delayed",
        action="store_true",
        help="Flag delayed assignments as DELAYED after scanning",
    )
    parser.add_argument("--watch", action="store_true", help="Keep polling")
    parser.add_argument("--iterations", type=int, default=None, help="Stop --watch after N scans")
    args = parser.parse_args()

    clock = SystemClock()
    if args.as_of:
        try:
            clock = DeterministicClock.on(date.fromisoformat(args.as_of))
        except ValueError:
            print(f"ERROR: Invalid --as-of date (use YYYY-MM-DD): {args.as_of}")
            return 1

    try:
        settings = get_active_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: {exc}")
        return 1

    init_engine_from_url(args.database_url)

    def scan_once() -> ScanReport:
        with session_scope() as session:
            report = build_scanner(session, settings, clock).scan(
                horizon_days=args.horizon,
                company_id=args.company,
                project_id=args.project,
            )
            if args.mark_delayed and report.delayed:
                result = AssignmentService(session).mark_delayed(report)
                print(f"  marked DELAYED: {len(result.marked)}")
            return report

    if not args.watch:
        print_report(scan_once())
        return 0

    monitor = ScheduleMonitor(
        scan_once,
        AlertDispatcher(LoggingNotificationSink()),
        interval_seconds=settings.schedule.poll_interval_seconds,
    )
    stop = threading.Event()
    try:
        ticks = monitor.run(iterations=args.iterations, stop_event=stop)
    except KeyboardInterrupt:
        stop.set()
        return 130
    print(f"Completed {ticks} scans")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
