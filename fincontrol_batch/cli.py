"""
Run the FinControl daily jobs.

Settings come from config/fincontrol.yaml (or --config) with environment
overrides (FINCONTROL_DATABASE_URL, FINCONTROL_LOG_LEVEL).

Usage:
    fincontrol-jobs serve
    fincontrol-jobs run bills.mark_overdue
    fincontrol-jobs list

Examples:
    # Start the scheduler and block until Ctrl-C
    fincontrol-jobs serve

    # Run the auto-pay job once, now
    fincontrol-jobs run bills.auto_pay
"""

from __future__ import annotations

import argparse
import sys
import threading
from pathlib import Path

from fincontrol_batch.orchestrator import BatchOrchestrator
from fincontrol_config import load_settings


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the bill and receivable batch jobs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings file (default: config/fincontrol.yaml).",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before running (local databases only).",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("serve", help="Run the scheduler until interrupted.")
    run = sub.add_parser("run", help="Run one task immediately.")
    run.add_argument("task_type", help="Registered task, e.g. bills.auto_pay")
    sub.add_parser("list", help="List registered tasks and triggers.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = load_settings(args.config)
    orchestrator = BatchOrchestrator.from_settings(settings, create_schema=args.create_schema)

    if args.command == "list":
        for task_type in orchestrator.task_registry.list_tasks():
            print(task_type)
        for trigger in settings.scheduler.triggers:
            print(f"{trigger.name}: {trigger.cron_expression} -> {', '.join(trigger.task_types)}")
        return 0

    if args.command == "run":
        result = orchestrator.runner.run(args.task_type)
        print(f"{result.task_type}: {result.status.value} {result.summary or result.error_message}")
        return 0 if result.succeeded else 1

    if not settings.scheduler.enabled:
        print("Scheduler is disabled in settings", file=sys.stderr)
        return 1

    scheduler = orchestrator.create_scheduler()
    scheduler.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
