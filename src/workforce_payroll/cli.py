"""Workforce payroll command line interface.

Provides operational tools for:
- Schema creation
- Pay date previews
- Timesheet generation and auto clock-out
- Payroll regeneration

Usage:
    workforce-payroll init-db
    workforce-payroll pay-dates --period-type weekly --pay-day 5 --day-type day_of_week
    workforce-payroll generate-timesheets --company-id X --project-id Y --date 2024-03-01
    workforce-payroll auto-clockout --company-id X --date 2024-03-01
    workforce-payroll regenerate-payroll --company-id X --worker-id W --start 2024-03-02 --end 2024-03-08
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable
from datetime import date
from uuid import UUID

from workforce_payroll.calculators.pay_period import (
    InvalidScheduleConfigurationError,
    format_pay_day,
    get_next_pay_dates,
    validate_schedule,
)
from workforce_payroll.calculators.types import DayType, PaymentSchedule, PayPeriodType
from workforce_payroll.config import get_settings
from workforce_payroll.database import create_all, get_session, init_db
from workforce_payroll.logging_config import configure_logging
from workforce_payroll.repository.sql import SqlRecordStore
from workforce_payroll.services.payroll_service import PayrollService
from workforce_payroll.services.timesheet_service import TimesheetService


def parse_date(s: str) -> date:
    """Parse YYYY-MM-DD date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


class WorkforceCli:
    """Workforce payroll command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="workforce-payroll",
            description="Timesheet and payroll operational tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create database tables")

        # pay-dates command
        pay_dates = subparsers.add_parser(
            "pay-dates",
            help="Show upcoming pay dates for a schedule",
        )
        pay_dates.add_argument(
            "--period-type",
            choices=[t.value for t in PayPeriodType],
            required=True,
            help="Pay period frequency",
        )
        pay_dates.add_argument("--pay-day", type=int, required=True, help="Pay day number")
        pay_dates.add_argument(
            "--day-type",
            choices=[t.value for t in DayType],
            required=True,
            help="How the pay day is interpreted",
        )
        pay_dates.add_argument(
            "--period-start-day",
            type=int,
            help="Period start day (defaults to Saturday for weekly schedules, 1 for monthly)",
        )
        pay_dates.add_argument("--count", type=int, default=3, help="Number of dates (default: 3)")
        pay_dates.add_argument("--from", dest="from_date", type=parse_date, help="Start date")

        # generate-timesheets command
        generate = subparsers.add_parser(
            "generate-timesheets",
            help="Generate timesheets from clock events",
        )
        generate.add_argument("--company-id", type=parse_uuid, required=True)
        generate.add_argument("--project-id", type=parse_uuid, required=True)
        generate.add_argument("--date", type=parse_date, required=True)
        generate.add_argument("--worker-id", type=parse_uuid, help="Only this worker")
        generate.add_argument("--rounding", type=str, help="Rounding strategy override")
        generate.add_argument(
            "--round-to-standard",
            action="store_true",
            help="Snap totals within 9 minutes of 8 hours to 8 hours",
        )

        # auto-clockout command
        clockout = subparsers.add_parser(
            "auto-clockout",
            help="Close shifts left open at the end-of-day cutoff",
        )
        clockout.add_argument("--company-id", type=parse_uuid, required=True)
        clockout.add_argument("--date", type=parse_date, required=True)

        # regenerate-payroll command
        regenerate = subparsers.add_parser(
            "regenerate-payroll",
            help="Recalculate one worker's payroll for a period",
        )
        regenerate.add_argument("--company-id", type=parse_uuid, required=True)
        regenerate.add_argument("--worker-id", type=parse_uuid, required=True)
        regenerate.add_argument("--start", type=parse_date, required=True)
        regenerate.add_argument("--end", type=parse_date, required=True)

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(get_settings().log_level)

        sync_handlers: dict[str, Callable[[argparse.Namespace], int]] = {
            "pay-dates": self._cmd_pay_dates,
        }
        async_handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "generate-timesheets": self._cmd_generate_timesheets,
            "auto-clockout": self._cmd_auto_clockout,
            "regenerate-payroll": self._cmd_regenerate_payroll,
        }

        if parsed.command in sync_handlers:
            return sync_handlers[parsed.command](parsed)
        if parsed.command in async_handlers:
            return asyncio.run(async_handlers[parsed.command](parsed))

        print(f"Unknown command: {parsed.command}", file=sys.stderr)
        return 1

    def _cmd_pay_dates(self, args: argparse.Namespace) -> int:
        """Print upcoming pay dates."""
        period_type = PayPeriodType(args.period_type)
        monthly = period_type == PayPeriodType.MONTHLY
        start_day = args.period_start_day or (1 if monthly else 6)
        schedule = PaymentSchedule(
            pay_period_type=period_type,
            pay_day=args.pay_day,
            pay_day_type=DayType(args.day_type),
            period_start_day=start_day,
            period_start_type=DayType.DAY_OF_MONTH if monthly else DayType.DAY_OF_WEEK,
            custom_period_days=14 if period_type == PayPeriodType.CUSTOM else None,
        )
        try:
            warnings = validate_schedule(schedule)
            dates = get_next_pay_dates(schedule, args.count, today=args.from_date)
        except InvalidScheduleConfigurationError as e:
            for error in e.errors:
                print(f"ERROR: {error}", file=sys.stderr)
            return 1

        for warning in warnings:
            print(f"WARNING: {warning}")
        print(f"Pay day: {format_pay_day(schedule.pay_day, schedule.pay_day_type)}")
        for pay_date in dates:
            print(f"  {pay_date.isoformat()}  {pay_date.strftime('%A')}")
        return 0

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create all tables."""
        engine, _ = init_db()
        await create_all(engine)
        print("Database tables created")
        return 0

    async def _cmd_generate_timesheets(self, args: argparse.Namespace) -> int:
        """Generate timesheets for one worker or every worker."""
        async with get_session() as session:
            service = TimesheetService(SqlRecordStore(session, args.company_id))
            if args.worker_id:
                result = await service.generate_timesheet_from_clock_events(
                    args.worker_id,
                    args.project_id,
                    args.date,
                    rounding_strategy=args.rounding,
                    round_to_standard=args.round_to_standard,
                )
                if result.entry is None:
                    print(f"No completed shifts for worker {args.worker_id} on {args.date}")
                else:
                    print(
                        f"Worker {args.worker_id}: {result.entry.regular_hours} regular, "
                        f"{result.entry.overtime_hours} overtime"
                    )
                return 0

            batch = await service.generate_timesheets_for_date(
                args.project_id,
                args.date,
                rounding_strategy=args.rounding,
                round_to_standard=args.round_to_standard,
            )

        for outcome in batch.outcomes:
            if outcome.success:
                print(f"  ✓ {outcome.worker_id}")
            else:
                print(f"  ✗ {outcome.worker_id}: {outcome.error}")
        print(f"\n{len(batch.succeeded)} succeeded, {len(batch.failed)} failed")
        return 0 if not batch.failed else 2

    async def _cmd_auto_clockout(self, args: argparse.Namespace) -> int:
        """Write auto clock-out events."""
        async with get_session() as session:
            result = await TimesheetService(
                SqlRecordStore(session, args.company_id)
            ).close_open_shifts(args.date)
        print(f"Closed {len(result.closed_worker_ids)} open shift(s) on {args.date}")
        return 0

    async def _cmd_regenerate_payroll(self, args: argparse.Namespace) -> int:
        """Recalculate and upsert a payroll record."""
        async with get_session() as session:
            record = await PayrollService(
                SqlRecordStore(session, args.company_id)
            ).generate_payroll_for_worker_and_period(args.worker_id, args.start, args.end)
        if record is None:
            print("No approved hours; no payroll record written")
            return 0
        print(f"Payroll {record.id} ({record.status.value})")
        print(f"  Gross:      {record.gross_pay:>12,.2f}")
        print(f"  NIB:        {record.nib_deduction:>12,.2f}")
        print(f"  Other:      {record.other_deductions:>12,.2f}")
        print(f"  Net:        {record.net_pay:>12,.2f}")
        return 0


def main() -> int:
    """CLI entry point."""
    cli = WorkforceCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
