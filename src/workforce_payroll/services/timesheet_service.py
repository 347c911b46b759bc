"""Timesheet service - clock events to daily timesheet entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID
from zoneinfo import ZoneInfo

from workforce_payroll.calculators.aggregator import (
    NoActiveProjectAssignmentError,
    UnattributedClockEventsError,
    build_entry,
    overtime_multiplier_for,
    resplit_entry,
    week_start_for,
    worked_order,
)
from workforce_payroll.calculators.clock_normalizer import (
    MalformedEventSequenceError,
    closing_events,
    cutoff_instant,
    day_bounds,
    normalize_clock_events,
)
from workforce_payroll.calculators.rounding import parse_strategy, round_hours
from workforce_payroll.calculators.types import (
    ApprovalStatus,
    ClockEvent,
    PayrollSettings,
    RoundingStrategy,
    TimesheetEntry,
    TimesheetSettings,
    Worker,
)
from workforce_payroll.repository.base import NotFoundError, RecordStore
from workforce_payroll.services.state_machine import InvalidTransitionError, TimesheetStateMachine

logger = logging.getLogger(__name__)

# Statuses that count towards week-to-date regular hours
WEEK_TO_DATE_STATUSES = (ApprovalStatus.PENDING, ApprovalStatus.APPROVED)

# Errors that are expected for a single worker in a batch
WORKER_ERRORS = (
    MalformedEventSequenceError,
    NoActiveProjectAssignmentError,
    UnattributedClockEventsError,
    InvalidTransitionError,
    NotFoundError,
)


@dataclass
class TimesheetResult:
    """Outcome of generating one worker's timesheet for one day."""

    worker_id: UUID
    work_date: date
    entry: TimesheetEntry | None = None
    # A clock_in was left open and not auto-closed
    open_shift: bool = False
    # Other entries of the worker's week whose split changed
    resplit_count: int = 0

    @property
    def created(self) -> bool:
        return self.entry is not None


@dataclass
class WorkerOutcome:
    """Per-worker line of a batch result."""

    worker_id: UUID
    success: bool
    result: TimesheetResult | None = None
    error: str | None = None
    error_type: str | None = None


@dataclass
class BatchResult:
    """Per-worker outcomes of a batch generation."""

    project_id: UUID
    work_date: date
    outcomes: list[WorkerOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[WorkerOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> list[WorkerOutcome]:
        return [o for o in self.outcomes if not o.success]


@dataclass
class AutoClockoutResult:
    """Workers whose open shifts were closed at the cutoff."""

    work_date: date
    closed_worker_ids: list[UUID] = field(default_factory=list)
    events: list[ClockEvent] = field(default_factory=list)


class TimesheetService:
    """Builds timesheet entries from clock events.

    Operations:
    - generate_timesheet_from_clock_events: one worker, one project, one day
    - generate_timesheets_for_date: every worker with events that day
    - close_open_shifts: persist auto clock-out events at the cutoff

    Company settings are read once per call and passed to the calculators.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    async def generate_timesheet_from_clock_events(
        self,
        worker_id: UUID,
        project_id: UUID,
        work_date: date,
        rounding_strategy: str | RoundingStrategy | None = None,
        round_to_standard: bool = False,
        now: datetime | None = None,
    ) -> TimesheetResult:
        """Normalize, round and aggregate one worker's day into a pending entry.

        Raises:
            ValueError: unknown rounding strategy
            NotFoundError: worker does not exist in this company
            NoActiveProjectAssignmentError: worker not assigned to the project
            MalformedEventSequenceError: clock events cannot be paired
            UnattributedClockEventsError: events without a project while the
                worker has several assignments that day
            InvalidTransitionError: the existing entry is no longer pending
        """
        strategy = parse_strategy(rounding_strategy) if rounding_strategy else None
        ts_settings = await self.store.get_timesheet_settings()
        payroll_settings = await self.store.get_payroll_settings()
        return await self._generate(
            worker_id,
            project_id,
            work_date,
            ts_settings,
            payroll_settings,
            strategy or ts_settings.rounding_method,
            round_to_standard,
            now,
        )

    async def generate_timesheets_for_date(
        self,
        project_id: UUID,
        work_date: date,
        rounding_strategy: str | RoundingStrategy | None = None,
        round_to_standard: bool = False,
        now: datetime | None = None,
    ) -> BatchResult:
        """Generate entries for every worker with clock events on the project that day.

        Each worker runs in its own savepoint; one worker's failure is
        recorded in the result and never aborts the batch.
        """
        strategy = parse_strategy(rounding_strategy) if rounding_strategy else None
        ts_settings = await self.store.get_timesheet_settings()
        payroll_settings = await self.store.get_payroll_settings()
        tz = ZoneInfo(ts_settings.timezone)
        start, end = day_bounds(work_date, tz)

        # Untagged events bring in only workers assigned to this project
        worker_ids: list[UUID] = []
        for event in await self.store.list_clock_events(start, end):
            if event.worker_id in worker_ids:
                continue
            if event.project_id == project_id or (
                event.project_id is None
                and await self.store.has_active_assignment(event.worker_id, project_id, work_date)
            ):
                worker_ids.append(event.worker_id)

        batch = BatchResult(project_id=project_id, work_date=work_date)
        for worker_id in worker_ids:
            try:
                async with self.store.isolated():
                    result = await self._generate(
                        worker_id,
                        project_id,
                        work_date,
                        ts_settings,
                        payroll_settings,
                        strategy or ts_settings.rounding_method,
                        round_to_standard,
                        now,
                    )
                batch.outcomes.append(WorkerOutcome(worker_id=worker_id, success=True, result=result))
            except Exception as e:
                if isinstance(e, WORKER_ERRORS):
                    logger.warning("Timesheet generation skipped for worker %s: %s", worker_id, e)
                else:
                    logger.exception("Timesheet generation failed for worker %s", worker_id)
                batch.outcomes.append(
                    WorkerOutcome(
                        worker_id=worker_id,
                        success=False,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                )

        logger.info(
            "Generated timesheets for project %s on %s: %d ok, %d failed",
            project_id,
            work_date,
            len(batch.succeeded),
            len(batch.failed),
        )
        return batch

    async def close_open_shifts(
        self, work_date: date, now: datetime | None = None
    ) -> AutoClockoutResult:
        """Write auto clock-out events for shifts still open at the cutoff.

        Does nothing when auto clock-out is disabled or the cutoff has not
        passed yet.
        """
        ts_settings = await self.store.get_timesheet_settings()
        result = AutoClockoutResult(work_date=work_date)
        if not ts_settings.auto_clockout:
            return result

        tz = ZoneInfo(ts_settings.timezone)
        cutoff_at = cutoff_instant(work_date, ts_settings.work_day_end, tz)
        if (now or datetime.now(tz)) < cutoff_at:
            return result

        start, end = day_bounds(work_date, tz)
        by_worker: dict[UUID, list[ClockEvent]] = {}
        for event in await self.store.list_clock_events(start, end):
            by_worker.setdefault(event.worker_id, []).append(event)

        for worker_id, events in by_worker.items():
            closing = closing_events(events, work_date, ts_settings.work_day_end, tz)
            if closing:
                result.closed_worker_ids.append(worker_id)
                result.events.extend(closing)

        if result.events:
            await self.store.add_clock_events(result.events)
            logger.info(
                "Auto clock-out on %s closed %d open shift(s)",
                work_date,
                len(result.closed_worker_ids),
            )
        return result

    async def _generate(
        self,
        worker_id: UUID,
        project_id: UUID,
        work_date: date,
        ts_settings: TimesheetSettings,
        payroll_settings: PayrollSettings,
        strategy: RoundingStrategy,
        round_to_standard: bool,
        now: datetime | None,
    ) -> TimesheetResult:
        worker = await self.store.get_worker(worker_id)
        if worker is None:
            raise NotFoundError("Worker", worker_id)

        active_projects = await self.store.active_project_ids(worker_id, work_date)
        if project_id not in active_projects:
            raise NoActiveProjectAssignmentError(worker_id, project_id, work_date)

        existing = await self.store.get_timesheet_by_key(worker_id, project_id, work_date)
        if existing is not None and not TimesheetStateMachine.can_edit(existing.supervisor_approval):
            raise InvalidTransitionError(
                existing.supervisor_approval.value,
                ApprovalStatus.PENDING.value,
                "only pending timesheets can be regenerated",
            )

        tz = ZoneInfo(ts_settings.timezone)
        start, end = day_bounds(work_date, tz)
        day_events = await self.store.list_clock_events(start, end, worker_id=worker_id)
        # Untagged events need a single active assignment to be attributed
        if len(active_projects) > 1 and any(e.project_id is None for e in day_events):
            raise UnattributedClockEventsError(worker_id, work_date, active_projects)
        events = [
            replace(e, timestamp=e.timestamp.astimezone(tz))
            for e in day_events
            if e.project_id in (None, project_id)
        ]

        day = normalize_clock_events(
            events,
            work_date,
            tz,
            cutoff=ts_settings.work_day_end,
            now=now,
            auto_clockout=ts_settings.auto_clockout,
        )
        result = TimesheetResult(worker_id=worker_id, work_date=work_date, open_shift=day.open_shift)
        if not day.intervals:
            return result

        # Recorded breaks win; otherwise the company's standard break applies.
        break_minutes = day.break_minutes or ts_settings.break_time_minutes
        rounded = round_hours(day.intervals, strategy, break_minutes, round_to_standard)

        week_start = week_start_for(work_date, ts_settings.week_start_day)
        week_to_date = Decimal("0")
        if ts_settings.weekly_overtime_threshold is not None and work_date > week_start:
            earlier = await self.store.list_timesheets(
                worker_id,
                week_start,
                work_date - timedelta(days=1),
                statuses=WEEK_TO_DATE_STATUSES,
            )
            week_to_date = sum((e.regular_hours for e in earlier), Decimal("0"))

        entry = build_entry(
            worker=worker,
            project_id=project_id,
            work_date=work_date,
            rounded=rounded,
            break_minutes=break_minutes,
            timesheet_settings=ts_settings,
            payroll_settings=payroll_settings,
            week_to_date_regular=week_to_date,
            auto_generated=day.auto_generated,
        )
        if existing is not None:
            entry.id = existing.id

        stored = await self.store.upsert_timesheet(entry)
        result.entry, result.resplit_count = await self._apply_thresholds(
            worker, stored, week_start, week_to_date, ts_settings, payroll_settings
        )
        return result

    async def _apply_thresholds(
        self,
        worker: Worker,
        generated: TimesheetEntry,
        week_start: date,
        week_to_date: Decimal,
        ts_settings: TimesheetSettings,
        payroll_settings: PayrollSettings,
    ) -> tuple[TimesheetEntry, int]:
        """Re-split the worker's pending entries from the generated day onwards.

        Entries on every project are walked in worked order, so the daily
        threshold sees all of a day's hours and the weekly cap all of the
        week's regular hours. Approved entries keep their split but still
        count. Returns the generated entry as stored and how many other
        entries changed.
        """
        last_day = generated.date
        if ts_settings.weekly_overtime_threshold is not None:
            last_day = week_start + timedelta(days=6)

        multiplier = overtime_multiplier_for(worker, payroll_settings)
        entries = await self.store.list_timesheets(
            worker.id, generated.date, last_day, statuses=WEEK_TO_DATE_STATUSES
        )
        running_regular = week_to_date
        worked_by_day: dict[date, Decimal] = {}
        changed = 0
        for entry in sorted(entries, key=worked_order):
            worked_today = worked_by_day.get(entry.date, Decimal("0"))
            if entry.supervisor_approval == ApprovalStatus.PENDING and resplit_entry(
                entry, ts_settings, multiplier, running_regular, worked_today
            ):
                entry = await self.store.upsert_timesheet(entry)
                if entry.id != generated.id:
                    changed += 1
            if entry.id == generated.id:
                generated = entry
            running_regular += entry.regular_hours
            worked_by_day[entry.date] = worked_today + entry.total_hours
        return generated, changed
