"""SQLAlchemy record store (PostgreSQL via asyncpg, SQLite via aiosqlite)."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator
from uuid import UUID, uuid4

from sqlalchemy import and_, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_payroll import models
from workforce_payroll.calculators.types import (
    ApprovalStatus,
    ClockEvent,
    ClockEventSource,
    ClockEventType,
    DayType,
    DeductionLine,
    DeductionRule,
    DeductionType,
    PaymentSchedule,
    PayPeriodType,
    PayrollRecord,
    PayrollSettings,
    PayrollStatus,
    RoundingStrategy,
    TimesheetEntry,
    TimesheetSettings,
    Worker,
)

TIMESHEET_KEY = ("worker_id", "project_id", "work_date")
PAYROLL_KEY = ("worker_id", "period_start", "period_end")


def _to_utc(value: datetime | None) -> datetime | None:
    """Normalize to UTC before writing; SQLite drops the offset."""
    if value is None:
        return None
    return value.astimezone(timezone.utc)


def _from_db(value: datetime | None) -> datetime | None:
    """Attach UTC to naive values read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# ===== Row <-> domain conversion =====


def _worker(row: models.Worker) -> Worker:
    return Worker(
        id=row.worker_id,
        company_id=row.company_id,
        name=row.name,
        hourly_rate=row.hourly_rate,
        overtime_rate=row.overtime_rate,
        nib_exempt=row.nib_exempt,
        is_active=row.is_active,
    )


def _clock_event(row: models.ClockEvent) -> ClockEvent:
    return ClockEvent(
        worker_id=row.worker_id,
        project_id=row.project_id,
        event_type=ClockEventType(row.event_type),
        timestamp=_from_db(row.timestamp),
        location=row.location,
        source=ClockEventSource(row.source),
    )


def _timesheet(row: models.Timesheet) -> TimesheetEntry:
    return TimesheetEntry(
        id=row.timesheet_id,
        worker_id=row.worker_id,
        project_id=row.project_id,
        company_id=row.company_id,
        date=row.work_date,
        clock_in=_from_db(row.clock_in),
        clock_out=_from_db(row.clock_out),
        break_duration_minutes=row.break_duration_minutes,
        regular_hours=row.regular_hours,
        overtime_hours=row.overtime_hours,
        total_hours=row.total_hours,
        hourly_rate=row.hourly_rate,
        total_pay=row.total_pay,
        supervisor_approval=ApprovalStatus(row.supervisor_approval),
        auto_generated=row.auto_generated,
        needs_review=row.needs_review,
        approved_at=_from_db(row.approved_at),
        approved_by=row.approved_by,
    )


def _payroll_record(row: models.PayrollRecord) -> PayrollRecord:
    return PayrollRecord(
        id=row.payroll_id,
        worker_id=row.worker_id,
        company_id=row.company_id,
        period_start=row.period_start,
        period_end=row.period_end,
        total_hours=row.total_hours,
        overtime_hours=row.overtime_hours,
        gross_pay=row.gross_pay,
        nib_deduction=row.nib_deduction,
        other_deductions=row.other_deductions,
        total_deductions=row.total_deductions,
        net_pay=row.net_pay,
        status=PayrollStatus(row.status),
        calculation_id=row.calculation_id,
        timesheet_count=row.timesheet_count,
    )


class SqlRecordStore:
    """RecordStore over an AsyncSession, bound to one company.

    The caller owns the transaction; this store only flushes. Upserts use
    INSERT ... ON CONFLICT DO UPDATE on the natural key.
    """

    def __init__(self, session: AsyncSession, company_id: UUID):
        self.session = session
        self.company_id = company_id

    def _insert(self, model: type[models.Base]) -> Any:
        dialect = self.session.bind.dialect.name
        if dialect == "postgresql":
            return pg_insert(model)
        if dialect == "sqlite":
            return sqlite_insert(model)
        raise NotImplementedError(f"Upsert is not supported for dialect '{dialect}'")

    # ===== Workers & assignments =====

    async def get_worker(self, worker_id: UUID) -> Worker | None:
        result = await self.session.execute(
            select(models.Worker).where(
                models.Worker.worker_id == worker_id,
                models.Worker.company_id == self.company_id,
            )
        )
        row = result.scalar_one_or_none()
        return _worker(row) if row else None

    async def has_active_assignment(
        self, worker_id: UUID, project_id: UUID, on_date: date
    ) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(models.ProjectAssignment)
            .where(
                models.ProjectAssignment.company_id == self.company_id,
                models.ProjectAssignment.worker_id == worker_id,
                models.ProjectAssignment.project_id == project_id,
                models.ProjectAssignment.is_active.is_(True),
                models.ProjectAssignment.start_date <= on_date,
                or_(
                    models.ProjectAssignment.end_date.is_(None),
                    models.ProjectAssignment.end_date >= on_date,
                ),
            )
        )
        return result.scalar_one() > 0

    async def active_project_ids(self, worker_id: UUID, on_date: date) -> list[UUID]:
        result = await self.session.execute(
            select(models.ProjectAssignment.project_id)
            .where(
                models.ProjectAssignment.company_id == self.company_id,
                models.ProjectAssignment.worker_id == worker_id,
                models.ProjectAssignment.is_active.is_(True),
                models.ProjectAssignment.start_date <= on_date,
                or_(
                    models.ProjectAssignment.end_date.is_(None),
                    models.ProjectAssignment.end_date >= on_date,
                ),
            )
            .distinct()
        )
        return list(result.scalars())

    # ===== Clock events =====

    async def list_clock_events(
        self, start: datetime, end: datetime, worker_id: UUID | None = None
    ) -> list[ClockEvent]:
        query = select(models.ClockEvent).where(
            models.ClockEvent.company_id == self.company_id,
            models.ClockEvent.timestamp >= _to_utc(start),
            models.ClockEvent.timestamp < _to_utc(end),
        )
        if worker_id is not None:
            query = query.where(models.ClockEvent.worker_id == worker_id)
        result = await self.session.execute(
            query.order_by(models.ClockEvent.timestamp, models.ClockEvent.created_at)
        )
        return [_clock_event(row) for row in result.scalars()]

    async def add_clock_events(self, events: list[ClockEvent]) -> None:
        self.session.add_all(
            [
                models.ClockEvent(
                    clock_event_id=uuid4(),
                    company_id=self.company_id,
                    worker_id=e.worker_id,
                    project_id=e.project_id,
                    event_type=e.event_type.value,
                    timestamp=_to_utc(e.timestamp),
                    location=e.location,
                    source=e.source.value,
                )
                for e in events
            ]
        )
        await self.session.flush()

    # ===== Timesheets =====

    async def get_timesheet(self, timesheet_id: UUID) -> TimesheetEntry | None:
        result = await self.session.execute(
            select(models.Timesheet)
            .where(
                models.Timesheet.timesheet_id == timesheet_id,
                models.Timesheet.company_id == self.company_id,
            )
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _timesheet(row) if row else None

    async def get_timesheet_by_key(
        self, worker_id: UUID, project_id: UUID, work_date: date
    ) -> TimesheetEntry | None:
        result = await self.session.execute(
            select(models.Timesheet)
            .where(
                models.Timesheet.company_id == self.company_id,
                models.Timesheet.worker_id == worker_id,
                models.Timesheet.project_id == project_id,
                models.Timesheet.work_date == work_date,
            )
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _timesheet(row) if row else None

    async def list_timesheets(
        self,
        worker_id: UUID,
        start_date: date,
        end_date: date,
        statuses: tuple[ApprovalStatus, ...] | None = None,
    ) -> list[TimesheetEntry]:
        query = select(models.Timesheet).where(
            models.Timesheet.company_id == self.company_id,
            models.Timesheet.worker_id == worker_id,
            and_(
                models.Timesheet.work_date >= start_date,
                models.Timesheet.work_date <= end_date,
            ),
        )
        if statuses is not None:
            query = query.where(
                models.Timesheet.supervisor_approval.in_([s.value for s in statuses])
            )
        result = await self.session.execute(
            query.order_by(models.Timesheet.work_date, models.Timesheet.project_id)
            .execution_options(populate_existing=True)
        )
        return [_timesheet(row) for row in result.scalars()]

    async def upsert_timesheet(self, entry: TimesheetEntry) -> TimesheetEntry:
        if entry.company_id != self.company_id:
            raise ValueError("Timesheet belongs to another company")
        values = {
            "company_id": self.company_id,
            "worker_id": entry.worker_id,
            "project_id": entry.project_id,
            "work_date": entry.date,
            "clock_in": _to_utc(entry.clock_in),
            "clock_out": _to_utc(entry.clock_out),
            "break_duration_minutes": entry.break_duration_minutes,
            "regular_hours": entry.regular_hours,
            "overtime_hours": entry.overtime_hours,
            "total_hours": entry.total_hours,
            "hourly_rate": entry.hourly_rate,
            "total_pay": entry.total_pay,
            "supervisor_approval": entry.supervisor_approval.value,
            "auto_generated": entry.auto_generated,
            "needs_review": entry.needs_review,
            "approved_at": _to_utc(entry.approved_at),
            "approved_by": entry.approved_by,
        }
        stmt = self._insert(models.Timesheet).values(
            timesheet_id=entry.id or uuid4(), **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(TIMESHEET_KEY),
            set_={
                **{k: stmt.excluded[k] for k in values if k not in TIMESHEET_KEY},
                "updated_at": func.now(),
            },
        )
        await self.session.execute(stmt)
        stored = await self.get_timesheet_by_key(entry.worker_id, entry.project_id, entry.date)
        if stored is None:
            raise RuntimeError(f"Timesheet upsert left no row for {entry.natural_key}")
        return stored

    # ===== Payroll =====

    async def get_payroll_record(
        self, worker_id: UUID, period_start: date, period_end: date
    ) -> PayrollRecord | None:
        result = await self.session.execute(
            select(models.PayrollRecord)
            .where(
                models.PayrollRecord.company_id == self.company_id,
                models.PayrollRecord.worker_id == worker_id,
                models.PayrollRecord.period_start == period_start,
                models.PayrollRecord.period_end == period_end,
            )
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _payroll_record(row) if row else None

    async def get_payroll_record_by_id(self, payroll_id: UUID) -> PayrollRecord | None:
        result = await self.session.execute(
            select(models.PayrollRecord)
            .where(
                models.PayrollRecord.payroll_id == payroll_id,
                models.PayrollRecord.company_id == self.company_id,
            )
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _payroll_record(row) if row else None

    async def upsert_payroll_record(
        self, record: PayrollRecord, created_by: UUID | None = None
    ) -> PayrollRecord:
        if record.company_id != self.company_id:
            raise ValueError("Payroll record belongs to another company")
        values = {
            "company_id": self.company_id,
            "worker_id": record.worker_id,
            "period_start": record.period_start,
            "period_end": record.period_end,
            "total_hours": record.total_hours,
            "overtime_hours": record.overtime_hours,
            "gross_pay": record.gross_pay,
            "nib_deduction": record.nib_deduction,
            "other_deductions": record.other_deductions,
            "total_deductions": record.total_deductions,
            "net_pay": record.net_pay,
            "status": record.status.value,
            "calculation_id": record.calculation_id,
            "timesheet_count": record.timesheet_count,
        }
        stmt = self._insert(models.PayrollRecord).values(
            payroll_id=record.id or uuid4(), created_by=created_by, **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(PAYROLL_KEY),
            set_={
                **{k: stmt.excluded[k] for k in values if k not in PAYROLL_KEY},
                "updated_at": func.now(),
            },
        )
        await self.session.execute(stmt)
        stored = await self.get_payroll_record(
            record.worker_id, record.period_start, record.period_end
        )
        if stored is None:
            raise RuntimeError(
                f"Payroll upsert left no row for worker {record.worker_id} "
                f"{record.period_start}..{record.period_end}"
            )
        return stored

    async def list_deductions(
        self, worker_id: UUID, period_start: date, period_end: date
    ) -> list[DeductionLine]:
        result = await self.session.execute(
            select(models.PayrollDeduction)
            .where(
                models.PayrollDeduction.company_id == self.company_id,
                models.PayrollDeduction.worker_id == worker_id,
                models.PayrollDeduction.period_start == period_start,
                models.PayrollDeduction.period_end == period_end,
            )
            .order_by(models.PayrollDeduction.created_at)
        )
        return [
            DeductionLine(amount=row.amount, description=row.description, worker_id=row.worker_id)
            for row in result.scalars()
        ]

    async def list_deduction_rules(self) -> list[DeductionRule]:
        result = await self.session.execute(
            select(models.DeductionRule)
            .where(models.DeductionRule.company_id == self.company_id)
            .order_by(models.DeductionRule.name)
        )
        return [
            DeductionRule(
                name=row.name,
                type=DeductionType(row.type),
                value=row.value,
                is_active=row.is_active,
                applies_to_overtime=row.applies_to_overtime,
            )
            for row in result.scalars()
        ]

    # ===== Settings =====

    async def get_timesheet_settings(self) -> TimesheetSettings:
        row = await self.session.get(models.TimesheetSettings, self.company_id)
        if row is None:
            return TimesheetSettings()
        return TimesheetSettings(
            work_day_end=row.work_day_end,
            break_time_minutes=row.break_time_minutes,
            overtime_threshold=row.overtime_threshold,
            weekly_overtime_threshold=row.weekly_overtime_threshold,
            rounding_method=RoundingStrategy(row.rounding_method),
            auto_clockout=row.auto_clockout,
            allow_overtime=row.allow_overtime,
            week_start_day=row.week_start_day,
            timezone=row.timezone,
        )

    async def get_payroll_settings(self) -> PayrollSettings:
        row = await self.session.get(models.PayrollSettings, self.company_id)
        if row is None:
            return PayrollSettings()
        return PayrollSettings(
            nib_enabled=row.nib_enabled,
            nib_rate=row.nib_rate,
            overtime_rate=row.overtime_rate,
        )

    async def get_payment_schedule(self) -> PaymentSchedule | None:
        row = await self.session.get(models.PaymentSchedule, self.company_id)
        if row is None:
            return None
        return PaymentSchedule(
            pay_period_type=PayPeriodType(row.pay_period_type),
            pay_day=row.pay_day,
            pay_day_type=DayType(row.pay_day_type),
            period_start_day=row.period_start_day,
            period_start_type=DayType(row.period_start_type),
            anchor_date=row.anchor_date,
            custom_period_days=row.custom_period_days,
        )

    # ===== Transactions =====

    @asynccontextmanager
    async def isolated(self) -> AsyncIterator[None]:
        async with self.session.begin_nested():
            yield
