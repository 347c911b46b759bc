"""Record store protocol - the only storage surface the services see."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from datetime import date, datetime
from typing import Protocol
from uuid import UUID

from workforce_payroll.calculators.types import (
    ApprovalStatus,
    ClockEvent,
    DeductionLine,
    DeductionRule,
    PaymentSchedule,
    PayrollRecord,
    PayrollSettings,
    TimesheetEntry,
    TimesheetSettings,
    Worker,
)


class NotFoundError(Exception):
    """Raised when a record does not exist in the company scope."""

    def __init__(self, kind: str, record_id: UUID):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class RecordStore(Protocol):
    """Company-scoped reads and writes.

    Every implementation is bound to one company_id and never returns or
    touches another company's rows. Upserts are last-write-wins on the
    natural key.
    """

    company_id: UUID

    # ===== Workers & assignments =====

    async def get_worker(self, worker_id: UUID) -> Worker | None:
        ...

    async def has_active_assignment(
        self, worker_id: UUID, project_id: UUID, on_date: date
    ) -> bool:
        """True when the worker is assigned to the project on the date."""
        ...

    async def active_project_ids(self, worker_id: UUID, on_date: date) -> list[UUID]:
        """Projects the worker is assigned to on the date."""
        ...

    # ===== Clock events =====

    async def list_clock_events(
        self, start: datetime, end: datetime, worker_id: UUID | None = None
    ) -> list[ClockEvent]:
        """Events with start <= timestamp < end, ordered by timestamp."""
        ...

    async def add_clock_events(self, events: list[ClockEvent]) -> None:
        ...

    # ===== Timesheets =====

    async def get_timesheet(self, timesheet_id: UUID) -> TimesheetEntry | None:
        ...

    async def get_timesheet_by_key(
        self, worker_id: UUID, project_id: UUID, work_date: date
    ) -> TimesheetEntry | None:
        ...

    async def list_timesheets(
        self,
        worker_id: UUID,
        start_date: date,
        end_date: date,
        statuses: tuple[ApprovalStatus, ...] | None = None,
    ) -> list[TimesheetEntry]:
        """Entries dated within [start_date, end_date], ordered by date."""
        ...

    async def upsert_timesheet(self, entry: TimesheetEntry) -> TimesheetEntry:
        """Insert or overwrite by (worker_id, project_id, date); returns the stored entry."""
        ...

    # ===== Payroll =====

    async def get_payroll_record(
        self, worker_id: UUID, period_start: date, period_end: date
    ) -> PayrollRecord | None:
        ...

    async def get_payroll_record_by_id(self, payroll_id: UUID) -> PayrollRecord | None:
        ...

    async def upsert_payroll_record(
        self, record: PayrollRecord, created_by: UUID | None = None
    ) -> PayrollRecord:
        """Insert or overwrite by (worker_id, period_start, period_end)."""
        ...

    async def list_deductions(
        self, worker_id: UUID, period_start: date, period_end: date
    ) -> list[DeductionLine]:
        ...

    async def list_deduction_rules(self) -> list[DeductionRule]:
        ...

    # ===== Settings =====

    async def get_timesheet_settings(self) -> TimesheetSettings:
        """Company timesheet settings, defaults when none are stored."""
        ...

    async def get_payroll_settings(self) -> PayrollSettings:
        """Company payroll settings, defaults when none are stored."""
        ...

    async def get_payment_schedule(self) -> PaymentSchedule | None:
        ...

    # ===== Transactions =====

    def isolated(self) -> AbstractAsyncContextManager[None]:
        """Savepoint: writes inside are discarded if the block raises."""
        ...
