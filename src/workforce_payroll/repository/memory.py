"""In-memory record store for tests and local experimentation."""

from __future__ import annotations

import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import AsyncIterator
from uuid import UUID, uuid4

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


@dataclass
class Assignment:
    worker_id: UUID
    project_id: UUID
    start_date: date
    end_date: date | None = None
    is_active: bool = True

    def covers(self, day: date) -> bool:
        if not self.is_active or day < self.start_date:
            return False
        return self.end_date is None or day <= self.end_date


@dataclass
class CompanyData:
    """All rows belonging to one company."""

    workers: dict[UUID, Worker] = field(default_factory=dict)
    assignments: list[Assignment] = field(default_factory=list)
    clock_events: list[ClockEvent] = field(default_factory=list)
    timesheets: dict[UUID, TimesheetEntry] = field(default_factory=dict)
    payroll_records: dict[UUID, PayrollRecord] = field(default_factory=dict)
    deductions: list[tuple[date, date, DeductionLine]] = field(default_factory=list)
    rules: list[DeductionRule] = field(default_factory=list)
    timesheet_settings: TimesheetSettings | None = None
    payroll_settings: PayrollSettings | None = None
    payment_schedule: PaymentSchedule | None = None


class InMemoryRecordStore:
    """RecordStore backed by dictionaries.

    Stores share one backing dict keyed by company, so two stores built with
    for_company() see each other's writes but never each other's rows.
    Returned entries and records are copies; mutate and upsert to write.
    """

    def __init__(self, company_id: UUID, backing: dict[UUID, CompanyData] | None = None):
        self.company_id = company_id
        self._backing = backing if backing is not None else {}
        self._backing.setdefault(company_id, CompanyData())

    @property
    def data(self) -> CompanyData:
        return self._backing[self.company_id]

    def for_company(self, company_id: UUID) -> InMemoryRecordStore:
        return InMemoryRecordStore(company_id, self._backing)

    # ===== Seeding =====

    def add_worker(self, worker: Worker) -> Worker:
        if worker.company_id != self.company_id:
            raise ValueError("Worker belongs to another company")
        self.data.workers[worker.id] = worker
        return worker

    def assign(
        self,
        worker_id: UUID,
        project_id: UUID,
        start_date: date,
        end_date: date | None = None,
    ) -> None:
        self.data.assignments.append(Assignment(worker_id, project_id, start_date, end_date))

    def add_deduction(self, period_start: date, period_end: date, line: DeductionLine) -> None:
        self.data.deductions.append((period_start, period_end, line))

    def add_rule(self, rule: DeductionRule) -> None:
        self.data.rules.append(rule)

    def configure(
        self,
        timesheet_settings: TimesheetSettings | None = None,
        payroll_settings: PayrollSettings | None = None,
        payment_schedule: PaymentSchedule | None = None,
    ) -> None:
        if timesheet_settings is not None:
            self.data.timesheet_settings = timesheet_settings
        if payroll_settings is not None:
            self.data.payroll_settings = payroll_settings
        if payment_schedule is not None:
            self.data.payment_schedule = payment_schedule

    # ===== Workers & assignments =====

    async def get_worker(self, worker_id: UUID) -> Worker | None:
        return self.data.workers.get(worker_id)

    async def has_active_assignment(
        self, worker_id: UUID, project_id: UUID, on_date: date
    ) -> bool:
        return any(
            a.worker_id == worker_id and a.project_id == project_id and a.covers(on_date)
            for a in self.data.assignments
        )

    async def active_project_ids(self, worker_id: UUID, on_date: date) -> list[UUID]:
        project_ids: list[UUID] = []
        for a in self.data.assignments:
            if a.worker_id == worker_id and a.covers(on_date) and a.project_id not in project_ids:
                project_ids.append(a.project_id)
        return project_ids

    # ===== Clock events =====

    async def list_clock_events(
        self, start: datetime, end: datetime, worker_id: UUID | None = None
    ) -> list[ClockEvent]:
        events = [
            e
            for e in self.data.clock_events
            if start <= e.timestamp < end and (worker_id is None or e.worker_id == worker_id)
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def add_clock_events(self, events: list[ClockEvent]) -> None:
        self.data.clock_events.extend(events)

    # ===== Timesheets =====

    async def get_timesheet(self, timesheet_id: UUID) -> TimesheetEntry | None:
        entry = self.data.timesheets.get(timesheet_id)
        return replace(entry) if entry else None

    async def get_timesheet_by_key(
        self, worker_id: UUID, project_id: UUID, work_date: date
    ) -> TimesheetEntry | None:
        for entry in self.data.timesheets.values():
            if entry.natural_key == (worker_id, project_id, work_date):
                return replace(entry)
        return None

    async def list_timesheets(
        self,
        worker_id: UUID,
        start_date: date,
        end_date: date,
        statuses: tuple[ApprovalStatus, ...] | None = None,
    ) -> list[TimesheetEntry]:
        entries = [
            replace(e)
            for e in self.data.timesheets.values()
            if e.worker_id == worker_id
            and start_date <= e.date <= end_date
            and (statuses is None or e.supervisor_approval in statuses)
        ]
        return sorted(entries, key=lambda e: (e.date, str(e.project_id)))

    async def upsert_timesheet(self, entry: TimesheetEntry) -> TimesheetEntry:
        if entry.company_id != self.company_id:
            raise ValueError("Timesheet belongs to another company")
        existing = await self.get_timesheet_by_key(*entry.natural_key)
        stored = replace(entry, id=existing.id if existing else (entry.id or uuid4()))
        self.data.timesheets[stored.id] = stored
        return replace(stored)

    # ===== Payroll =====

    async def get_payroll_record(
        self, worker_id: UUID, period_start: date, period_end: date
    ) -> PayrollRecord | None:
        for record in self.data.payroll_records.values():
            if record.natural_key == (worker_id, period_start, period_end):
                return replace(record)
        return None

    async def get_payroll_record_by_id(self, payroll_id: UUID) -> PayrollRecord | None:
        record = self.data.payroll_records.get(payroll_id)
        return replace(record) if record else None

    async def upsert_payroll_record(
        self, record: PayrollRecord, created_by: UUID | None = None
    ) -> PayrollRecord:
        if record.company_id != self.company_id:
            raise ValueError("Payroll record belongs to another company")
        existing = await self.get_payroll_record(*record.natural_key)
        stored = replace(record, id=existing.id if existing else (record.id or uuid4()))
        self.data.payroll_records[stored.id] = stored
        return replace(stored)

    async def list_deductions(
        self, worker_id: UUID, period_start: date, period_end: date
    ) -> list[DeductionLine]:
        return [
            line
            for start, end, line in self.data.deductions
            if line.worker_id == worker_id and start == period_start and end == period_end
        ]

    async def list_deduction_rules(self) -> list[DeductionRule]:
        return list(self.data.rules)

    # ===== Settings =====

    async def get_timesheet_settings(self) -> TimesheetSettings:
        return self.data.timesheet_settings or TimesheetSettings()

    async def get_payroll_settings(self) -> PayrollSettings:
        return self.data.payroll_settings or PayrollSettings()

    async def get_payment_schedule(self) -> PaymentSchedule | None:
        return self.data.payment_schedule

    # ===== Transactions =====

    @asynccontextmanager
    async def isolated(self) -> AsyncIterator[None]:
        snapshot = copy.deepcopy(self.data)
        try:
            yield
        except Exception:
            self._backing[self.company_id] = snapshot
            raise
