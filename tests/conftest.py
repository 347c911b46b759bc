"""Pytest fixtures for workforce payroll tests."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from workforce_payroll.calculators.types import (
    DayType,
    PaymentSchedule,
    PayPeriodType,
    PayrollSettings,
    TimesheetSettings,
    Worker,
)
from workforce_payroll.repository.memory import InMemoryRecordStore


@pytest.fixture
def company_id() -> UUID:
    return uuid4()


@pytest.fixture
def project_id() -> UUID:
    return uuid4()


@pytest.fixture
def worker(company_id: UUID) -> Worker:
    """Worker at 25.00/hour using the company overtime multiplier."""
    return Worker(
        id=uuid4(),
        company_id=company_id,
        name="Marcus Rolle",
        hourly_rate=Decimal("25.00"),
    )


@pytest.fixture
def weekly_schedule() -> PaymentSchedule:
    """Weekly periods starting Saturday, paid on Friday."""
    return PaymentSchedule(
        pay_period_type=PayPeriodType.WEEKLY,
        pay_day=5,
        pay_day_type=DayType.DAY_OF_WEEK,
        period_start_day=6,
        period_start_type=DayType.DAY_OF_WEEK,
    )


@pytest.fixture
def timesheet_settings() -> TimesheetSettings:
    return TimesheetSettings(timezone="America/Nassau", work_day_end=time(17, 0))


@pytest.fixture
def store(
    company_id: UUID,
    worker: Worker,
    project_id: UUID,
    weekly_schedule: PaymentSchedule,
    timesheet_settings: TimesheetSettings,
) -> InMemoryRecordStore:
    """Company store with one worker assigned to one project."""
    store = InMemoryRecordStore(company_id)
    store.add_worker(worker)
    store.assign(worker.id, project_id, date(2024, 1, 1))
    store.configure(
        timesheet_settings=timesheet_settings,
        payroll_settings=PayrollSettings(),
        payment_schedule=weekly_schedule,
    )
    return store
