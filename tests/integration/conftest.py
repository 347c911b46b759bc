"""Integration test fixtures with a real (SQLite) database."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from workforce_payroll import models
from workforce_payroll.database import create_all, create_engine_for
from workforce_payroll.repository.sql import SqlRecordStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@dataclass
class Seeded:
    company_id: UUID
    worker_id: UUID
    project_id: UUID


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_engine_for(TEST_DATABASE_URL)
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session whose transaction is rolled back after the test."""
    factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def seeded(db_session: AsyncSession) -> Seeded:
    """One company with a worker assigned to a project and a weekly schedule."""
    company_id, worker_id, project_id = uuid4(), uuid4(), uuid4()

    db_session.add(models.Company(company_id=company_id, name="Harbour Builders"))
    db_session.add_all(
        [
            models.Worker(
                worker_id=worker_id,
                company_id=company_id,
                name="Marcus Rolle",
                hourly_rate=Decimal("25.00"),
            ),
            models.Project(project_id=project_id, company_id=company_id, name="Bay Street"),
        ]
    )
    db_session.add_all(
        [
            models.ProjectAssignment(
                company_id=company_id,
                project_id=project_id,
                worker_id=worker_id,
                start_date=date(2024, 1, 1),
            ),
            models.TimesheetSettings(company_id=company_id, timezone="America/Nassau"),
            models.PayrollSettings(company_id=company_id),
            models.PaymentSchedule(
                company_id=company_id,
                pay_period_type="weekly",
                pay_day=5,
                pay_day_type="day_of_week",
                period_start_day=6,
                period_start_type="day_of_week",
            ),
        ]
    )
    await db_session.flush()
    return Seeded(company_id=company_id, worker_id=worker_id, project_id=project_id)


@pytest_asyncio.fixture(scope="function")
async def sql_store(db_session: AsyncSession, seeded: Seeded) -> SqlRecordStore:
    return SqlRecordStore(db_session, seeded.company_id)
