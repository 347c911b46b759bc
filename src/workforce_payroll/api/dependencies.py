"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_payroll.config import Settings, get_settings
from workforce_payroll.database import init_db
from workforce_payroll.repository import RecordStore, SqlRecordStore


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency; commits when the request succeeds."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_company_id(
    x_company_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract company ID from header."""
    if not x_company_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Company-ID header is required",
        )
    try:
        return UUID(x_company_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Company-ID format",
        )


async def get_user_id(
    x_user_id: Annotated[str | None, Header()] = None
) -> UUID | None:
    """Extract the acting user ID from header, if any."""
    if not x_user_id:
        return None
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-User-ID format",
        )


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CompanyId = Annotated[UUID, Depends(get_company_id)]
UserId = Annotated[UUID | None, Depends(get_user_id)]


async def get_store(db: DbSession, company_id: CompanyId) -> RecordStore:
    """Company-scoped record store for the request."""
    return SqlRecordStore(db, company_id)


# Type aliases for cleaner dependency injection
Store = Annotated[RecordStore, Depends(get_store)]
AppSettings = Annotated[Settings, Depends(get_settings)]
