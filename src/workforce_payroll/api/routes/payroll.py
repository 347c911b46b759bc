"""Payroll API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from workforce_payroll.api.dependencies import AppSettings, Store, UserId
from workforce_payroll.api.schemas import (
    ErrorResponse,
    PayrollGenerateRequest,
    PayrollGenerateResponse,
    PayrollRecordResponse,
)
from workforce_payroll.services.payroll_service import PayrollService

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.post(
    "/generate",
    response_model=PayrollGenerateResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def generate_payroll(
    store: Store,
    settings: AppSettings,
    user_id: UserId,
    payload: PayrollGenerateRequest,
) -> PayrollGenerateResponse:
    """Recalculate one worker's payroll for a period from approved timesheets."""
    record = await PayrollService(store, settings).generate_payroll_for_worker_and_period(
        payload.worker_id,
        payload.period_start,
        payload.period_end,
        user_id,
    )
    return PayrollGenerateResponse(
        generated=record is not None,
        record=PayrollRecordResponse.model_validate(record) if record else None,
    )


@router.post(
    "/{payroll_id}/confirm",
    response_model=PayrollRecordResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def confirm_payroll(
    store: Store,
    settings: AppSettings,
    payroll_id: Annotated[UUID, Path()],
) -> PayrollRecordResponse:
    """Confirm a draft payroll record."""
    record = await PayrollService(store, settings).confirm_payroll(payroll_id)
    return PayrollRecordResponse.model_validate(record)


@router.post(
    "/{payroll_id}/mark-paid",
    response_model=PayrollRecordResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def mark_payroll_paid(
    store: Store,
    settings: AppSettings,
    payroll_id: Annotated[UUID, Path()],
) -> PayrollRecordResponse:
    """Mark a confirmed payroll record as paid."""
    record = await PayrollService(store, settings).mark_payroll_paid(payroll_id)
    return PayrollRecordResponse.model_validate(record)
