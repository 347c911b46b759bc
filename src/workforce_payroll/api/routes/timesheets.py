"""Timesheet API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from workforce_payroll.api.dependencies import AppSettings, Store, UserId
from workforce_payroll.api.schemas import (
    ApprovalResponse,
    AutoClockoutRequest,
    AutoClockoutResponse,
    BatchGenerateResponse,
    ErrorResponse,
    PayrollRecordResponse,
    TimesheetGenerateRequest,
    TimesheetGenerateResponse,
    TimesheetResponse,
    WorkerOutcomeResponse,
)
from workforce_payroll.services.approval_service import ApprovalResult, ApprovalService
from workforce_payroll.services.timesheet_service import TimesheetService

router = APIRouter(prefix="/timesheets", tags=["timesheets"])


def _approval_response(result: ApprovalResult) -> ApprovalResponse:
    return ApprovalResponse(
        timesheet=TimesheetResponse.model_validate(result.timesheet),
        payroll_generated=result.payroll_regenerated,
        payroll_record=(
            PayrollRecordResponse.model_validate(result.payroll_record)
            if result.payroll_record
            else None
        ),
        warning=result.warning,
    )


# ============================================================================
# Generation
# ============================================================================


@router.post(
    "/generate",
    response_model=TimesheetGenerateResponse | BatchGenerateResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def generate_timesheets(
    store: Store,
    payload: TimesheetGenerateRequest,
) -> TimesheetGenerateResponse | BatchGenerateResponse:
    """Generate timesheets from clock events.

    With worker_id, errors for that worker fail the request. Without it,
    every worker with events is processed and failures are listed per worker.
    """
    service = TimesheetService(store)

    if payload.worker_id is not None:
        result = await service.generate_timesheet_from_clock_events(
            payload.worker_id,
            payload.project_id,
            payload.date,
            rounding_strategy=payload.rounding_strategy,
            round_to_standard=payload.round_to_standard,
        )
        return TimesheetGenerateResponse(
            worker_id=result.worker_id,
            date=result.work_date,
            created=result.created,
            open_shift=result.open_shift,
            resplit_count=result.resplit_count,
            timesheet=TimesheetResponse.model_validate(result.entry) if result.entry else None,
        )

    batch = await service.generate_timesheets_for_date(
        payload.project_id,
        payload.date,
        rounding_strategy=payload.rounding_strategy,
        round_to_standard=payload.round_to_standard,
    )
    return BatchGenerateResponse(
        project_id=batch.project_id,
        date=batch.work_date,
        succeeded=len(batch.succeeded),
        failed=len(batch.failed),
        results=[
            WorkerOutcomeResponse(
                worker_id=outcome.worker_id,
                success=outcome.success,
                timesheet=(
                    TimesheetResponse.model_validate(outcome.result.entry)
                    if outcome.result and outcome.result.entry
                    else None
                ),
                open_shift=bool(outcome.result and outcome.result.open_shift),
                error=outcome.error,
                error_type=outcome.error_type,
            )
            for outcome in batch.outcomes
        ],
    )


@router.post(
    "/auto-clockout",
    response_model=AutoClockoutResponse,
    status_code=status.HTTP_200_OK,
)
async def auto_clockout(
    store: Store,
    payload: AutoClockoutRequest,
) -> AutoClockoutResponse:
    """Close shifts still open at the end-of-day cutoff."""
    result = await TimesheetService(store).close_open_shifts(payload.date)
    return AutoClockoutResponse(
        date=result.work_date,
        closed_worker_ids=result.closed_worker_ids,
        events_created=len(result.events),
    )


# ============================================================================
# Approval
# ============================================================================


@router.post(
    "/{timesheet_id}/approve",
    response_model=ApprovalResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_timesheet(
    store: Store,
    settings: AppSettings,
    user_id: UserId,
    timesheet_id: Annotated[UUID, Path()],
) -> ApprovalResponse:
    """Approve a pending timesheet and regenerate the period's payroll."""
    result = await ApprovalService(store, settings).approve_timesheet(timesheet_id, user_id)
    return _approval_response(result)


@router.post(
    "/{timesheet_id}/unapprove",
    response_model=ApprovalResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def unapprove_timesheet(
    store: Store,
    settings: AppSettings,
    user_id: UserId,
    timesheet_id: Annotated[UUID, Path()],
) -> ApprovalResponse:
    """Re-open an approved timesheet and regenerate the period's payroll."""
    result = await ApprovalService(store, settings).unapprove_timesheet(timesheet_id, user_id)
    return _approval_response(result)


@router.post(
    "/{timesheet_id}/reject",
    response_model=ApprovalResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reject_timesheet(
    store: Store,
    settings: AppSettings,
    user_id: UserId,
    timesheet_id: Annotated[UUID, Path()],
) -> ApprovalResponse:
    """Reject a pending timesheet."""
    result = await ApprovalService(store, settings).reject_timesheet(timesheet_id, user_id)
    return _approval_response(result)
