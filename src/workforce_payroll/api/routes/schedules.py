"""Pay schedule endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query

from workforce_payroll.api.dependencies import Store
from workforce_payroll.api.schemas import (
    ErrorResponse,
    NextPayDatesResponse,
    PayPeriodResponse,
    ScheduleRequest,
    ScheduleValidationResponse,
)
from workforce_payroll.calculators.pay_period import (
    InvalidScheduleConfigurationError,
    format_pay_day,
    get_next_pay_dates,
    pay_date_for_period,
    period_containing,
    validate_schedule,
)
from workforce_payroll.calculators.types import PaymentSchedule

router = APIRouter(prefix="/pay-schedule", tags=["pay-schedule"])


async def _company_schedule(store: Store) -> PaymentSchedule:
    schedule = await store.get_payment_schedule()
    if schedule is None:
        raise InvalidScheduleConfigurationError(["No payment schedule configured"])
    return schedule


@router.get(
    "/next-pay-dates",
    response_model=NextPayDatesResponse,
    responses={400: {"model": ErrorResponse}},
)
async def next_pay_dates(
    store: Store,
    count: Annotated[int, Query(ge=1, le=52)] = 3,
    from_date: Annotated[date | None, Query(alias="from")] = None,
) -> NextPayDatesResponse:
    """Upcoming pay dates for the company schedule."""
    schedule = await _company_schedule(store)
    return NextPayDatesResponse(
        pay_dates=get_next_pay_dates(schedule, count, today=from_date),
        pay_day_label=format_pay_day(schedule.pay_day, schedule.pay_day_type),
    )


@router.get(
    "/period",
    response_model=PayPeriodResponse,
    responses={400: {"model": ErrorResponse}},
)
async def pay_period(
    store: Store,
    on: Annotated[date, Query(alias="date")],
) -> PayPeriodResponse:
    """The pay period containing a date, and its pay date."""
    schedule = await _company_schedule(store)
    period = period_containing(on, schedule)
    return PayPeriodResponse(
        date=on,
        period_start=period.start_date,
        period_end=period.end_date,
        pay_date=pay_date_for_period(period, schedule),
    )


@router.post("/validate", response_model=ScheduleValidationResponse)
async def validate_pay_schedule(payload: ScheduleRequest) -> ScheduleValidationResponse:
    """Validate a schedule configuration without saving it."""
    values = payload.model_dump(exclude_none=True)
    schedule = PaymentSchedule(**values)
    try:
        warnings = validate_schedule(schedule)
    except InvalidScheduleConfigurationError as e:
        return ScheduleValidationResponse(valid=False, errors=e.errors)
    return ScheduleValidationResponse(
        valid=True,
        warnings=warnings,
        pay_day_label=format_pay_day(schedule.pay_day, schedule.pay_day_type),
    )
