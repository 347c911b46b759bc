"""Pair raw clock events into worked intervals."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from workforce_payroll.calculators.types import (
    ClockEvent,
    ClockEventSource,
    ClockEventType,
    Interval,
    NormalizedDay,
    elapsed,
)


class MalformedEventSequenceError(Exception):
    """Raised when clock events cannot be paired into intervals."""

    def __init__(self, worker_id, work_date: date, reason: str, event: ClockEvent | None = None):
        self.worker_id = worker_id
        self.work_date = work_date
        self.reason = reason
        self.event = event
        msg = f"Malformed clock events for worker {worker_id} on {work_date}: {reason}"
        if event is not None:
            msg += f" ({event.event_type.value} at {event.timestamp.isoformat()})"
        super().__init__(msg)


def day_bounds(work_date: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return the [start, end) instants of a calendar date in a timezone."""
    start = datetime.combine(work_date, time.min, tzinfo=tz)
    end = datetime.combine(work_date + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def cutoff_instant(work_date: date, cutoff: time, tz: ZoneInfo) -> datetime:
    """Return the end-of-day cutoff instant for a date."""
    return datetime.combine(work_date, cutoff, tzinfo=tz)


def normalize_clock_events(
    events: Iterable[ClockEvent],
    work_date: date,
    tz: ZoneInfo,
    cutoff: time | None = None,
    now: datetime | None = None,
    auto_clockout: bool = True,
) -> NormalizedDay:
    """Turn one worker's events for one date into clock-in/clock-out intervals.

    Events must already be in timestamp order and alternate clock_in and
    clock_out; break_start/break_end may only occur inside a shift and add
    to that interval's break minutes.

    A trailing clock_in with no clock_out is closed at the cutoff when the
    cutoff has passed and auto clock-out is enabled. The synthesized
    interval is flagged auto_generated. Otherwise the shift is reported as
    open and contributes no interval. Intervals closed by a persisted auto
    clock_out event are flagged the same way.

    Raises:
        MalformedEventSequenceError: events are out of order, mix workers,
            or do not follow the clock_in/clock_out alternation.
    """
    events = list(events)
    worker_id = events[0].worker_id if events else None
    day = NormalizedDay(worker_id=worker_id, work_date=work_date)
    if not events:
        return day

    for event in events:
        if event.timestamp.tzinfo is None:
            raise MalformedEventSequenceError(
                worker_id, work_date, "timestamp has no timezone", event
            )
        if event.worker_id != worker_id:
            raise MalformedEventSequenceError(
                worker_id, work_date, "events belong to more than one worker", event
            )

    for previous, current in zip(events, events[1:]):
        if current.timestamp < previous.timestamp:
            raise MalformedEventSequenceError(
                worker_id, work_date, "events are out of order", current
            )

    shift_start: datetime | None = None
    break_start: datetime | None = None
    break_seconds = 0

    for event in events:
        kind = event.event_type

        if kind == ClockEventType.CLOCK_IN:
            if shift_start is not None:
                raise MalformedEventSequenceError(
                    worker_id, work_date, "clock_in while already clocked in", event
                )
            shift_start = event.timestamp
            break_seconds = 0

        elif kind == ClockEventType.CLOCK_OUT:
            if shift_start is None:
                raise MalformedEventSequenceError(
                    worker_id, work_date, "clock_out without a preceding clock_in", event
                )
            if break_start is not None:
                raise MalformedEventSequenceError(
                    worker_id, work_date, "clock_out while on break", event
                )
            day.intervals.append(
                Interval(
                    clock_in=shift_start,
                    clock_out=event.timestamp,
                    break_minutes=break_seconds // 60,
                    auto_generated=event.source == ClockEventSource.AUTO,
                )
            )
            shift_start = None

        elif kind == ClockEventType.BREAK_START:
            if shift_start is None:
                raise MalformedEventSequenceError(
                    worker_id, work_date, "break_start while not clocked in", event
                )
            if break_start is not None:
                raise MalformedEventSequenceError(
                    worker_id, work_date, "break_start while already on break", event
                )
            break_start = event.timestamp

        elif kind == ClockEventType.BREAK_END:
            if break_start is None:
                raise MalformedEventSequenceError(
                    worker_id, work_date, "break_end without a preceding break_start", event
                )
            break_seconds += int(elapsed(break_start, event.timestamp).total_seconds())
            break_start = None

    if shift_start is None:
        return day

    # Trailing open shift: auto clock-out policy
    if not auto_clockout or cutoff is None:
        day.open_shift = True
        return day

    cutoff_at = cutoff_instant(work_date, cutoff, tz)
    now = now or datetime.now(tz)
    if now < cutoff_at or shift_start >= cutoff_at:
        day.open_shift = True
        return day

    if break_start is not None:
        break_seconds += max(0, int(elapsed(break_start, cutoff_at).total_seconds()))

    day.intervals.append(
        Interval(
            clock_in=shift_start,
            clock_out=cutoff_at,
            break_minutes=break_seconds // 60,
            auto_generated=True,
        )
    )
    return day


def closing_events(
    events: list[ClockEvent], work_date: date, cutoff: time, tz: ZoneInfo
) -> list[ClockEvent]:
    """Return the auto events that close a worker's open shift at the cutoff.

    Empty when the day's last event leaves the worker clocked out, or when
    the shift started after the cutoff.
    """
    if not events:
        return []
    last = events[-1]
    if last.event_type == ClockEventType.CLOCK_OUT:
        return []

    cutoff_at = cutoff_instant(work_date, cutoff, tz)
    if last.timestamp >= cutoff_at:
        return []

    closing: list[ClockEvent] = []
    if last.event_type == ClockEventType.BREAK_START:
        closing.append(_auto_event(last, ClockEventType.BREAK_END, cutoff_at))
    closing.append(_auto_event(last, ClockEventType.CLOCK_OUT, cutoff_at))
    return closing


def _auto_event(last: ClockEvent, kind: ClockEventType, at: datetime) -> ClockEvent:
    return ClockEvent(
        worker_id=last.worker_id,
        project_id=last.project_id,
        event_type=kind,
        timestamp=at,
        location=last.location,
        source=ClockEventSource.AUTO,
    )
