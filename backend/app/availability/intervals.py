from __future__ import annotations

import json
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.availability.policy import AvailabilityPolicy
from app.errors import InvalidBookingTimeError


ACTIVE_REQUEST_STATUSES = frozenset({"pending", "accepted"})
ACTIVE_BOOKING_STATUSES = frozenset({"scheduled", "in_progress", "completed"})
ACTIVE_STATUSES = ACTIVE_REQUEST_STATUSES | ACTIVE_BOOKING_STATUSES

logger = logging.getLogger("photobooth.availability.intervals")


class BookingInterval(BaseModel):
    """Occupied time range of one booking, with setup/teardown buffer.

    Buffer bounds are derived from the event bounds and ``buffer_hours``
    on every access, so they always follow the current event times.
    """

    model_config = ConfigDict(frozen=True)

    request_id: int
    booking_id: int | None = None
    package_id: int
    status: str
    source: Literal["request", "booking"] = "request"
    event_name: str | None = None
    event_start: datetime
    event_end: datetime
    buffer_hours: int = Field(default=2, ge=0)
    extension_hours: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_event_bounds(self) -> "BookingInterval":
        if self.event_end <= self.event_start:
            raise ValueError("event_end must be after event_start")
        return self

    @property
    def buffer(self) -> timedelta:
        return timedelta(hours=self.buffer_hours)

    @property
    def buffer_start(self) -> datetime:
        return self.event_start - self.buffer

    @property
    def buffer_end(self) -> datetime:
        return self.event_end + self.buffer

    @property
    def is_active(self) -> bool:
        return is_active_status(self.status)


def is_active_status(status: Any) -> bool:
    return str(status or "").strip().lower() in ACTIVE_STATUSES


def combine(event_date: date, event_time: time) -> datetime:
    return datetime.combine(event_date, event_time.replace(tzinfo=None))


def to_interval(
    event_date: date,
    event_time: time,
    *,
    request_id: int,
    package_id: int,
    status: str,
    event_end_time: time | None = None,
    duration_hours: int | None = None,
    extension_hours: int | None = 0,
    buffer_hours: int = 2,
    default_duration_hours: int = 2,
    booking_id: int | None = None,
    source: Literal["request", "booking"] = "request",
    event_name: str | None = None,
) -> BookingInterval:
    """Build a buffered interval from raw date/time booking fields.

    The event must end on its own calendar day. A declared end time at or
    before the start time is rejected rather than rolled over to the next
    day, and so is a duration or extension that runs past midnight.
    """
    if event_date is None or event_time is None:
        raise InvalidBookingTimeError("Event date and start time are required.")

    extension = int(extension_hours or 0)
    if extension < 0:
        raise InvalidBookingTimeError("Extension hours cannot be negative.")

    event_start = combine(event_date, event_time)
    if event_end_time is not None:
        event_end = combine(event_date, event_end_time)
        if event_end <= event_start:
            raise InvalidBookingTimeError(
                "Event end time must be after the start time on the same day."
            )
    else:
        hours = duration_hours if duration_hours and duration_hours > 0 else default_duration_hours
        event_end = event_start + timedelta(hours=hours)

    event_end += timedelta(hours=extension)

    midnight = datetime.combine(event_date + timedelta(days=1), time(0, 0))
    if event_end > midnight:
        raise InvalidBookingTimeError("Event cannot run past midnight.")

    return BookingInterval(
        request_id=request_id,
        booking_id=booking_id,
        package_id=package_id,
        status=str(status or "").strip().lower(),
        source=source,
        event_name=event_name,
        event_start=event_start,
        event_end=event_end,
        buffer_hours=buffer_hours,
        extension_hours=extension,
    )


def interval_from_request(
    request: Any,
    policy: AvailabilityPolicy,
    duration_hours: int | None = None,
    extension_hours: int | None = None,
) -> BookingInterval:
    return to_interval(
        request.event_date,
        request.event_time,
        request_id=request.id,
        package_id=request.package_id,
        status=request.status,
        event_end_time=request.event_end_time,
        duration_hours=duration_hours,
        extension_hours=(
            extension_hours if extension_hours is not None else request.extension_duration
        ),
        buffer_hours=policy.buffer_hours,
        default_duration_hours=policy.default_duration_hours,
        source="request",
        event_name=request.event_name,
    )


def interval_from_confirmed_booking(
    booking: Any,
    request: Any,
    policy: AvailabilityPolicy,
    duration_hours: int | None = None,
    extension_hours: int | None = None,
) -> BookingInterval:
    end_time = booking.event_end_time or request.event_end_time
    if extension_hours is None:
        extension_hours = (
            booking.extension_duration
            if booking.extension_duration is not None
            else request.extension_duration
        )
    return to_interval(
        request.event_date,
        request.event_time,
        request_id=request.id,
        booking_id=booking.id,
        package_id=request.package_id,
        status=booking.booking_status,
        event_end_time=end_time,
        duration_hours=duration_hours,
        extension_hours=extension_hours,
        buffer_hours=policy.buffer_hours,
        default_duration_hours=policy.default_duration_hours,
        source="booking",
        event_name=request.event_name,
    )


def collect_intervals(
    requests: Iterable[Any],
    confirmed_bookings: Iterable[Any],
    packages: Iterable[Any],
    policy: AvailabilityPolicy,
) -> list[BookingInterval]:
    """Map stored requests/bookings to active intervals sorted by buffer start.

    A confirmed booking supersedes the request it was created from, so each
    request contributes at most one interval.
    """
    durations = {package.id: package.duration_hours for package in packages}
    bookings_by_request = {booking.request_id: booking for booking in confirmed_bookings}

    intervals: list[BookingInterval] = []
    for request in requests:
        booking = bookings_by_request.get(request.id)
        status = booking.booking_status if booking is not None else request.status
        if not is_active_status(status):
            continue

        duration_hours = durations.get(request.package_id)
        try:
            if booking is not None:
                interval = interval_from_confirmed_booking(
                    booking, request, policy, duration_hours=duration_hours
                )
            else:
                interval = interval_from_request(request, policy, duration_hours=duration_hours)
        except ValueError as exc:
            logger.warning(
                json.dumps(
                    {
                        "event": "booking_interval_skipped",
                        "request_id": request.id,
                        "reason": str(exc),
                    }
                )
            )
            continue
        intervals.append(interval)

    intervals.sort(key=lambda item: (item.buffer_start, item.request_id))
    return intervals
