from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict

from app.availability.conflicts import max_extension_without_conflict
from app.availability.intervals import (
    ACTIVE_BOOKING_STATUSES,
    BookingInterval,
    is_active_status,
)
from app.availability.policy import AvailabilityPolicy
from app.errors import InvalidBookingTimeError, InvalidDateError, PackageNotFoundError


AvailabilityStatus = Literal["available", "limited", "unavailable"]

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

logger = logging.getLogger("photobooth.availability.calculator")


class StartWindow(BaseModel):
    """Inclusive range of event start times that fit a booking of known duration."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    latest_end: datetime

    @property
    def span(self) -> timedelta:
        return self.latest_end - self.start


def parse_availability_date(
    raw: Any,
    today: date,
    max_past_days: int = 365,
    max_future_days: int = 730,
) -> date:
    text = raw.strip() if isinstance(raw, str) else ""
    if not DATE_PATTERN.match(text):
        raise InvalidDateError()
    try:
        parsed = date.fromisoformat(text)
    except ValueError as exc:
        raise InvalidDateError() from exc

    if parsed < today - timedelta(days=max_past_days):
        raise InvalidDateError()
    if parsed > today + timedelta(days=max_future_days):
        raise InvalidDateError()
    return parsed


def operating_bounds(target_date: date, policy: AvailabilityPolicy) -> tuple[datetime, datetime]:
    midnight = datetime.combine(target_date, time(0, 0))
    return (
        midnight + timedelta(hours=policy.day_start_hour),
        midnight + timedelta(hours=policy.day_end_hour),
    )


def ensure_within_operating_day(interval: BookingInterval, policy: AvailabilityPolicy) -> None:
    day_start, day_end = operating_bounds(interval.event_start.date(), policy)
    if interval.event_start < day_start or interval.event_end > day_end:
        raise InvalidBookingTimeError(
            f"Event must run between {_format_clock(day_start, day_start.date())} "
            f"and {_format_clock(day_end, day_start.date())}."
        )


def relevant_intervals(
    intervals: Iterable[BookingInterval],
    day_start: datetime,
    day_end: datetime,
    buffer: timedelta,
) -> list[BookingInterval]:
    # Widest buffered range a new booking inside the operating day can cover.
    reach_start = day_start - buffer
    reach_end = day_end + buffer
    return [
        item
        for item in intervals
        if is_active_status(item.status)
        and item.buffer_start < reach_end
        and item.buffer_end > reach_start
    ]


def compute_start_windows(
    day_start: datetime,
    day_end: datetime,
    duration: timedelta,
    intervals: Iterable[BookingInterval],
    buffer: timedelta,
) -> list[StartWindow]:
    latest_start = day_end - duration
    if latest_start < day_start:
        return []

    # Each buffered interval forbids the open range of starts whose own
    # buffered footprint would overlap it.
    blocked = sorted(
        (item.buffer_start - duration - buffer, item.buffer_end + buffer)
        for item in intervals
        if is_active_status(item.status)
    )

    windows: list[StartWindow] = []
    cursor = day_start
    for blocked_start, blocked_end in blocked:
        if blocked_start > latest_start:
            break
        if blocked_start >= cursor:
            windows.append(_window(cursor, blocked_start, duration))
        if blocked_end > cursor:
            cursor = blocked_end
    if cursor <= latest_start:
        windows.append(_window(cursor, latest_start, duration))
    return windows


def _window(start: datetime, end: datetime, duration: timedelta) -> StartWindow:
    return StartWindow(start=start, end=end, latest_end=end + duration)


def derive_status(
    windows: list[StartWindow],
    has_relevant_bookings: bool,
    duration: timedelta,
    buffer: timedelta,
    multiplier: float,
) -> AvailabilityStatus:
    if not windows:
        return "unavailable"
    if not has_relevant_bookings:
        return "available"

    footprint = duration + 2 * buffer
    free = sum((window.span for window in windows), timedelta())
    if free >= footprint * multiplier:
        return "available"
    return "limited"


def blocked_windows(
    intervals: Iterable[BookingInterval],
    day_start: datetime,
    day_end: datetime,
) -> list[tuple[datetime, datetime]]:
    clipped = sorted(
        (max(item.buffer_start, day_start), min(item.buffer_end, day_end))
        for item in intervals
        if item.buffer_start < day_end and item.buffer_end > day_start
    )
    merged: list[tuple[datetime, datetime]] = []
    for start, end in clipped:
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def compute_daily_availability(
    target_date: date,
    packages: Iterable[Any],
    intervals: Iterable[BookingInterval],
    policy: AvailabilityPolicy,
    package_id: int | None = None,
) -> dict[str, Any]:
    all_packages = list(packages)
    all_intervals = [item for item in intervals if is_active_status(item.status)]

    if package_id is not None:
        selected = [package for package in all_packages if package.id == package_id]
        if not selected:
            raise PackageNotFoundError(package_id)
    else:
        selected = [package for package in all_packages if getattr(package, "status", True)]

    day_start, day_end = operating_bounds(target_date, policy)
    buffer = timedelta(hours=policy.buffer_hours)

    summaries = []
    for package in sorted(selected, key=lambda item: item.id):
        duration_hours = _usable_duration_hours(package, policy)
        if duration_hours is None:
            logger.info(
                json.dumps(
                    {
                        "event": "availability_package_skipped",
                        "package_id": package.id,
                        "duration_hours": package.duration_hours,
                    }
                )
            )
            continue
        duration = timedelta(hours=duration_hours)

        scoped = [
            item
            for item in all_intervals
            if policy.conflict_scope == "global" or item.package_id == package.id
        ]
        relevant = relevant_intervals(scoped, day_start, day_end, buffer)
        windows = compute_start_windows(day_start, day_end, duration, relevant, buffer)
        status = derive_status(
            windows,
            has_relevant_bookings=bool(relevant),
            duration=duration,
            buffer=buffer,
            multiplier=policy.available_multiplier,
        )

        summaries.append(
            {
                "packageId": package.id,
                "packageName": package.package_name,
                "durationHours": duration_hours,
                "status": status,
                "existingBookings": [
                    _serialize_existing_booking(item, all_intervals, policy) for item in relevant
                ],
                "blockedWindows": [
                    {
                        "start": _format_clock(start, target_date),
                        "end": _format_clock(end, target_date),
                    }
                    for start, end in blocked_windows(relevant, day_start, day_end)
                ],
                "startWindows": [
                    {
                        "start": _format_clock(window.start, target_date),
                        "end": _format_clock(window.end, target_date),
                        "latestEnd": _format_clock(window.latest_end, target_date),
                    }
                    for window in windows
                ],
            }
        )

    return {
        "date": target_date.isoformat(),
        "constraints": {
            "bufferHours": policy.buffer_hours,
            "potentialExtensionHours": policy.max_extension_hours,
            "operatingHours": {
                "start": _format_clock(day_start, target_date),
                "end": _format_clock(day_end, target_date),
            },
            "conflictScope": policy.conflict_scope,
        },
        "packages": summaries,
    }


def count_confirmed_by_date(
    requests: Iterable[Any],
    confirmed_bookings: Iterable[Any],
) -> dict[str, int]:
    dates_by_request = {request.id: request.event_date for request in requests}
    counts: dict[str, int] = {}
    for booking in confirmed_bookings:
        if str(booking.booking_status or "").lower() not in ACTIVE_BOOKING_STATUSES:
            continue
        event_date = dates_by_request.get(booking.request_id)
        if event_date is None:
            continue
        key = event_date.isoformat()
        counts[key] = counts.get(key, 0) + 1
    return dict(sorted(counts.items()))


def _usable_duration_hours(package: Any, policy: AvailabilityPolicy) -> int | None:
    raw = getattr(package, "duration_hours", None)
    if raw is None:
        return policy.default_duration_hours
    try:
        hours = int(raw)
    except (TypeError, ValueError):
        return None
    if hours <= 0 or hours > policy.day_end_hour - policy.day_start_hour:
        return None
    return hours


def _serialize_existing_booking(
    item: BookingInterval,
    all_intervals: list[BookingInterval],
    policy: AvailabilityPolicy,
) -> dict[str, Any]:
    _, own_day_end = operating_bounds(item.event_start.date(), policy)
    return {
        "requestId": item.request_id,
        "bookingId": item.booking_id,
        "eventName": item.event_name,
        "status": item.status,
        "eventStart": item.event_start.isoformat(),
        "eventEnd": item.event_end.isoformat(),
        "bufferStart": item.buffer_start.isoformat(),
        "bufferEnd": item.buffer_end.isoformat(),
        "potentialExtensionHours": max_extension_without_conflict(
            item,
            all_intervals,
            max_extension_hours=policy.max_extension_hours,
            day_end=own_day_end,
            conflict_scope=policy.conflict_scope,
        ),
    }


def _format_clock(value: datetime, target_date: date) -> str:
    if value.date() > target_date and value.time() == time(0, 0):
        return "24:00"
    return value.strftime("%H:%M")
