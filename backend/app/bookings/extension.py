from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.availability.calculator import ensure_within_operating_day
from app.availability.conflicts import find_conflicts
from app.availability.intervals import BookingInterval, interval_from_confirmed_booking
from app.availability.policy import AvailabilityPolicy
from app.availability.repository import fetch_existing_intervals, find_package, lock_package
from app.bookings.manage_request import find_booking_request, serialize_confirmed_booking
from app.db.models import BookingRequest, ConfirmedBooking
from app.errors import (
    BookingNotFoundError,
    ConflictError,
    InvalidBookingStateError,
    InvalidBookingTimeError,
)

EXTENDABLE_BOOKING_STATUSES = frozenset({"scheduled", "in_progress"})

logger = logging.getLogger("photobooth.bookings.extension")


class ExtensionArgs(BaseModel):
    extension_hours: int = Field(ge=0)


def parse_extension_args(raw_args: dict[str, Any]) -> ExtensionArgs:
    return ExtensionArgs.model_validate(raw_args)


def find_confirmed_booking(db: Session, booking_id: int) -> ConfirmedBooking | None:
    for booking in db.query(ConfirmedBooking).filter(ConfirmedBooking.id == booking_id).all():
        if booking.id == booking_id:
            return booking
    return None


def check_extension_conflicts(
    db: Session,
    booking_id: int,
    extension_hours: int,
    policy: AvailabilityPolicy,
) -> list[BookingInterval]:
    """Preflight: bookings that would collide with the extended interval.

    ``extension_hours`` is the booking's new total extension, not a delta.
    The booking's own current interval is never reported.
    """
    booking, request = _load_booking(db, booking_id)
    package = find_package(db, request.package_id)
    candidate = _extended_interval(booking, request, package, extension_hours, policy)
    existing = fetch_existing_intervals(db, request.event_date, policy)
    return find_conflicts(
        candidate,
        existing,
        exclude_request_id=request.id,
        conflict_scope=policy.conflict_scope,
    )


def apply_extension(
    db: Session,
    booking_id: int,
    extension_hours: int,
    policy: AvailabilityPolicy,
) -> dict[str, Any]:
    booking, request = _load_booking(db, booking_id)
    package = lock_package(db, request.package_id, conflict_scope=policy.conflict_scope)
    # Pick up status or extension changes committed while we waited on the lock.
    db.refresh(booking)
    db.refresh(request)
    try:
        candidate = _extended_interval(booking, request, package, extension_hours, policy)
    except (InvalidBookingStateError, InvalidBookingTimeError):
        db.rollback()
        raise

    existing = fetch_existing_intervals(db, request.event_date, policy)
    conflicts = find_conflicts(
        candidate,
        existing,
        exclude_request_id=request.id,
        conflict_scope=policy.conflict_scope,
    )
    if conflicts:
        db.rollback()
        logger.info(
            json.dumps(
                {
                    "event": "booking_extension_conflict",
                    "booking_id": booking.id,
                    "extension_hours": extension_hours,
                    "conflicts": [item.request_id for item in conflicts],
                }
            )
        )
        raise ConflictError(conflicts, message="Extension conflicts with another booking")

    booking.extension_duration = extension_hours
    db.commit()

    logger.info(
        json.dumps(
            {
                "event": "booking_extension_applied",
                "booking_id": booking.id,
                "extension_hours": extension_hours,
                "event_end": candidate.event_end.isoformat(),
            }
        )
    )
    data = serialize_confirmed_booking(booking)
    data["event_start"] = candidate.event_start.isoformat()
    data["event_end"] = candidate.event_end.isoformat()
    return data


def _load_booking(db: Session, booking_id: int) -> tuple[ConfirmedBooking, BookingRequest]:
    booking = find_confirmed_booking(db, booking_id)
    if booking is None:
        raise BookingNotFoundError("Confirmed booking not found.")
    request = find_booking_request(db, booking.request_id)
    if request is None:
        raise BookingNotFoundError("Booking request for confirmed booking not found.")
    return booking, request


def _extended_interval(
    booking: ConfirmedBooking,
    request: BookingRequest,
    package: Any,
    extension_hours: int,
    policy: AvailabilityPolicy,
) -> BookingInterval:
    if booking.booking_status not in EXTENDABLE_BOOKING_STATUSES:
        raise InvalidBookingStateError(
            f"Booking cannot be extended while {booking.booking_status}."
        )
    if extension_hours < 0 or extension_hours > policy.max_extension_hours:
        raise InvalidBookingTimeError(
            f"Extension must be between 0 and {policy.max_extension_hours} hours."
        )

    candidate = interval_from_confirmed_booking(
        booking,
        request,
        policy,
        duration_hours=package.duration_hours if package is not None else None,
        extension_hours=extension_hours,
    )
    ensure_within_operating_day(candidate, policy)
    return candidate
