from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from app.availability.conflicts import find_conflicts
from app.availability.intervals import interval_from_request
from app.availability.policy import AvailabilityPolicy
from app.availability.repository import fetch_existing_intervals, lock_package
from app.bookings.create_request import (
    CreateBookingRequestArgs,
    build_booking_request,
    reserve_slot,
    serialize_booking_request,
)
from app.db.models import BookingRequest, ConfirmedBooking, Package
from app.errors import BookingNotFoundError, ConflictError, InvalidBookingStateError

logger = logging.getLogger("photobooth.bookings.manage_request")


def find_booking_request(db: Session, request_id: int) -> BookingRequest | None:
    for request in db.query(BookingRequest).filter(BookingRequest.id == request_id).all():
        if request.id == request_id:
            return request
    return None


def find_confirmed_booking_for_request(db: Session, request_id: int) -> ConfirmedBooking | None:
    for booking in (
        db.query(ConfirmedBooking).filter(ConfirmedBooking.request_id == request_id).all()
    ):
        if booking.request_id == request_id:
            return booking
    return None


def accept_booking_request(
    db: Session,
    request_id: int,
    policy: AvailabilityPolicy,
) -> dict[str, Any]:
    request = _require_request(db, request_id)
    package = lock_package(db, request.package_id, conflict_scope=policy.conflict_scope)
    # Another admin may have decided this request while we waited on the lock.
    db.refresh(request)
    if request.status != "pending":
        db.rollback()
        raise InvalidBookingStateError(f"Only pending requests can be accepted (status={request.status}).")

    candidate = interval_from_request(request, policy, duration_hours=package.duration_hours)
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
                    "event": "booking_accept_conflict",
                    "request_id": request.id,
                    "conflicts": [item.request_id for item in conflicts],
                }
            )
        )
        raise ConflictError(conflicts, message="Request conflicts with an accepted booking")

    request.status = "accepted"
    booking = _confirmed_booking_for(request, package)
    db.add(booking)
    db.flush()
    db.commit()

    logger.info(
        json.dumps(
            {
                "event": "booking_request_accepted",
                "request_id": request.id,
                "booking_id": booking.id,
            }
        )
    )
    return {
        "booking_request": serialize_booking_request(request),
        "confirmed_booking": serialize_confirmed_booking(booking),
    }


def create_and_confirm_booking(
    db: Session,
    args: CreateBookingRequestArgs,
    policy: AvailabilityPolicy,
) -> dict[str, Any]:
    """Admin path: insert an accepted request and its confirmed booking together."""
    package = reserve_slot(
        db,
        args,
        policy,
        status="accepted",
        conflict_message="Timeslot not available",
    )

    request = build_booking_request(args, package, status="accepted")
    db.add(request)
    db.flush()
    booking = _confirmed_booking_for(request, package)
    db.add(booking)
    db.flush()
    db.commit()

    logger.info(
        json.dumps(
            {
                "event": "booking_created_and_confirmed",
                "request_id": request.id,
                "booking_id": booking.id,
                "package_id": package.id,
            }
        )
    )
    return {
        "booking_request": serialize_booking_request(request),
        "confirmed_booking": serialize_confirmed_booking(booking),
    }


def reject_booking_request(db: Session, request_id: int) -> dict[str, Any]:
    request = _require_request(db, request_id)
    if request.status != "pending":
        raise InvalidBookingStateError(f"Only pending requests can be rejected (status={request.status}).")

    request.status = "rejected"
    db.commit()
    logger.info(json.dumps({"event": "booking_request_rejected", "request_id": request.id}))
    return {"booking_request": serialize_booking_request(request)}


def cancel_booking_request(
    db: Session,
    request_id: int,
    user_id: int | None = None,
) -> dict[str, Any]:
    request = _require_request(db, request_id)
    if user_id is not None and request.user_id != user_id:
        raise BookingNotFoundError("Booking request not found for this customer.")

    if request.status == "cancelled":
        return {"booking_request": serialize_booking_request(request)}
    if request.status in {"rejected", "declined"}:
        raise InvalidBookingStateError(f"Request is already {request.status}.")

    booking = find_confirmed_booking_for_request(db, request.id)
    if booking is not None:
        if booking.booking_status in {"in_progress", "completed"}:
            raise InvalidBookingStateError(
                f"Booking cannot be cancelled once {booking.booking_status}."
            )
        booking.booking_status = "cancelled"

    request.status = "cancelled"
    db.commit()
    logger.info(json.dumps({"event": "booking_request_cancelled", "request_id": request.id}))
    return {"booking_request": serialize_booking_request(request)}


def serialize_confirmed_booking(booking: ConfirmedBooking) -> dict[str, Any]:
    return {
        "booking_id": booking.id,
        "request_id": booking.request_id,
        "user_id": booking.user_id,
        "booking_status": booking.booking_status,
        "payment_status": booking.payment_status,
        "total_booking_price": (
            str(booking.total_booking_price) if booking.total_booking_price is not None else None
        ),
        "contract_signed": bool(booking.contract_signed),
        "event_end_time": (
            booking.event_end_time.strftime("%H:%M") if booking.event_end_time else None
        ),
        "extension_duration": booking.extension_duration,
    }


def _require_request(db: Session, request_id: int) -> BookingRequest:
    request = find_booking_request(db, request_id)
    if request is None:
        raise BookingNotFoundError("Booking request not found.")
    return request


def _confirmed_booking_for(request: BookingRequest, package: Package) -> ConfirmedBooking:
    return ConfirmedBooking(
        request_id=request.id,
        user_id=request.user_id,
        booking_status="scheduled",
        payment_status="unpaid",
        total_booking_price=package.price if package.price is not None else Decimal("0.00"),
        contract_signed=False,
    )
