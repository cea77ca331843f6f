from __future__ import annotations

import json
import logging
from datetime import date, time
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.availability.calculator import ensure_within_operating_day
from app.availability.conflicts import find_conflicts
from app.availability.intervals import to_interval
from app.availability.policy import AvailabilityPolicy
from app.availability.repository import fetch_existing_intervals, lock_package
from app.db.models import BookingRequest, Package
from app.errors import ConflictError, InvalidBookingTimeError, PackageNotFoundError


logger = logging.getLogger("photobooth.bookings.create_request")


class CreateBookingRequestArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    package_id: int = Field(gt=0, validation_alias=AliasChoices("package_id", "packageid"))
    user_id: int | None = Field(default=None, validation_alias=AliasChoices("user_id", "userid"))
    event_date: date = Field(validation_alias=AliasChoices("event_date", "eventdate"))
    event_time: time = Field(validation_alias=AliasChoices("event_time", "eventtime"))
    event_end_time: time | None = None
    extension_duration: int = Field(default=0, ge=0)
    event_address: str = Field(
        min_length=1, validation_alias=AliasChoices("event_address", "eventaddress")
    )
    event_name: str | None = None
    notes: str | None = None
    contact_person: str | None = None
    contact_person_number: str | None = None
    booth_placement: str | None = None


def parse_create_booking_request_args(raw_args: dict[str, Any]) -> CreateBookingRequestArgs:
    return CreateBookingRequestArgs.model_validate(raw_args)


def reserve_slot(
    db: Session,
    args: CreateBookingRequestArgs,
    policy: AvailabilityPolicy,
    status: str = "pending",
    conflict_message: str | None = None,
) -> Package:
    """Lock the package and verify the requested slot is free.

    The package lock stays held on success; the caller inserts its rows and
    commits. Every failure rolls back before raising.
    """
    if args.extension_duration > policy.max_extension_hours:
        raise InvalidBookingTimeError(
            f"Extension cannot exceed {policy.max_extension_hours} hours."
        )

    package = lock_package(db, args.package_id, conflict_scope=policy.conflict_scope)
    if not package.status:
        db.rollback()
        raise PackageNotFoundError(args.package_id)

    try:
        candidate = to_interval(
            args.event_date,
            args.event_time,
            request_id=0,
            package_id=package.id,
            status=status,
            event_end_time=args.event_end_time,
            duration_hours=package.duration_hours,
            extension_hours=args.extension_duration,
            buffer_hours=policy.buffer_hours,
            default_duration_hours=policy.default_duration_hours,
            event_name=args.event_name,
        )
        ensure_within_operating_day(candidate, policy)
    except InvalidBookingTimeError:
        db.rollback()
        raise

    existing = fetch_existing_intervals(db, args.event_date, policy)
    conflicts = find_conflicts(candidate, existing, conflict_scope=policy.conflict_scope)
    if conflicts:
        db.rollback()
        logger.info(
            json.dumps(
                {
                    "event": "booking_conflict_detected",
                    "package_id": package.id,
                    "event_date": args.event_date.isoformat(),
                    "conflicts": [item.request_id for item in conflicts],
                }
            )
        )
        if conflict_message is None:
            raise ConflictError(conflicts)
        raise ConflictError(conflicts, message=conflict_message)
    return package


def build_booking_request(
    args: CreateBookingRequestArgs,
    package: Package,
    status: str = "pending",
) -> BookingRequest:
    return BookingRequest(
        package_id=package.id,
        user_id=args.user_id,
        event_date=args.event_date,
        event_time=args.event_time,
        event_end_time=args.event_end_time,
        extension_duration=args.extension_duration,
        event_address=args.event_address,
        event_name=args.event_name,
        notes=args.notes,
        contact_person=args.contact_person,
        contact_person_number=args.contact_person_number,
        booth_placement=args.booth_placement,
        status=status,
    )


def create_booking_request(
    db: Session,
    args: CreateBookingRequestArgs,
    policy: AvailabilityPolicy,
) -> dict[str, Any]:
    package = reserve_slot(db, args, policy)

    request = build_booking_request(args, package)
    db.add(request)
    db.flush()
    db.commit()

    logger.info(
        json.dumps(
            {
                "event": "booking_request_created",
                "request_id": request.id,
                "package_id": package.id,
                "event_date": args.event_date.isoformat(),
            }
        )
    )
    return serialize_booking_request(request)


def serialize_booking_request(request: BookingRequest) -> dict[str, Any]:
    return {
        "request_id": request.id,
        "package_id": request.package_id,
        "user_id": request.user_id,
        "event_date": request.event_date.isoformat(),
        "event_time": _format_time(request.event_time),
        "event_end_time": _format_time(request.event_end_time),
        "extension_duration": request.extension_duration,
        "event_address": request.event_address,
        "event_name": request.event_name,
        "notes": request.notes,
        "contact_person": request.contact_person,
        "contact_person_number": request.contact_person_number,
        "booth_placement": request.booth_placement,
        "status": request.status,
    }


def _format_time(value: time | None) -> str | None:
    if value is None:
        return None
    return value.strftime("%H:%M")
