from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy.orm import Session

from app.availability.calculator import count_confirmed_by_date
from app.availability.intervals import BookingInterval, collect_intervals
from app.availability.policy import AvailabilityPolicy
from app.db.models import BookingRequest, ConfirmedBooking, Package
from app.errors import PackageNotFoundError


def fetch_packages(db: Session) -> list[Package]:
    return sorted(db.query(Package).all(), key=lambda package: package.id)


def find_package(db: Session, package_id: int) -> Package | None:
    for package in db.query(Package).filter(Package.id == package_id).all():
        if package.id == package_id:
            return package
    return None


def lock_package(db: Session, package_id: int, conflict_scope: str = "package") -> Package:
    """Take a row lock that serializes booking writes for the package.

    The lock is held until the surrounding transaction commits or rolls
    back, so a conflict check followed by an insert cannot interleave with
    another writer for the same resource. With a global conflict scope every
    package row is locked, in id order to avoid deadlocks.
    """
    query = db.query(Package)
    if conflict_scope != "global":
        query = query.filter(Package.id == package_id)
    rows = query.order_by(Package.id).with_for_update().all()
    for package in rows:
        if package.id == package_id:
            return package
    raise PackageNotFoundError(package_id)


def fetch_records_around(
    db: Session,
    target_date: date,
) -> tuple[list[BookingRequest], list[ConfirmedBooking]]:
    # Buffers may spill across midnight, so neighbouring days are included.
    first_day = target_date - timedelta(days=1)
    last_day = target_date + timedelta(days=1)
    requests = [
        request
        for request in db.query(BookingRequest)
        .filter(BookingRequest.event_date >= first_day)
        .filter(BookingRequest.event_date <= last_day)
        .all()
        if first_day <= request.event_date <= last_day
    ]
    request_ids = {request.id for request in requests}
    if not request_ids:
        return [], []

    bookings = [
        booking
        for booking in db.query(ConfirmedBooking)
        .filter(ConfirmedBooking.request_id.in_(request_ids))
        .all()
        if booking.request_id in request_ids
    ]
    return requests, bookings


def fetch_existing_intervals(
    db: Session,
    target_date: date,
    policy: AvailabilityPolicy,
    packages: list[Package] | None = None,
) -> list[BookingInterval]:
    requests, bookings = fetch_records_around(db, target_date)
    if packages is None:
        packages = fetch_packages(db)
    return collect_intervals(requests, bookings, packages, policy)


def fetch_confirmed_counts(
    db: Session,
    start: date | None = None,
    end: date | None = None,
) -> dict[str, int]:
    query = db.query(BookingRequest)
    if start is not None:
        query = query.filter(BookingRequest.event_date >= start)
    if end is not None:
        query = query.filter(BookingRequest.event_date <= end)
    requests = [
        request
        for request in query.all()
        if (start is None or request.event_date >= start)
        and (end is None or request.event_date <= end)
    ]
    request_ids = {request.id for request in requests}
    if not request_ids:
        return {}

    bookings = [
        booking
        for booking in db.query(ConfirmedBooking)
        .filter(ConfirmedBooking.request_id.in_(request_ids))
        .all()
        if booking.request_id in request_ids
    ]
    return count_confirmed_by_date(requests, bookings)
