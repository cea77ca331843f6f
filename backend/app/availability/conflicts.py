from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from app.availability.intervals import BookingInterval, is_active_status
from app.errors import ConflictError


def intervals_overlap(a: BookingInterval, b: BookingInterval) -> bool:
    # Strict: buffers that only touch at an endpoint do not collide.
    return a.buffer_start < b.buffer_end and a.buffer_end > b.buffer_start


def find_conflicts(
    candidate: BookingInterval,
    existing: Iterable[BookingInterval],
    exclude_request_id: int | None = None,
    conflict_scope: str = "package",
) -> list[BookingInterval]:
    conflicts: list[BookingInterval] = []
    for other in existing:
        if not is_active_status(other.status):
            continue
        if exclude_request_id is not None and other.request_id == exclude_request_id:
            continue
        if conflict_scope != "global" and other.package_id != candidate.package_id:
            continue
        if intervals_overlap(candidate, other):
            conflicts.append(other)
    conflicts.sort(key=lambda item: (item.buffer_start, item.request_id))
    return conflicts


def ensure_no_conflicts(
    candidate: BookingInterval,
    existing: Iterable[BookingInterval],
    exclude_request_id: int | None = None,
    conflict_scope: str = "package",
) -> None:
    conflicts = find_conflicts(
        candidate,
        existing,
        exclude_request_id=exclude_request_id,
        conflict_scope=conflict_scope,
    )
    if conflicts:
        raise ConflictError(conflicts)


def extend_interval(interval: BookingInterval, hours: int) -> BookingInterval:
    return interval.model_copy(
        update={
            "event_end": interval.event_end + timedelta(hours=hours),
            "extension_hours": interval.extension_hours + hours,
        }
    )


def max_extension_without_conflict(
    interval: BookingInterval,
    existing: Iterable[BookingInterval],
    max_extension_hours: int,
    day_end: datetime,
    conflict_scope: str = "package",
) -> int:
    """Whole hours the interval's event end can still move without a conflict.

    Extensions are additive to the interval's current end and may not run
    past ``day_end``. ``max_extension_hours`` caps the total extension, so
    hours already applied to the interval count against it.
    """
    others = list(existing)
    allowed = 0
    headroom = max(0, max_extension_hours - interval.extension_hours)
    for hours in range(1, headroom + 1):
        extended = extend_interval(interval, hours)
        if extended.event_end > day_end:
            break
        if find_conflicts(
            extended,
            others,
            exclude_request_id=interval.request_id,
            conflict_scope=conflict_scope,
        ):
            break
        allowed = hours
    return allowed
