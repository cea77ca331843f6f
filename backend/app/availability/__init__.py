from app.availability.calculator import (
    StartWindow,
    compute_daily_availability,
    compute_start_windows,
    count_confirmed_by_date,
    derive_status,
    parse_availability_date,
)
from app.availability.conflicts import (
    ensure_no_conflicts,
    find_conflicts,
    intervals_overlap,
    max_extension_without_conflict,
)
from app.availability.intervals import (
    BookingInterval,
    collect_intervals,
    interval_from_confirmed_booking,
    interval_from_request,
    is_active_status,
    to_interval,
)
from app.availability.policy import AvailabilityPolicy, load_availability_policy

__all__ = [
    "AvailabilityPolicy",
    "BookingInterval",
    "StartWindow",
    "collect_intervals",
    "compute_daily_availability",
    "compute_start_windows",
    "count_confirmed_by_date",
    "derive_status",
    "ensure_no_conflicts",
    "find_conflicts",
    "interval_from_confirmed_booking",
    "interval_from_request",
    "intervals_overlap",
    "is_active_status",
    "load_availability_policy",
    "max_extension_without_conflict",
    "parse_availability_date",
    "to_interval",
]
