from datetime import date, datetime, time, timedelta
from types import SimpleNamespace

import pytest

from app.availability.intervals import (
    collect_intervals,
    interval_from_confirmed_booking,
    is_active_status,
    to_interval,
)
from app.availability.policy import AvailabilityPolicy
from app.errors import InvalidBookingTimeError


EVENT_DATE = date(2026, 11, 7)
POLICY = AvailabilityPolicy()


def _request(request_id, start_hour, status="accepted", package_id=1, **overrides):
    fields = {
        "id": request_id,
        "package_id": package_id,
        "event_date": EVENT_DATE,
        "event_time": time(start_hour, 0),
        "event_end_time": None,
        "extension_duration": None,
        "status": status,
        "event_name": f"Event {request_id}",
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _booking(booking_id, request_id, booking_status="scheduled", **overrides):
    fields = {
        "id": booking_id,
        "request_id": request_id,
        "event_end_time": None,
        "extension_duration": None,
        "booking_status": booking_status,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_buffer_is_applied_symmetrically():
    interval = to_interval(
        EVENT_DATE,
        time(10, 0),
        request_id=1,
        package_id=1,
        status="accepted",
        duration_hours=3,
    )

    assert interval.event_start == datetime(2026, 11, 7, 10, 0)
    assert interval.event_end == datetime(2026, 11, 7, 13, 0)
    assert interval.buffer_start == datetime(2026, 11, 7, 8, 0)
    assert interval.buffer_end == datetime(2026, 11, 7, 15, 0)
    assert interval.event_start - interval.buffer_start == timedelta(hours=2)
    assert interval.buffer_end - interval.event_end == timedelta(hours=2)


def test_explicit_end_time_wins_over_package_duration():
    interval = to_interval(
        EVENT_DATE,
        time(10, 0),
        request_id=1,
        package_id=1,
        status="pending",
        event_end_time=time(11, 30),
        duration_hours=4,
    )
    assert interval.event_end == datetime(2026, 11, 7, 11, 30)


def test_extension_moves_event_end():
    interval = to_interval(
        EVENT_DATE,
        time(10, 0),
        request_id=1,
        package_id=1,
        status="accepted",
        duration_hours=3,
        extension_hours=2,
    )
    assert interval.event_end == datetime(2026, 11, 7, 15, 0)
    assert interval.buffer_end == datetime(2026, 11, 7, 17, 0)


def test_missing_duration_uses_default():
    interval = to_interval(
        EVENT_DATE,
        time(10, 0),
        request_id=1,
        package_id=1,
        status="accepted",
        duration_hours=None,
        default_duration_hours=2,
    )
    assert interval.event_end == datetime(2026, 11, 7, 12, 0)


def test_event_may_end_exactly_at_midnight():
    interval = to_interval(
        EVENT_DATE,
        time(21, 0),
        request_id=1,
        package_id=1,
        status="accepted",
        duration_hours=3,
    )
    assert interval.event_end == datetime(2026, 11, 8, 0, 0)
    assert interval.buffer_end == datetime(2026, 11, 8, 2, 0)


def test_event_running_past_midnight_is_rejected():
    with pytest.raises(InvalidBookingTimeError):
        to_interval(
            EVENT_DATE,
            time(22, 0),
            request_id=1,
            package_id=1,
            status="accepted",
            duration_hours=3,
        )


def test_end_time_before_start_is_rejected():
    with pytest.raises(InvalidBookingTimeError):
        to_interval(
            EVENT_DATE,
            time(22, 0),
            request_id=1,
            package_id=1,
            status="accepted",
            event_end_time=time(1, 0),
        )


def test_negative_extension_is_rejected():
    with pytest.raises(InvalidBookingTimeError):
        to_interval(
            EVENT_DATE,
            time(10, 0),
            request_id=1,
            package_id=1,
            status="accepted",
            extension_hours=-1,
        )


def test_status_is_normalized():
    interval = to_interval(
        EVENT_DATE,
        time(10, 0),
        request_id=1,
        package_id=1,
        status=" Accepted ",
    )
    assert interval.status == "accepted"
    assert interval.is_active is True


@pytest.mark.parametrize(
    "status, expected",
    [
        ("pending", True),
        ("accepted", True),
        ("scheduled", True),
        ("in_progress", True),
        ("completed", True),
        ("rejected", False),
        ("cancelled", False),
        ("declined", False),
        (None, False),
    ],
)
def test_active_statuses(status, expected):
    assert is_active_status(status) is expected


def test_confirmed_booking_values_override_request():
    request = _request(1, 10, extension_duration=1, event_end_time=time(12, 0))
    booking = _booking(5, 1, event_end_time=time(13, 0), extension_duration=2)

    interval = interval_from_confirmed_booking(booking, request, POLICY, duration_hours=4)

    assert interval.booking_id == 5
    assert interval.source == "booking"
    assert interval.status == "scheduled"
    assert interval.event_end == datetime(2026, 11, 7, 15, 0)


def test_collect_intervals_prefers_booking_status_and_sorts():
    packages = [SimpleNamespace(id=1, duration_hours=3)]
    requests = [
        _request(1, 16),
        _request(2, 9),
        _request(3, 12, status="rejected"),
        _request(4, 6),
    ]
    bookings = [
        _booking(10, 1),
        _booking(11, 4, booking_status="cancelled"),
    ]

    intervals = collect_intervals(requests, bookings, packages, POLICY)

    assert [item.request_id for item in intervals] == [2, 1]
    assert intervals[0].source == "request"
    assert intervals[1].source == "booking"
    assert intervals[1].booking_id == 10


def test_collect_intervals_skips_unusable_records(caplog):
    packages = [SimpleNamespace(id=1, duration_hours=3)]
    requests = [
        _request(1, 10),
        _request(2, 23),
    ]

    with caplog.at_level("WARNING"):
        intervals = collect_intervals(requests, [], packages, POLICY)

    assert [item.request_id for item in intervals] == [1]
    assert "booking_interval_skipped" in caplog.text
