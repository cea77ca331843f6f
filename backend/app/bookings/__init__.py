from app.bookings.create_request import (
    create_booking_request,
    parse_create_booking_request_args,
    serialize_booking_request,
)
from app.bookings.extension import (
    apply_extension,
    check_extension_conflicts,
    parse_extension_args,
)
from app.bookings.manage_request import (
    accept_booking_request,
    cancel_booking_request,
    create_and_confirm_booking,
    reject_booking_request,
    serialize_confirmed_booking,
)

__all__ = [
    "accept_booking_request",
    "apply_extension",
    "cancel_booking_request",
    "check_extension_conflicts",
    "create_and_confirm_booking",
    "create_booking_request",
    "parse_create_booking_request_args",
    "parse_extension_args",
    "reject_booking_request",
    "serialize_booking_request",
    "serialize_confirmed_booking",
]
