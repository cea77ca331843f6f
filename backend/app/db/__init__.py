from app.db.base import Base
from app.db.models import (
    BookingRequest,
    ConfirmedBooking,
    Package,
)

__all__ = [
    "Base",
    "BookingRequest",
    "ConfirmedBooking",
    "Package",
]
