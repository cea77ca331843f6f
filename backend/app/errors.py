from __future__ import annotations

from typing import Any


class InvalidDateError(ValueError):
    def __init__(self, message: str = "Invalid date supplied") -> None:
        super().__init__(message)


class InvalidBookingTimeError(ValueError):
    pass


class InvalidBookingStateError(ValueError):
    pass


class PackageNotFoundError(LookupError):
    def __init__(self, package_id: Any) -> None:
        super().__init__(f"Package {package_id} not found.")
        self.package_id = package_id


class BookingNotFoundError(LookupError):
    pass


class ConflictError(Exception):
    """Raised when a candidate interval overlaps active bookings.

    ``conflicts`` holds the colliding intervals so callers can report
    which bookings block the request.
    """

    def __init__(
        self,
        conflicts: list[Any],
        message: str = "Selected date/time is no longer available",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.conflicts = list(conflicts)

    @property
    def conflict_ids(self) -> list[int]:
        return [item.request_id for item in self.conflicts]
