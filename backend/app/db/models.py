from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


REQUEST_STATUSES = ("pending", "accepted", "rejected", "cancelled", "declined")
BOOKING_STATUSES = ("scheduled", "in_progress", "completed", "cancelled")
PAYMENT_STATUSES = ("unpaid", "partial", "paid", "refunded")


class Package(Base):
    __tablename__ = "packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    package_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, server_default=text("0.00"), default=Decimal("0.00")
    )
    duration_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true"), default=True
    )
    display: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true"), default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class BookingRequest(Base):
    __tablename__ = "booking_requests"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'cancelled', 'declined')",
            name="ck_booking_requests_status",
        ),
        CheckConstraint(
            "extension_duration IS NULL OR extension_duration >= 0",
            name="ck_booking_requests_extension_non_negative",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    package_id: Mapped[int] = mapped_column(
        ForeignKey("packages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    event_time: Mapped[time] = mapped_column(Time, nullable=False)
    event_end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    extension_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    event_address: Mapped[str] = mapped_column(Text, nullable=False)
    event_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_person: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_person_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    booth_placement: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default="pending", default="pending", index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ConfirmedBooking(Base):
    __tablename__ = "confirmed_bookings"
    __table_args__ = (
        CheckConstraint(
            "booking_status IN ('scheduled', 'in_progress', 'completed', 'cancelled')",
            name="ck_confirmed_bookings_booking_status",
        ),
        CheckConstraint(
            "payment_status IN ('unpaid', 'partial', 'paid', 'refunded')",
            name="ck_confirmed_bookings_payment_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(
        ForeignKey("booking_requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    event_end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    extension_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    booking_status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default="scheduled", default="scheduled", index=True
    )
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default="unpaid", default="unpaid"
    )
    total_booking_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, server_default=text("0.00"), default=Decimal("0.00")
    )
    contract_signed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false"), default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
