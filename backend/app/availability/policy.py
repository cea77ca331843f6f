from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app import config


class AvailabilityPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    buffer_hours: int = Field(default=2, ge=0)
    max_extension_hours: int = Field(default=2, ge=0)
    day_start_hour: int = Field(default=0, ge=0, le=23)
    day_end_hour: int = Field(default=24, ge=1, le=24)
    default_duration_hours: int = Field(default=2, gt=0)
    available_multiplier: float = Field(default=2.0, gt=0)
    conflict_scope: Literal["package", "global"] = "package"
    max_past_days: int = Field(default=365, ge=0)
    max_future_days: int = Field(default=730, ge=0)

    @model_validator(mode="after")
    def validate_operating_hours(self) -> "AvailabilityPolicy":
        if self.day_end_hour <= self.day_start_hour:
            raise ValueError("Operating day must end after it starts.")
        return self


def load_availability_policy() -> AvailabilityPolicy:
    return AvailabilityPolicy(
        buffer_hours=config.BOOKING_BUFFER_HOURS,
        max_extension_hours=config.MAX_EXTENSION_HOURS,
        day_start_hour=config.OPERATING_DAY_START_HOUR,
        day_end_hour=config.OPERATING_DAY_END_HOUR,
        default_duration_hours=config.DEFAULT_PACKAGE_DURATION_HOURS,
        available_multiplier=config.AVAILABLE_FOOTPRINT_MULTIPLIER,
        conflict_scope=config.CONFLICT_SCOPE,
        max_past_days=config.AVAILABILITY_MAX_PAST_DAYS,
        max_future_days=config.AVAILABILITY_MAX_FUTURE_DAYS,
    )
