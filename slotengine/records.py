"""
Store records - the shapes tenants, services, staff, customers, schedules,
bookings and blocks have in the data store, validated with Pydantic.
"""

from typing import List, Optional

import pendulum
from pendulum import DateTime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .domain.exceptions import ValidationError
from .domain.models import (
    MINUTES_PER_DAY,
    BlockInterval,
    BookedInterval,
    TimeRange,
    WorkingInterval,
    parse_clock,
)

HOLDING_STATUSES = ["confirmed", "pending"]


def parse_timestamp(value: str, timezone: str) -> DateTime:
    """
    Parse an ISO-8601 timestamp; naive values are read in the given timezone.

    Raises:
        ValidationError: If the value cannot be parsed
    """
    try:
        parsed = pendulum.parse(value, tz=timezone)
    except (ValueError, TypeError) as exc:
        raise ValidationError(f"Invalid timestamp: {value!r}") from exc

    if not isinstance(parsed, DateTime):
        raise ValidationError(f"Expected a date and time, got {value!r}")
    return parsed


class TenantSettings(BaseModel):
    """Per-tenant overrides of the slot defaults."""
    model_config = ConfigDict(extra="allow")

    slot_duration: Optional[int] = None  # granularity in minutes
    buffer_time: Optional[int] = None

    @field_validator("slot_duration")
    @classmethod
    def validate_slot_duration(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("slot_duration must be greater than zero")
        return value

    @field_validator("buffer_time")
    @classmethod
    def validate_buffer_time(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError("buffer_time must not be negative")
        return value


class TenantRecord(BaseModel):
    id: str
    name: str = ""
    settings: TenantSettings = Field(default_factory=TenantSettings)


class ServiceRecord(BaseModel):
    id: str
    tenant_id: str
    name: str
    duration_minutes: int
    price_cents: int = 0
    active: bool = True

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure service duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value


class StaffRecord(BaseModel):
    id: str
    tenant_id: str
    name: str
    active: bool = True


class CustomerRecord(BaseModel):
    """A tenant's customer, identified by phone number within the tenant."""
    id: str
    tenant_id: str
    name: str
    phone: str
    email: Optional[str] = None


class ScheduleRecord(BaseModel):
    """
    One row of the weekly schedule table.

    Times are "HH:MM" strings, weekday 0=Sunday. Empty break strings
    mean no break.
    """
    id: Optional[str] = None
    tenant_id: str
    staff_id: str
    weekday: int
    start_time: str
    end_time: str
    break_start: Optional[str] = None
    break_end: Optional[str] = None
    active: bool = True

    @field_validator("break_start", "break_end", mode="before")
    @classmethod
    def blank_break_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def to_working_interval(self) -> WorkingInterval:
        return WorkingInterval(
            staff_id=self.staff_id,
            weekday=self.weekday,
            start_minute=parse_clock(self.start_time),
            end_minute=parse_clock(self.end_time),
            break_start_minute=parse_clock(self.break_start) if self.break_start else None,
            break_end_minute=parse_clock(self.break_end) if self.break_end else None,
            active=self.active,
        )


class BookingRecord(BaseModel):
    id: str
    tenant_id: str
    service_id: Optional[str] = None
    staff_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: Optional[str] = None
    starts_at: str
    ends_at: str
    status: str = "confirmed"
    notes: Optional[str] = None
    created_via: str = "admin"

    def time_range(self, timezone: str) -> TimeRange:
        return TimeRange(
            start=parse_timestamp(self.starts_at, timezone),
            end=parse_timestamp(self.ends_at, timezone),
        )

    def to_booked_interval(self, timezone: str) -> BookedInterval:
        return BookedInterval(staff_id=self.staff_id, time_range=self.time_range(timezone))


class BlockRecord(BaseModel):
    id: Optional[str] = None
    tenant_id: str
    staff_id: Optional[str] = None  # None blocks every staff member
    starts_at: str
    ends_at: str
    reason: Optional[str] = None

    def to_block_interval(self, timezone: str) -> BlockInterval:
        return BlockInterval(
            staff_id=self.staff_id,
            time_range=TimeRange(
                start=parse_timestamp(self.starts_at, timezone),
                end=parse_timestamp(self.ends_at, timezone),
            ),
        )


class BookingRequest(BaseModel):
    """A customer's request to book a service at a given local date and time."""
    tenant_id: str
    service_id: str
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    customer_name: str
    customer_phone: str
    staff_id: Optional[str] = None
    customer_email: Optional[str] = None
    notes: Optional[str] = None
    created_via: str = "public"

    @field_validator("tenant_id", "service_id", "customer_name", "customer_phone")
    @classmethod
    def validate_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("field is required")
        return value.strip()

    @model_validator(mode="after")
    def validate_clock(self) -> "BookingRequest":
        if parse_clock(self.time) >= MINUTES_PER_DAY:
            raise ValueError(f"Start time must be before 24:00: {self.time}")
        return self


class DataFile(BaseModel):
    """Top-level layout of the JSON data file."""
    tenants: List[TenantRecord] = Field(default_factory=list)
    services: List[ServiceRecord] = Field(default_factory=list)
    staff: List[StaffRecord] = Field(default_factory=list)
    customers: List[CustomerRecord] = Field(default_factory=list)
    schedules: List[ScheduleRecord] = Field(default_factory=list)
    bookings: List[BookingRecord] = Field(default_factory=list)
    blocks: List[BlockRecord] = Field(default_factory=list)
