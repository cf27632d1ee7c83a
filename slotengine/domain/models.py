"""
Domain models for working hours, busy intervals and candidate slots.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

import pendulum
from pendulum import DateTime

from .exceptions import ValidationError

MINUTES_PER_DAY = 24 * 60

DEFAULT_SLOT_GRANULARITY_MINUTES = 15
DEFAULT_BUFFER_MINUTES = 10
DEFAULT_TIMEZONE = "America/Bahia"


def parse_clock(value: str) -> int:
    """
    Convert a "HH:MM" (or "HH:MM:SS") string into minutes after midnight.

    Raises:
        ValidationError: If the string is not a valid clock time
    """
    parts = value.strip().split(":") if isinstance(value, str) else []
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValidationError(f"Invalid clock time: {value!r}")

    hours, minutes = int(parts[0]), int(parts[1])
    # 24:00 is accepted as end of day
    if not (0 <= minutes < 60 and (0 <= hours < 24 or (hours == 24 and minutes == 0))):
        raise ValidationError(f"Invalid clock time: {value!r}")

    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Render minutes after midnight as "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_of(day: date) -> int:
    """Weekday number as stored in schedules: 0=Sunday, 6=Saturday."""
    return day.isoweekday() % 7


def _check_minute(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer number of minutes, got {value!r}")
    if not 0 <= value <= MINUTES_PER_DAY:
        raise ValidationError(f"{name} must be between 0 and {MINUTES_PER_DAY}, got {value}")


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range [start, end).

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValidationError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds()) // 60

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another (touching ends do not count)."""
        return self.start < other.end and self.end > other.start

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start.format('DD/MM/YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class WorkingInterval:
    """
    One staff member's working window on one weekday, in minutes after midnight.

    Weekdays follow the schedule table convention: 0=Sunday ... 6=Saturday.
    A break is only honoured when both of its bounds are set.
    """
    staff_id: str
    weekday: int
    start_minute: int
    end_minute: int
    break_start_minute: Optional[int] = None
    break_end_minute: Optional[int] = None
    active: bool = True

    def __post_init__(self):
        if self.weekday not in range(7):
            raise ValidationError(f"weekday must be between 0 and 6, got {self.weekday}")
        _check_minute("start_minute", self.start_minute)
        _check_minute("end_minute", self.end_minute)
        if self.start_minute >= self.end_minute:
            raise ValidationError(
                f"Working interval for staff {self.staff_id} starts at "
                f"{format_minutes(self.start_minute)} but ends at {format_minutes(self.end_minute)}"
            )

        if self.has_break():
            _check_minute("break_start_minute", self.break_start_minute)
            _check_minute("break_end_minute", self.break_end_minute)
            if self.break_start_minute >= self.break_end_minute:
                raise ValidationError(
                    f"Break for staff {self.staff_id} must start before it ends"
                )
            if self.break_start_minute < self.start_minute or self.break_end_minute > self.end_minute:
                raise ValidationError(
                    f"Break for staff {self.staff_id} must lie within the working interval"
                )

    def has_break(self) -> bool:
        return self.break_start_minute is not None and self.break_end_minute is not None

    def __str__(self) -> str:
        text = f"{format_minutes(self.start_minute)}-{format_minutes(self.end_minute)}"
        if self.has_break():
            text += (
                f" (intervalo {format_minutes(self.break_start_minute)}"
                f"-{format_minutes(self.break_end_minute)})"
            )
        return text


@dataclass(frozen=True)
class BreakInterval:
    """An extra minute-of-day break; staff_id None applies to every staff member."""
    staff_id: Optional[str]
    start_minute: int
    end_minute: int

    def __post_init__(self):
        _check_minute("start_minute", self.start_minute)
        _check_minute("end_minute", self.end_minute)
        if self.start_minute >= self.end_minute:
            raise ValidationError("Break must start before it ends")

    def applies_to(self, staff_id: str) -> bool:
        return self.staff_id is None or self.staff_id == staff_id


@dataclass(frozen=True)
class BookedInterval:
    """
    A period held by a confirmed or pending booking.

    A booking without staff (not yet assigned) holds the time for everybody.
    """
    staff_id: Optional[str]
    time_range: TimeRange

    def applies_to(self, staff_id: str) -> bool:
        return self.staff_id is None or self.staff_id == staff_id


@dataclass(frozen=True)
class BlockInterval:
    """A manual unavailability window; staff_id None blocks all staff."""
    staff_id: Optional[str]
    time_range: TimeRange

    def applies_to(self, staff_id: str) -> bool:
        return self.staff_id is None or self.staff_id == staff_id


class ConflictKind(str, Enum):
    """The rule that made a candidate slot unavailable."""
    BREAK = "break"
    BOOKING = "booking"
    BLOCK = "block"


class SlotView(str, Enum):
    """Which form of the slot list a caller wants."""
    ALL = "all"
    AVAILABLE = "available"
    ANY_STAFF = "any_staff"


@dataclass(frozen=True)
class CandidateSlot:
    """
    A discrete start time at which the service could begin.
    """
    time_range: TimeRange
    available: bool
    staff_id: Optional[str] = None
    conflict: Optional[ConflictKind] = None

    @property
    def start(self) -> DateTime:
        return self.time_range.start

    @property
    def end(self) -> DateTime:
        return self.time_range.end

    def time_label(self) -> str:
        """Start time as shown on the booking page."""
        return self.start.format("HH:mm")


@dataclass(frozen=True)
class SlotRequest:
    """
    Query parameters for one day's slot computation.

    Raises ValidationError on construction so that nothing is scanned
    for an invalid request.
    """
    target_date: date
    service_duration_minutes: int
    staff_id: Optional[str] = None
    slot_granularity_minutes: int = DEFAULT_SLOT_GRANULARITY_MINUTES
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES
    now: Optional[DateTime] = None

    def __post_init__(self):
        if isinstance(self.target_date, datetime):
            object.__setattr__(self, "target_date", self.target_date.date())
        elif not isinstance(self.target_date, date):
            raise ValidationError(f"target_date must be a calendar date, got {self.target_date!r}")

        for name in ("service_duration_minutes", "slot_granularity_minutes", "buffer_minutes"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"{name} must be an integer, got {value!r}")

        if self.service_duration_minutes <= 0:
            raise ValidationError(
                f"service_duration_minutes must be greater than zero, got {self.service_duration_minutes}"
            )
        if self.slot_granularity_minutes <= 0:
            raise ValidationError(
                f"slot_granularity_minutes must be greater than zero, got {self.slot_granularity_minutes}"
            )
        if self.buffer_minutes < 0:
            raise ValidationError(f"buffer_minutes must not be negative, got {self.buffer_minutes}")
        if self.now is not None and (not isinstance(self.now, datetime) or self.now.tzinfo is None):
            raise ValidationError(f"now must be a timezone-aware datetime, got {self.now!r}")

    @property
    def weekday(self) -> int:
        return weekday_of(self.target_date)

    @property
    def scheduled_minutes(self) -> int:
        """Space a slot needs inside a working interval: service plus buffer."""
        return self.service_duration_minutes + self.buffer_minutes


@dataclass
class SlotListing:
    """
    Available and occupied slots split from a single pass over a slot sequence.
    """
    available: List[CandidateSlot]
    occupied: List[CandidateSlot]

    @classmethod
    def from_slots(cls, slots) -> "SlotListing":
        available: List[CandidateSlot] = []
        occupied: List[CandidateSlot] = []
        for slot in slots:
            (available if slot.available else occupied).append(slot)
        return cls(available=available, occupied=occupied)


def day_window(target_date: date, timezone: str) -> TimeRange:
    """The full civil day [00:00, next 00:00) in the given timezone."""
    start = pendulum.datetime(target_date.year, target_date.month, target_date.day, tz=timezone)
    return TimeRange(start=start, end=start.add(days=1))
