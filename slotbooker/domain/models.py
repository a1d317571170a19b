"""
Value objects for time slots, recurrence and customers.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Iterator, Optional

import pendulum

from .exceptions import InvalidDuration, InvalidRange, InvalidRecurrence


VALID_DURATIONS = (15, 30, 45, 60)
SLOT_GRID_MINUTES = 15
LEAD_TIME = timedelta(hours=24)
HORIZON_MONTHS = 3
MAX_OCCURRENCES = 52
NO_SHOW_GRACE = timedelta(minutes=15)


def add_months(day: date, months: int) -> date:
    """Add calendar months, clamping to the last day of shorter months."""
    return pendulum.date(day.year, day.month, day.day).add(months=months)


def horizon_for(today: date) -> date:
    """Last bookable date for a booking made on ``today``."""
    return add_months(today, HORIZON_MONTHS)


def wall_clock(day: date, at: time, tz: Optional[tzinfo] = None) -> datetime:
    """Combine a date and a time-of-day into a datetime in ``tz``."""
    return datetime.combine(day, at.replace(tzinfo=None), tzinfo=tz)


@dataclass(frozen=True)
class TimeSlot:
    """
    An immutable start/end pair within a single day.

    Invariant: end is after start and the duration is one of VALID_DURATIONS.
    Overlap uses half-open intervals, so slots sharing a boundary do not overlap.
    """
    start: time
    end: time

    def __post_init__(self):
        if self.end <= self.start:
            raise InvalidRange(f"End time {self.end} must be after start time {self.start}")
        if self.duration_minutes not in VALID_DURATIONS:
            raise InvalidDuration()

    @classmethod
    def from_start(cls, start: time, duration_minutes: int) -> "TimeSlot":
        """Build a slot from its start time and duration."""
        if duration_minutes not in VALID_DURATIONS:
            raise InvalidDuration()

        anchor = datetime.combine(date(2000, 1, 1), start.replace(tzinfo=None))
        finish = anchor + timedelta(minutes=duration_minutes)
        if finish.date() != anchor.date():
            raise InvalidRange(f"Slot starting at {start} would end after midnight")

        return cls(start=anchor.time(), end=finish.time())

    @property
    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        anchor = date(2000, 1, 1)
        delta = datetime.combine(anchor, self.end) - datetime.combine(anchor, self.start)
        return int(delta.total_seconds() // 60)

    def overlaps(self, other: "TimeSlot") -> bool:
        """Check if this slot overlaps with another."""
        return self.start < other.end and self.end > other.start

    def on(self, day: date, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
        """Anchor the slot to a date, returning absolute start and end."""
        return wall_clock(day, self.start, tz), wall_clock(day, self.end, tz)

    def __str__(self) -> str:
        return f"{self.start.strftime('%H:%M')} - {self.end.strftime('%H:%M')}"


class RecurrenceType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class RecurrenceRule:
    """
    Describes how a single appointment repeats.

    A non-recurring appointment has no rule at all rather than a "none" type.
    """
    type: RecurrenceType
    interval: int = 1
    end_date: Optional[date] = None

    def __post_init__(self):
        object.__setattr__(self, "type", RecurrenceType(self.type))
        if self.interval < 1:
            raise InvalidRecurrence()

    @classmethod
    def weekly(cls, interval: int = 1, end_date: Optional[date] = None) -> "RecurrenceRule":
        return cls(RecurrenceType.WEEKLY, interval, end_date)

    @classmethod
    def monthly(cls, interval: int = 1, end_date: Optional[date] = None) -> "RecurrenceRule":
        return cls(RecurrenceType.MONTHLY, interval, end_date)

    def next_occurrence(self, current: date) -> date:
        """Return the occurrence following ``current``."""
        if self.type is RecurrenceType.WEEKLY:
            return current + timedelta(days=7 * self.interval)
        if self.type is RecurrenceType.MONTHLY:
            return add_months(current, self.interval)
        raise ValueError(f"Unsupported recurrence type: {self.type}")

    def occurrences_after(
        self,
        start: date,
        until: date,
        limit: int = MAX_OCCURRENCES,
    ) -> Iterator[date]:
        """
        Yield candidate dates after ``start``.

        Stops once a candidate passes ``until`` or the rule's end date, or
        after ``limit`` occurrences counting ``start`` itself.
        """
        current = start
        count = 1

        while count < limit:
            current = self.next_occurrence(current)
            if current > until:
                break
            if self.end_date is not None and current > self.end_date:
                break
            yield current
            count += 1


@dataclass(frozen=True)
class Customer:
    """Contact details of the person booking."""
    name: str
    email: str
    phone: str

    def normalized(self) -> "Customer":
        return Customer(
            name=self.name.strip(),
            email=self.email.strip().lower(),
            phone=self.phone.strip(),
        )


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"

    @property
    def is_terminal(self) -> bool:
        return self is not AppointmentStatus.SCHEDULED


class NotificationType(str, Enum):
    CONFIRMATION = "confirmation"
    REMINDER = "reminder"
    CANCELLATION = "cancellation"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
