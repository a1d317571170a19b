"""
Provider-side availability model: service providers, their weekly working
hours and ad-hoc blocked intervals.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Tuple
from uuid import UUID, uuid4

from .exceptions import InvalidProviderInfo, InvalidRange, InvalidTransition, MissingReason
from .models import TimeSlot, wall_clock


WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class WorkingHours:
    """
    Working window for one weekday (0=Monday, 6=Sunday).

    Replaced rows are kept with ``is_active=False`` as history.
    """
    id: UUID
    weekday: int
    start_time: time
    end_time: time
    created_at: datetime
    updated_at: datetime
    is_active: bool = True

    def __post_init__(self):
        if self.weekday not in range(7):
            raise ValueError(f"Weekday must be between 0 and 6, got {self.weekday}")
        if self.end_time <= self.start_time:
            raise InvalidRange()

    @classmethod
    def create(cls, weekday: int, start_time: time, end_time: time, now: datetime) -> "WorkingHours":
        return cls(
            id=uuid4(),
            weekday=weekday,
            start_time=start_time,
            end_time=end_time,
            created_at=now,
            updated_at=now,
        )

    def deactivate(self, now: datetime) -> "WorkingHours":
        return replace(self, is_active=False, updated_at=now)

    def covers(self, slot: TimeSlot) -> bool:
        """Check if a slot falls entirely inside this working window."""
        return self.is_active and slot.start >= self.start_time and slot.end <= self.end_time

    def __str__(self) -> str:
        return (
            f"{WEEKDAY_NAMES[self.weekday]} "
            f"{self.start_time.strftime('%H:%M')} - {self.end_time.strftime('%H:%M')}"
        )


@dataclass(frozen=True)
class BlockedTime:
    """An absolute interval during which the provider takes no bookings."""
    id: UUID
    start: datetime
    end: datetime
    reason: str
    created_at: datetime

    def __post_init__(self):
        if _is_naive(self.start) or _is_naive(self.end):
            raise InvalidRange("Block start and end must include a timezone")
        if self.end <= self.start:
            raise InvalidRange(f"Block end {self.end} must be after start {self.start}")
        if not self.reason or not self.reason.strip():
            raise MissingReason("Block reason is required")

    @classmethod
    def create(cls, start: datetime, end: datetime, reason: str, now: datetime) -> "BlockedTime":
        return cls(id=uuid4(), start=start, end=end, reason=(reason or "").strip(), created_at=now)

    def conflicts_with(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start

    def touches(self, day: date, tz: tzinfo) -> bool:
        """Check if the block overlaps any part of ``day`` as seen in ``tz``."""
        day_start = wall_clock(day, time(0, 0), tz)
        day_end = wall_clock(day + timedelta(days=1), time(0, 0), tz)
        return self.conflicts_with(day_start, day_end)


def _is_naive(value: datetime) -> bool:
    return value.tzinfo is None or value.utcoffset() is None


def _validate_provider_info(name: str, email: str, specialty: str) -> None:
    if not name or not name.strip():
        raise InvalidProviderInfo("Provider name is required")
    if not email or not email.strip():
        raise InvalidProviderInfo("Provider email is required")
    if not specialty or not specialty.strip():
        raise InvalidProviderInfo("Provider specialty is required")
    if "@" not in email:
        raise InvalidProviderInfo("Invalid email format")


@dataclass(frozen=True)
class ServiceProvider:
    """
    A bookable provider owning its working hours and blocked times.

    Deactivation keeps all data; it only stops new bookings.
    """
    id: UUID
    name: str
    email: str
    specialty: str
    created_at: datetime
    updated_at: datetime
    is_active: bool = True
    working_hours: Tuple[WorkingHours, ...] = ()
    blocked_times: Tuple[BlockedTime, ...] = ()

    @classmethod
    def create(cls, name: str, email: str, specialty: str, now: datetime) -> "ServiceProvider":
        _validate_provider_info(name, email, specialty)

        return cls(
            id=uuid4(),
            name=name.strip(),
            email=email.strip().lower(),
            specialty=specialty.strip(),
            created_at=now,
            updated_at=now,
        )

    def update_details(self, name: str, email: str, specialty: str, now: datetime) -> "ServiceProvider":
        _validate_provider_info(name, email, specialty)

        return replace(
            self,
            name=name.strip(),
            email=email.strip().lower(),
            specialty=specialty.strip(),
            updated_at=now,
        )

    def add_working_hours(
        self,
        weekday: int,
        start_time: time,
        end_time: time,
        now: datetime,
    ) -> "ServiceProvider":
        """Set the working window for a weekday, retiring the previous one."""
        new_hours = WorkingHours.create(weekday, start_time, end_time, now)

        history = tuple(
            wh.deactivate(now) if wh.weekday == weekday and wh.is_active else wh
            for wh in self.working_hours
        )

        return replace(self, working_hours=history + (new_hours,), updated_at=now)

    def block_time(self, start: datetime, end: datetime, reason: str, now: datetime) -> "ServiceProvider":
        blocked = BlockedTime.create(start, end, reason, now)
        return replace(self, blocked_times=self.blocked_times + (blocked,), updated_at=now)

    def deactivate(self, now: datetime) -> "ServiceProvider":
        if not self.is_active:
            raise InvalidTransition("Provider is already deactivated")
        return replace(self, is_active=False, updated_at=now)

    def activate(self, now: datetime) -> "ServiceProvider":
        if self.is_active:
            raise InvalidTransition("Provider is already active")
        return replace(self, is_active=True, updated_at=now)

    def working_hours_for(self, weekday: int) -> Optional[WorkingHours]:
        """Return the active working hours for a weekday, if any."""
        for wh in self.working_hours:
            if wh.weekday == weekday and wh.is_active:
                return wh
        return None

    def blocked_times_on(self, day: date, tz: tzinfo) -> list[BlockedTime]:
        return [bt for bt in self.blocked_times if bt.touches(day, tz)]

    def works(self, day: date, slot: TimeSlot) -> bool:
        """Check if the slot lies inside the active working hours for ``day``."""
        hours = self.working_hours_for(day.weekday())
        return hours is not None and hours.covers(slot)
