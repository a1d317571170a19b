"""
Detects overlaps between a candidate slot and a provider's existing bookings.
"""

from datetime import date
from typing import Iterable, List, Optional, Union
from uuid import UUID

import pendulum

from .appointment import Appointment
from .models import TimeSlot
from .provider import BlockedTime


Conflict = Union[Appointment, BlockedTime]


class ConflictChecker:
    """
    Decides whether a candidate slot collides with scheduled appointments or
    blocked intervals.

    Only SCHEDULED appointments count; cancelled, completed and no-show
    appointments never conflict. Blocked intervals are absolute datetimes, so
    the candidate is anchored in the scheduling timezone before comparing.
    """

    def __init__(self, timezone: str = "UTC"):
        self.timezone = pendulum.timezone(timezone)

    def find_conflicts(
        self,
        appointment_date: date,
        slot: TimeSlot,
        appointments: Iterable[Appointment],
        blocked_times: Iterable[BlockedTime] = (),
        exclude_appointment_id: Optional[UUID] = None,
    ) -> List[Conflict]:
        """
        Return every appointment and blocked interval overlapping the slot.

        Args:
            appointment_date: Date of the candidate booking
            slot: Candidate time slot
            appointments: The provider's appointments (any status, any date)
            blocked_times: The provider's blocked intervals
            exclude_appointment_id: Appointment to ignore, used when rescheduling in place
        """
        conflicts: List[Conflict] = [
            appt for appt in appointments
            if appt.id != exclude_appointment_id and appt.conflicts_with(appointment_date, slot)
        ]

        start, end = slot.on(appointment_date, self.timezone)
        conflicts.extend(bt for bt in blocked_times if bt.conflicts_with(start, end))

        return conflicts

    def has_conflict(
        self,
        appointment_date: date,
        slot: TimeSlot,
        appointments: Iterable[Appointment],
        blocked_times: Iterable[BlockedTime] = (),
        exclude_appointment_id: Optional[UUID] = None,
    ) -> bool:
        return bool(
            self.find_conflicts(
                appointment_date,
                slot,
                appointments,
                blocked_times,
                exclude_appointment_id=exclude_appointment_id,
            )
        )
