"""
Core business logic for calculating available appointment slots.

This is pure domain logic without any external dependencies (no database,
no I/O). The caller gathers the provider's working hours, the day's
appointments and blocked intervals, and this module turns them into bookable
start times.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

import pendulum

from .appointment import Appointment
from .exceptions import InvalidDuration
from .models import SLOT_GRID_MINUTES, VALID_DURATIONS, AppointmentStatus, TimeSlot
from .provider import BlockedTime, WorkingHours


class SlotCalculator:
    """
    Calculates available start times for one provider on one day.

    Algorithm:
    1. Take the active working hours for the day (none means no slots)
    2. Walk a fixed 15-minute grid from the working-hours start
    3. Keep each grid point whose slot fits before the working-hours end
    4. Drop points overlapping a non-cancelled appointment or a blocked interval
    5. Return the survivors in ascending order

    The grid is finer than the slot duration on purpose, so callers see every
    valid start time rather than back-to-back bins.
    """

    def __init__(self, timezone: str = "UTC"):
        self.timezone = pendulum.timezone(timezone)

    def find_available_slots(
        self,
        appointment_date: date,
        duration_minutes: int,
        working_hours: Optional[WorkingHours],
        appointments: Iterable[Appointment] = (),
        blocked_times: Iterable[BlockedTime] = (),
    ) -> List[TimeSlot]:
        """
        Find all bookable slots of ``duration_minutes`` on ``appointment_date``.

        Args:
            appointment_date: Day to search
            duration_minutes: Requested slot length
            working_hours: Active working hours for that weekday, or None
            appointments: The provider's appointments on that day
            blocked_times: The provider's blocked intervals

        Returns:
            List of TimeSlot objects in ascending start order

        Raises:
            InvalidDuration: If the duration is not 15, 30, 45 or 60 minutes
        """
        if duration_minutes not in VALID_DURATIONS:
            raise InvalidDuration()

        if working_hours is None or not working_hours.is_active:
            return []

        busy = self._busy_slots(appointment_date, appointments)
        blocks = list(blocked_times)

        available: List[TimeSlot] = []
        for slot in self._grid(appointment_date, working_hours, duration_minutes):
            if any(slot.overlaps(taken) for taken in busy):
                continue
            if self._is_blocked(appointment_date, slot, blocks):
                continue
            available.append(slot)

        return available

    def _grid(
        self,
        appointment_date: date,
        working_hours: WorkingHours,
        duration_minutes: int,
    ) -> Iterable[TimeSlot]:
        """
        Generate candidate slots every 15 minutes inside the working window.
        """
        step = timedelta(minutes=SLOT_GRID_MINUTES)
        length = timedelta(minutes=duration_minutes)

        current = datetime.combine(appointment_date, working_hours.start_time)
        window_end = datetime.combine(appointment_date, working_hours.end_time)

        while current + length <= window_end:
            yield TimeSlot(start=current.time(), end=(current + length).time())
            current += step

    @staticmethod
    def _busy_slots(appointment_date: date, appointments: Iterable[Appointment]) -> List[TimeSlot]:
        """Slots taken by appointments on the day that were not cancelled."""
        return [
            appt.slot for appt in appointments
            if appt.appointment_date == appointment_date
            and appt.status is not AppointmentStatus.CANCELLED
        ]

    def _is_blocked(self, appointment_date: date, slot: TimeSlot, blocks: List[BlockedTime]) -> bool:
        start, end = slot.on(appointment_date, self.timezone)
        return any(block.conflicts_with(start, end) for block in blocks)
