"""
The appointment aggregate and its lifecycle.

Appointments are immutable: every lifecycle method validates its guards and
returns an updated copy. The current time is always supplied by the caller.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional
from uuid import UUID, uuid4

from .exceptions import (
    FutureCompletionViolation,
    HorizonViolation,
    InvalidCustomerInfo,
    InvalidTransition,
    LeadTimeViolation,
    MissingReason,
    PastDateViolation,
    TooEarlyViolation,
)
from .models import (
    LEAD_TIME,
    NO_SHOW_GRACE,
    AppointmentStatus,
    Customer,
    RecurrenceRule,
    TimeSlot,
    horizon_for,
    wall_clock,
)


def validate_booking_window(appointment_date: date, slot: TimeSlot, now: datetime) -> None:
    """
    Check past-date, lead-time and horizon rules for a booking target.

    Raises:
        PastDateViolation: If the date is before today
        LeadTimeViolation: If the start is not more than 24 hours away
        HorizonViolation: If the date is more than 3 months ahead
    """
    today = now.date()
    starts_at = wall_clock(appointment_date, slot.start, now.tzinfo)

    if appointment_date < today:
        raise PastDateViolation()

    if starts_at <= now + LEAD_TIME:
        raise LeadTimeViolation()

    if appointment_date > horizon_for(today):
        raise HorizonViolation()


def validate_customer(customer: Customer) -> None:
    if not customer.name or not customer.name.strip():
        raise InvalidCustomerInfo("Customer name is required")
    if not customer.email or not customer.email.strip():
        raise InvalidCustomerInfo("Customer email is required")
    if not customer.phone or not customer.phone.strip():
        raise InvalidCustomerInfo("Customer phone is required")
    if "@" not in customer.email:
        raise InvalidCustomerInfo("Invalid email format")


@dataclass(frozen=True)
class Appointment:
    """
    A booked service appointment.

    Status starts as SCHEDULED; CANCELLED, COMPLETED and NO_SHOW are terminal.
    """
    id: UUID
    provider_id: UUID
    customer: Customer
    appointment_date: date
    slot: TimeSlot
    created_at: datetime
    updated_at: datetime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    cancellation_reason: Optional[str] = None
    recurrence_rule: Optional[RecurrenceRule] = None
    parent_appointment_id: Optional[UUID] = None

    @classmethod
    def create(
        cls,
        *,
        provider_id: UUID,
        customer: Customer,
        appointment_date: date,
        slot: TimeSlot,
        now: datetime,
        recurrence_rule: Optional[RecurrenceRule] = None,
        parent_appointment_id: Optional[UUID] = None,
    ) -> "Appointment":
        validate_booking_window(appointment_date, slot, now)
        validate_customer(customer)

        return cls(
            id=uuid4(),
            provider_id=provider_id,
            customer=customer.normalized(),
            appointment_date=appointment_date,
            slot=slot,
            created_at=now,
            updated_at=now,
            recurrence_rule=recurrence_rule,
            parent_appointment_id=parent_appointment_id,
        )

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_rule is not None

    @property
    def duration_minutes(self) -> int:
        return self.slot.duration_minutes

    def starts_at(self, tz=None) -> datetime:
        return wall_clock(self.appointment_date, self.slot.start, tz)

    def conflicts_with(self, appointment_date: date, slot: TimeSlot) -> bool:
        """True if this appointment blocks ``slot`` on ``appointment_date``."""
        return (
            self.status is AppointmentStatus.SCHEDULED
            and self.appointment_date == appointment_date
            and self.slot.overlaps(slot)
        )

    def cancel(self, reason: str, now: datetime) -> "Appointment":
        self._require_scheduled("cancel")
        if not reason or not reason.strip():
            raise MissingReason("Cancellation reason is required")

        return replace(
            self,
            status=AppointmentStatus.CANCELLED,
            cancellation_reason=reason.strip(),
            updated_at=now,
        )

    def reschedule(self, new_date: date, new_slot: TimeSlot, now: datetime) -> "Appointment":
        """Move the appointment in place; customer details are not re-checked."""
        self._require_scheduled("reschedule")
        validate_booking_window(new_date, new_slot, now)

        return replace(self, appointment_date=new_date, slot=new_slot, updated_at=now)

    def complete(self, now: datetime) -> "Appointment":
        self._require_scheduled("complete")
        if now < self.starts_at(now.tzinfo):
            raise FutureCompletionViolation()

        return replace(self, status=AppointmentStatus.COMPLETED, updated_at=now)

    def mark_no_show(self, now: datetime) -> "Appointment":
        self._require_scheduled("mark as no-show")
        if now < self.starts_at(now.tzinfo) + NO_SHOW_GRACE:
            raise TooEarlyViolation()

        return replace(self, status=AppointmentStatus.NO_SHOW, updated_at=now)

    def _require_scheduled(self, action: str) -> None:
        if self.status.is_terminal:
            raise InvalidTransition(
                f"Can only {action} scheduled appointments (status is {self.status.value})"
            )
