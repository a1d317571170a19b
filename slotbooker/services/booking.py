"""
Application service for booking and managing appointments.

The service coordinates storage reads, the domain rules and the final commit.
Every state-changing call takes the current time from the caller; the only
points where it awaits are the store reads and the commit.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, List, Optional
from uuid import UUID

from ..domain.appointment import Appointment
from ..domain.conflict_checker import ConflictChecker
from ..domain.exceptions import (
    AppointmentNotFound,
    BusinessRuleViolation,
    OutsideWorkingHours,
    PastDateViolation,
    ProviderNotFound,
    ProviderUnavailable,
    SlotConflict,
)
from ..domain.models import AppointmentStatus, NotificationType, TimeSlot
from ..domain.notifications import NotificationIntent
from ..domain.provider import ServiceProvider
from ..domain.slot_calculator import SlotCalculator
from .ports import SchedulingStore
from .recurrence import RecurrenceExpander
from .requests import (
    AppointmentQuery,
    AppointmentRef,
    AvailabilityQuery,
    BookingRequest,
    BookingResult,
    CancelRequest,
    RescheduleRequest,
)


logger = logging.getLogger(__name__)


NON_CANCELLED = (AppointmentStatus.SCHEDULED, AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW)


@asynccontextmanager
async def _operation(name: str, subject: object) -> AsyncIterator[None]:
    """Log the outcome of an operation and let every error propagate."""
    try:
        yield
    except BusinessRuleViolation as exc:
        logger.warning("Business rule violation during %s for %s: %s", name, subject, exc)
        raise
    except Exception:
        logger.exception("Unexpected error during %s for %s", name, subject)
        raise


class BookingService:
    """
    Books, reschedules, cancels and closes appointments.

    Conflict checks and the commit that follows them always run inside the
    store's provider+date lock.
    """

    def __init__(
        self,
        store: SchedulingStore,
        timezone: str = "UTC",
        conflict_checker: Optional[ConflictChecker] = None,
        slot_calculator: Optional[SlotCalculator] = None,
    ) -> None:
        self._store = store
        self._conflict_checker = conflict_checker or ConflictChecker(timezone)
        self._slot_calculator = slot_calculator or SlotCalculator(timezone)
        self._expander = RecurrenceExpander(store, self._conflict_checker)

    async def book(self, request: BookingRequest, now: datetime) -> BookingResult:
        """
        Book an appointment and, for recurring requests, its future occurrences.

        Raises:
            ProviderNotFound, ProviderUnavailable: If the provider cannot take bookings
            BusinessRuleViolation: If the slot or appointment breaks a scheduling rule
        """
        async with _operation("booking", request.provider_id):
            provider = await self._bookable_provider(request.provider_id)
            slot = TimeSlot.from_start(request.start_time, request.duration_minutes)
            rule = request.recurrence.to_rule() if request.recurrence else None

            appointment = Appointment.create(
                provider_id=provider.id,
                customer=request.customer.to_customer(),
                appointment_date=request.appointment_date,
                slot=slot,
                now=now,
                recurrence_rule=rule,
            )

            async with self._store.slot_lock(provider.id, appointment.appointment_date):
                await self._ensure_bookable(provider, appointment.appointment_date, slot)
                await self._store.commit(
                    appointments=[appointment],
                    intents=[NotificationIntent.create(appointment.id, NotificationType.CONFIRMATION, now)],
                )

            logger.info(
                "Booked appointment %s with provider %s on %s at %s",
                appointment.id, provider.id, appointment.appointment_date, slot,
            )

            result = BookingResult(appointment_id=appointment.id)
            if rule is not None:
                expansion = await self._expander.expand(appointment, rule, provider, now)
                result = BookingResult(
                    appointment_id=appointment.id,
                    recurring_appointment_ids=expansion.created_ids,
                    total_created=expansion.total_created,
                    expansion_complete=expansion.complete,
                )

            return result

    async def reschedule(self, request: RescheduleRequest, now: datetime) -> UUID:
        """Move an appointment to a new date and slot, keeping its identity."""
        async with _operation("reschedule", request.appointment_id), \
                self._store.record_lock(request.appointment_id):
            appointment = await self._require_appointment(request.appointment_id)
            provider = await self._bookable_provider(appointment.provider_id)
            slot = TimeSlot.from_start(request.new_start_time, request.duration_minutes)

            moved = appointment.reschedule(request.new_date, slot, now)

            async with self._store.slot_lock(provider.id, moved.appointment_date):
                await self._ensure_bookable(
                    provider, moved.appointment_date, slot, exclude_appointment_id=appointment.id
                )
                await self._store.commit(
                    appointments=[moved],
                    intents=[NotificationIntent.create(moved.id, NotificationType.CONFIRMATION, now)],
                )

            logger.info(
                "Rescheduled appointment %s to %s at %s", moved.id, moved.appointment_date, slot
            )
            return moved.id

    async def cancel(self, request: CancelRequest, now: datetime) -> Appointment:
        async with _operation("cancellation", request.appointment_id), \
                self._store.record_lock(request.appointment_id):
            appointment = await self._require_appointment(request.appointment_id)
            cancelled = appointment.cancel(request.reason, now)

            await self._store.commit(
                appointments=[cancelled],
                intents=[
                    NotificationIntent.create(
                        cancelled.id, NotificationType.CANCELLATION, now, reason=cancelled.cancellation_reason
                    )
                ],
            )

            logger.info("Cancelled appointment %s", cancelled.id)
            return cancelled

    async def complete(self, request: AppointmentRef, now: datetime) -> Appointment:
        async with _operation("completion", request.appointment_id), \
                self._store.record_lock(request.appointment_id):
            appointment = await self._require_appointment(request.appointment_id)
            completed = appointment.complete(now)
            await self._store.commit(appointments=[completed])

            logger.info("Completed appointment %s", completed.id)
            return completed

    async def mark_no_show(self, request: AppointmentRef, now: datetime) -> Appointment:
        async with _operation("no-show", request.appointment_id), \
                self._store.record_lock(request.appointment_id):
            appointment = await self._require_appointment(request.appointment_id)
            missed = appointment.mark_no_show(now)
            await self._store.commit(appointments=[missed])

            logger.info("Marked appointment %s as no-show", missed.id)
            return missed

    async def available_slots(
        self,
        query: AvailabilityQuery,
        now: Optional[datetime] = None,
    ) -> List[TimeSlot]:
        """
        List bookable slots for a provider and day.

        When ``now`` is given, dates before today are rejected.
        """
        provider = await self._bookable_provider(query.provider_id)
        if now is not None and query.on_date < now.date():
            raise PastDateViolation("Date must be today or in the future")

        appointments = await self._store.find_appointments(
            provider.id, query.on_date, statuses=NON_CANCELLED
        )

        return self._slot_calculator.find_available_slots(
            appointment_date=query.on_date,
            duration_minutes=query.duration_minutes,
            working_hours=provider.working_hours_for(query.on_date.weekday()),
            appointments=appointments,
            blocked_times=provider.blocked_times_on(query.on_date, self._slot_calculator.timezone),
        )

    async def get_appointment(self, appointment_id: UUID) -> Appointment:
        return await self._require_appointment(appointment_id)

    async def list_appointments(self, query: AppointmentQuery) -> List[Appointment]:
        return await self._store.query_appointments(query)

    async def _require_appointment(self, appointment_id: UUID) -> Appointment:
        appointment = await self._store.get_appointment(appointment_id)
        if appointment is None:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found")
        return appointment

    async def _bookable_provider(self, provider_id: UUID) -> ServiceProvider:
        provider = await self._store.get_provider(provider_id)
        if provider is None:
            raise ProviderNotFound(f"Provider {provider_id} not found")
        if not provider.is_active:
            raise ProviderUnavailable(f"Provider {provider_id} is inactive")
        return provider

    async def _ensure_bookable(
        self,
        provider: ServiceProvider,
        appointment_date: date,
        slot: TimeSlot,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> None:
        """Check working hours and conflicts; call while holding the slot lock."""
        if not provider.works(appointment_date, slot):
            raise OutsideWorkingHours()

        existing = await self._store.find_appointments(
            provider.id, appointment_date, statuses=(AppointmentStatus.SCHEDULED,)
        )
        if self._conflict_checker.has_conflict(
            appointment_date,
            slot,
            existing,
            provider.blocked_times_on(appointment_date, self._conflict_checker.timezone),
            exclude_appointment_id=exclude_appointment_id,
        ):
            raise SlotConflict()
