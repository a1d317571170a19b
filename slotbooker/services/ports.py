"""
Protocols describing the collaborators the scheduling services depend on.

Services only talk to storage and notification delivery through these
protocols, so the in-memory adapters and test doubles plug in directly.
"""

from __future__ import annotations

from datetime import date
from typing import AsyncContextManager, Iterable, List, Optional, Protocol, Sequence
from uuid import UUID

from ..domain.appointment import Appointment
from ..domain.models import AppointmentStatus, NotificationType
from ..domain.notifications import NotificationIntent, NotificationLog
from ..domain.provider import ServiceProvider
from .requests import AppointmentQuery


class SchedulingStore(Protocol):
    """Storage behaviour needed by the scheduling services."""

    async def get_provider(self, provider_id: UUID) -> Optional[ServiceProvider]:
        """Return a provider by id."""

    async def find_provider_by_email(self, email: str) -> Optional[ServiceProvider]:
        """Return the provider with this email, compared case-insensitively."""

    async def list_providers(self, active_only: bool = False) -> List[ServiceProvider]:
        """Return providers ordered by name."""

    async def get_appointment(self, appointment_id: UUID) -> Optional[Appointment]:
        """Return an appointment by id."""

    async def find_appointments(
        self,
        provider_id: UUID,
        on_date: date,
        statuses: Optional[Sequence[AppointmentStatus]] = None,
    ) -> List[Appointment]:
        """Return a provider's appointments on a date, optionally by status."""

    async def query_appointments(self, query: AppointmentQuery) -> List[Appointment]:
        """Return appointments matching the query, ordered by date and start time."""

    async def get_notification_log(
        self,
        appointment_id: UUID,
        notification_type: NotificationType,
    ) -> Optional[NotificationLog]:
        """Return delivery bookkeeping for an appointment and notification type."""

    async def pending_intents(self) -> List[NotificationIntent]:
        """Return queued notification intents in creation order."""

    def slot_lock(self, provider_id: UUID, on_date: date) -> AsyncContextManager[None]:
        """
        Serialize check-then-commit sequences for one provider and date.

        Two bookings for the same provider and date must not both pass the
        conflict check before either commits.
        """

    def record_lock(self, record_id: UUID) -> AsyncContextManager[None]:
        """
        Serialize read-modify-commit sequences on one provider or appointment.

        Callers read the record after acquiring the lock and commit before
        releasing it, so a concurrent change is never overwritten.
        """

    async def commit(
        self,
        *,
        providers: Iterable[ServiceProvider] = (),
        appointments: Iterable[Appointment] = (),
        intents: Iterable[NotificationIntent] = (),
        notification_logs: Iterable[NotificationLog] = (),
        resolved_intents: Iterable[UUID] = (),
    ) -> None:
        """Persist all given rows atomically and drop resolved intents."""


class Notifier(Protocol):
    """Delivers a notification about an appointment to its customer."""

    async def send(
        self,
        notification_type: NotificationType,
        appointment: Appointment,
        reason: Optional[str] = None,
    ) -> None:
        """Send one notification; raise on delivery failure."""
