"""
In-memory implementation of the scheduling store.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from ..domain.appointment import Appointment
from ..domain.models import AppointmentStatus, NotificationType
from ..domain.notifications import NotificationIntent, NotificationLog
from ..domain.provider import ServiceProvider
from ..services.requests import AppointmentQuery


class InMemoryStore:
    """
    Keeps providers, appointments and the notification outbox in dictionaries.

    Aggregates are immutable, so handing out the stored instances is safe.
    ``commit`` applies all rows in one step without awaiting, which makes it
    atomic with respect to other tasks on the event loop.
    """

    def __init__(self) -> None:
        self.providers: Dict[UUID, ServiceProvider] = {}
        self.appointments: Dict[UUID, Appointment] = {}
        self.intents: Dict[UUID, NotificationIntent] = {}
        self.notification_logs: Dict[Tuple[UUID, NotificationType], NotificationLog] = {}
        self._locks: Dict[Tuple[UUID, date], asyncio.Lock] = {}
        self._record_locks: Dict[UUID, asyncio.Lock] = {}

    async def get_provider(self, provider_id: UUID) -> Optional[ServiceProvider]:
        return self.providers.get(provider_id)

    async def find_provider_by_email(self, email: str) -> Optional[ServiceProvider]:
        key = email.strip().lower()
        for provider in self.providers.values():
            if provider.email.lower() == key:
                return provider
        return None

    async def list_providers(self, active_only: bool = False) -> List[ServiceProvider]:
        providers = [p for p in self.providers.values() if p.is_active or not active_only]
        return sorted(providers, key=lambda p: p.name.lower())

    async def get_appointment(self, appointment_id: UUID) -> Optional[Appointment]:
        return self.appointments.get(appointment_id)

    async def find_appointments(
        self,
        provider_id: UUID,
        on_date: date,
        statuses: Optional[Sequence[AppointmentStatus]] = None,
    ) -> List[Appointment]:
        # Yield to the loop the way a real driver would between query and result.
        await asyncio.sleep(0)
        return [
            appt for appt in self.appointments.values()
            if appt.provider_id == provider_id
            and appt.appointment_date == on_date
            and (statuses is None or appt.status in statuses)
        ]

    async def query_appointments(self, query: AppointmentQuery) -> List[Appointment]:
        matches = [appt for appt in self.appointments.values() if _matches(appt, query)]
        return sorted(matches, key=lambda a: (a.appointment_date, a.slot.start))

    async def get_notification_log(
        self,
        appointment_id: UUID,
        notification_type: NotificationType,
    ) -> Optional[NotificationLog]:
        return self.notification_logs.get((appointment_id, NotificationType(notification_type)))

    async def pending_intents(self) -> List[NotificationIntent]:
        return sorted(self.intents.values(), key=lambda i: i.created_at)

    @asynccontextmanager
    async def slot_lock(self, provider_id: UUID, on_date: date) -> AsyncIterator[None]:
        lock = self._locks.setdefault((provider_id, on_date), asyncio.Lock())
        async with lock:
            yield

    @asynccontextmanager
    async def record_lock(self, record_id: UUID) -> AsyncIterator[None]:
        lock = self._record_locks.setdefault(record_id, asyncio.Lock())
        async with lock:
            yield

    async def commit(
        self,
        *,
        providers: Iterable[ServiceProvider] = (),
        appointments: Iterable[Appointment] = (),
        intents: Iterable[NotificationIntent] = (),
        notification_logs: Iterable[NotificationLog] = (),
        resolved_intents: Iterable[UUID] = (),
    ) -> None:
        for provider in providers:
            self.providers[provider.id] = provider
        for appointment in appointments:
            self.appointments[appointment.id] = appointment
        for intent in intents:
            self.intents[intent.id] = intent
        for log in notification_logs:
            self.notification_logs[(log.appointment_id, log.type)] = log
        for intent_id in resolved_intents:
            self.intents.pop(intent_id, None)


def _matches(appointment: Appointment, query: AppointmentQuery) -> bool:
    if query.provider_id is not None and appointment.provider_id != query.provider_id:
        return False
    if query.from_date is not None and appointment.appointment_date < query.from_date:
        return False
    if query.to_date is not None and appointment.appointment_date > query.to_date:
        return False
    if query.customer_email and appointment.customer.email != query.customer_email:
        return False
    if query.status is not None and appointment.status is not query.status:
        return False
    return True
