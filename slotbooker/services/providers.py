"""
Commands that manage providers and their availability configuration.
"""

from __future__ import annotations

import logging
from datetime import datetime, time
from typing import List
from uuid import UUID

from ..domain.exceptions import DuplicateProviderEmail, ProviderNotFound, ProviderUnavailable
from ..domain.provider import ServiceProvider
from .ports import SchedulingStore


logger = logging.getLogger(__name__)


class ProviderService:
    """
    Creates providers and mutates their working hours and blocked times.

    Only a provider's own commands touch its collections; availability
    queries read them.
    """

    def __init__(self, store: SchedulingStore) -> None:
        self._store = store

    async def create_provider(self, name: str, email: str, specialty: str, now: datetime) -> ServiceProvider:
        provider = ServiceProvider.create(name, email, specialty, now)
        await self._ensure_unique_email(provider.email)

        await self._store.commit(providers=[provider])
        logger.info("Created provider %s with name %s", provider.id, provider.name)
        return provider

    async def update_provider(
        self,
        provider_id: UUID,
        name: str,
        email: str,
        specialty: str,
        now: datetime,
    ) -> ServiceProvider:
        async with self._store.record_lock(provider_id):
            provider = await self.get_provider(provider_id)
            updated = provider.update_details(name, email, specialty, now)
            if updated.email != provider.email:
                await self._ensure_unique_email(updated.email)

            await self._store.commit(providers=[updated])
        logger.info("Updated provider %s", provider_id)
        return updated

    async def deactivate_provider(self, provider_id: UUID, now: datetime) -> ServiceProvider:
        async with self._store.record_lock(provider_id):
            provider = (await self.get_provider(provider_id)).deactivate(now)
            await self._store.commit(providers=[provider])
        logger.info("Deactivated provider %s", provider_id)
        return provider

    async def activate_provider(self, provider_id: UUID, now: datetime) -> ServiceProvider:
        async with self._store.record_lock(provider_id):
            provider = (await self.get_provider(provider_id)).activate(now)
            await self._store.commit(providers=[provider])
        logger.info("Activated provider %s", provider_id)
        return provider

    async def add_working_hours(
        self,
        provider_id: UUID,
        weekday: int,
        start_time: time,
        end_time: time,
        now: datetime,
    ) -> ServiceProvider:
        """Set a weekday's working hours; the previous active row is retired."""
        async with self._store.record_lock(provider_id):
            provider = await self._active_provider(provider_id)
            updated = provider.add_working_hours(weekday, start_time, end_time, now)
            await self._store.commit(providers=[updated])

        logger.info(
            "Set working hours for provider %s on weekday %d from %s to %s",
            provider_id, weekday, start_time, end_time,
        )
        return updated

    async def block_time(
        self,
        provider_id: UUID,
        start: datetime,
        end: datetime,
        reason: str,
        now: datetime,
    ) -> ServiceProvider:
        async with self._store.record_lock(provider_id):
            provider = await self._active_provider(provider_id)
            updated = provider.block_time(start, end, reason, now)
            await self._store.commit(providers=[updated])

        logger.info("Blocked time for provider %s from %s to %s", provider_id, start, end)
        return updated

    async def get_provider(self, provider_id: UUID) -> ServiceProvider:
        provider = await self._store.get_provider(provider_id)
        if provider is None:
            raise ProviderNotFound(f"Provider {provider_id} not found")
        return provider

    async def list_providers(self, active_only: bool = False) -> List[ServiceProvider]:
        return await self._store.list_providers(active_only=active_only)

    async def _active_provider(self, provider_id: UUID) -> ServiceProvider:
        provider = await self.get_provider(provider_id)
        if not provider.is_active:
            raise ProviderUnavailable(f"Provider {provider_id} is inactive")
        return provider

    async def _ensure_unique_email(self, email: str) -> None:
        if await self._store.find_provider_by_email(email) is not None:
            raise DuplicateProviderEmail(f"A provider with email {email} already exists")
