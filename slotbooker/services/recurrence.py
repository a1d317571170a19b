"""
Materializes the occurrences of a recurring appointment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from ..domain.appointment import Appointment
from ..domain.conflict_checker import ConflictChecker
from ..domain.models import MAX_OCCURRENCES, AppointmentStatus, RecurrenceRule, horizon_for
from ..domain.provider import ServiceProvider
from .ports import SchedulingStore


logger = logging.getLogger(__name__)


@dataclass
class ExpansionResult:
    created_ids: List[UUID] = field(default_factory=list)
    skipped_dates: List[date] = field(default_factory=list)
    complete: bool = True
    error: Optional[str] = None

    @property
    def total_created(self) -> int:
        """Parent plus materialized children."""
        return 1 + len(self.created_ids)


class RecurrenceExpander:
    """
    Creates child appointments for each future occurrence of a parent.

    Occurrences are processed one at a time: each takes the provider+date
    lock, checks for conflicts and commits on its own. A conflicting date is
    a gap in the series, not an error. An unexpected failure stops the
    expansion but keeps whatever was already committed.
    """

    def __init__(self, store: SchedulingStore, conflict_checker: ConflictChecker) -> None:
        self._store = store
        self._conflict_checker = conflict_checker

    async def expand(
        self,
        parent: Appointment,
        rule: RecurrenceRule,
        provider: ServiceProvider,
        now: datetime,
    ) -> ExpansionResult:
        result = ExpansionResult()
        candidates = rule.occurrences_after(
            parent.appointment_date,
            until=horizon_for(now.date()),
            limit=MAX_OCCURRENCES,
        )

        for occurrence_date in candidates:
            try:
                child = await self._materialize(parent, provider, occurrence_date, now)
            except Exception as exc:
                logger.warning(
                    "Recurring expansion for appointment %s stopped at %s: %s",
                    parent.id, occurrence_date, exc,
                )
                result.complete = False
                result.error = str(exc)
                break

            if child is None:
                result.skipped_dates.append(occurrence_date)
            else:
                result.created_ids.append(child.id)

        logger.info(
            "Expanded appointment %s into %d occurrence(s), %d skipped",
            parent.id, len(result.created_ids), len(result.skipped_dates),
        )
        return result

    async def _materialize(
        self,
        parent: Appointment,
        provider: ServiceProvider,
        occurrence_date: date,
        now: datetime,
    ) -> Optional[Appointment]:
        async with self._store.slot_lock(provider.id, occurrence_date):
            if not provider.works(occurrence_date, parent.slot):
                logger.debug("Skipping %s: provider not working at %s", occurrence_date, parent.slot)
                return None

            existing = await self._store.find_appointments(
                provider.id,
                occurrence_date,
                statuses=(AppointmentStatus.SCHEDULED,),
            )
            if self._conflict_checker.has_conflict(
                occurrence_date,
                parent.slot,
                existing,
                provider.blocked_times_on(occurrence_date, self._conflict_checker.timezone),
            ):
                logger.debug("Skipping %s: slot %s already taken", occurrence_date, parent.slot)
                return None

            child = Appointment.create(
                provider_id=parent.provider_id,
                customer=parent.customer,
                appointment_date=occurrence_date,
                slot=parent.slot,
                now=now,
                parent_appointment_id=parent.id,
            )
            await self._store.commit(appointments=[child])

        return child
