"""
Outbox consumer and reminder sweep.

Booking operations only queue notification intents. Delivery happens here,
decoupled from booking traffic, and a failed delivery never reaches the
operation that raised the intent.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import pendulum

from ..domain.models import AppointmentStatus, NotificationType
from ..domain.notifications import NotificationIntent, NotificationLog
from .ports import Notifier, SchedulingStore
from .requests import AppointmentQuery


logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    dropped: int = 0


class NotificationDispatcher:
    """
    Sends queued notification intents and keeps their delivery log.

    A notification type is delivered at most once per intent: if the log
    shows a successful send at or after the intent was raised, the intent is
    resolved without sending. Failed sends stay queued until ``max_attempts``
    failures accumulate, then the intent is dropped.
    """

    def __init__(self, store: SchedulingStore, notifier: Notifier, max_attempts: int = 3) -> None:
        self._store = store
        self._notifier = notifier
        self._max_attempts = max_attempts

    async def dispatch_pending(self, now: datetime) -> DispatchReport:
        report = DispatchReport()

        for intent in await self._store.pending_intents():
            await self._dispatch(intent, now, report)

        if report.sent or report.failed or report.dropped:
            logger.info(
                "Notification dispatch completed. Sent: %d, failed: %d, skipped: %d, dropped: %d",
                report.sent, report.failed, report.skipped, report.dropped,
            )
        return report

    async def _dispatch(self, intent: NotificationIntent, now: datetime, report: DispatchReport) -> None:
        log = await self._store.get_notification_log(intent.appointment_id, intent.type)
        if log is None:
            log = NotificationLog.create(intent.appointment_id, intent.type, now)

        if log.delivered_since(intent.created_at):
            report.skipped += 1
            await self._store.commit(resolved_intents=[intent.id])
            return

        appointment = await self._store.get_appointment(intent.appointment_id)
        if appointment is None:
            logger.warning("Dropping %s notification for missing appointment %s", intent.type.value, intent.appointment_id)
            report.dropped += 1
            await self._store.commit(resolved_intents=[intent.id])
            return

        try:
            await self._notifier.send(intent.type, appointment, reason=intent.reason)
        except Exception as exc:
            log = log.mark_failed(str(exc), now)
            report.failed += 1
            logger.error(
                "Failed to send %s notification for appointment %s (attempt %d)",
                intent.type.value, appointment.id, log.retry_count, exc_info=True,
            )
            resolved = []
            if log.retry_count >= self._max_attempts:
                logger.error(
                    "Giving up on %s notification for appointment %s after %d attempts",
                    intent.type.value, appointment.id, log.retry_count,
                )
                report.dropped += 1
                resolved.append(intent.id)
            await self._store.commit(notification_logs=[log], resolved_intents=resolved)
            return

        report.sent += 1
        await self._store.commit(notification_logs=[log.mark_sent(now)], resolved_intents=[intent.id])
        logger.info("Sent %s notification for appointment %s", intent.type.value, appointment.id)


class ReminderSweep:
    """Queues reminders for tomorrow's scheduled appointments."""

    def __init__(self, store: SchedulingStore) -> None:
        self._store = store

    async def run_once(self, now: datetime) -> int:
        """
        Queue a reminder intent for every eligible appointment.

        Eligible appointments are scheduled for tomorrow and have neither a
        delivered reminder nor a reminder already waiting in the outbox.

        Returns:
            Number of reminder intents queued
        """
        tomorrow = now.date() + timedelta(days=1)
        logger.info("Checking for reminders to send for date: %s", tomorrow)

        appointments = await self._store.query_appointments(
            AppointmentQuery(from_date=tomorrow, to_date=tomorrow, status=AppointmentStatus.SCHEDULED)
        )
        queued_for = {
            intent.appointment_id
            for intent in await self._store.pending_intents()
            if intent.type is NotificationType.REMINDER
        }

        intents = []
        for appointment in appointments:
            if appointment.id in queued_for:
                continue
            log = await self._store.get_notification_log(appointment.id, NotificationType.REMINDER)
            if log is not None and log.sent_at is not None:
                continue
            intents.append(NotificationIntent.create(appointment.id, NotificationType.REMINDER, now))

        if intents:
            await self._store.commit(intents=intents)
        logger.info("Queued %d reminder(s)", len(intents))
        return len(intents)


class ReminderWorker:
    """
    Periodically runs the reminder sweep and drains the outbox.

    The worker owns the only clock read in the system; everything it calls
    receives the time explicitly.
    """

    def __init__(
        self,
        sweep: ReminderSweep,
        dispatcher: NotificationDispatcher,
        timezone: str = "UTC",
        interval: timedelta = timedelta(hours=1),
        failure_backoff: timedelta = timedelta(minutes=5),
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._sweep = sweep
        self._dispatcher = dispatcher
        self._interval = interval
        self._failure_backoff = failure_backoff
        self._clock = clock or (lambda: pendulum.now(timezone))

    async def run_cycle(self) -> DispatchReport:
        now = self._clock()
        await self._sweep.run_once(now)
        return await self._dispatcher.dispatch_pending(now)

    async def run(self, stop_event: asyncio.Event) -> None:
        logger.info("Reminder worker starting")

        while not stop_event.is_set():
            try:
                await self.run_cycle()
                delay = self._interval
            except Exception:
                logger.exception("Error occurred while sending reminders")
                delay = self._failure_backoff

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay.total_seconds())
            except asyncio.TimeoutError:
                continue

        logger.info("Reminder worker stopped")
