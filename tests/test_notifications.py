"""
Tests for the notification outbox, reminder sweep and worker.
"""

import asyncio
import io
from datetime import date, time, timedelta
from uuid import uuid4

import pendulum
from rich.console import Console

from slotbooker.adapters.console_notifier import ConsoleNotifier
from slotbooker.adapters.memory_store import InMemoryStore
from slotbooker.domain.models import NotificationStatus, NotificationType
from slotbooker.domain.notifications import NotificationIntent
from slotbooker.services.booking import BookingService
from slotbooker.services.notifications import NotificationDispatcher, ReminderSweep, ReminderWorker
from slotbooker.services.providers import ProviderService
from slotbooker.services.requests import (
    BookingRequest,
    CancelRequest,
    CustomerInfo,
    RescheduleRequest,
)


BERLIN = "Europe/Berlin"
NOW = pendulum.datetime(2025, 3, 3, 8, 0, tz=BERLIN)
MONDAY = date(2025, 3, 10)


class RecordingNotifier:
    """Notifier stub that remembers what it was asked to send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, notification_type, appointment, reason=None):
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append((notification_type, appointment.id, reason))


async def _book(store, start=time(10, 0), email="jane@example.com"):
    providers = ProviderService(store)
    existing = await providers.list_providers()
    if existing:
        provider = existing[0]
    else:
        provider = await providers.create_provider("Dr. Ada Lovelace", "ada@example.com", "Dentistry", NOW)
        provider = await providers.add_working_hours(provider.id, 0, time(9, 0), time(17, 0), NOW)

    result = await BookingService(store, timezone=BERLIN).book(
        BookingRequest(
            provider_id=provider.id,
            customer=CustomerInfo(name="Jane Doe", email=email, phone="+49 30 1234567"),
            appointment_date=MONDAY,
            start_time=start,
            duration_minutes=30,
        ),
        NOW,
    )
    return result.appointment_id


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    def test_sends_and_resolves_intent(self):
        async def scenario():
            store = InMemoryStore()
            appointment_id = await _book(store)
            notifier = RecordingNotifier()

            report = await NotificationDispatcher(store, notifier).dispatch_pending(NOW.add(minutes=1))

            assert report.sent == 1
            assert notifier.sent == [(NotificationType.CONFIRMATION, appointment_id, None)]
            assert store.intents == {}

            log = store.notification_logs[(appointment_id, NotificationType.CONFIRMATION)]
            assert log.status is NotificationStatus.SENT
            assert log.sent_at == NOW.add(minutes=1)

        asyncio.run(scenario())

    def test_cancellation_carries_reason(self):
        async def scenario():
            store = InMemoryStore()
            appointment_id = await _book(store)
            await BookingService(store, timezone=BERLIN).cancel(
                CancelRequest(appointment_id=appointment_id, reason="Feeling sick"), NOW
            )
            notifier = RecordingNotifier()

            await NotificationDispatcher(store, notifier).dispatch_pending(NOW.add(minutes=1))

            assert (NotificationType.CANCELLATION, appointment_id, "Feeling sick") in notifier.sent

        asyncio.run(scenario())

    def test_reschedule_sends_new_confirmation(self):
        async def scenario():
            store = InMemoryStore()
            appointment_id = await _book(store)
            notifier = RecordingNotifier()
            dispatcher = NotificationDispatcher(store, notifier)
            await dispatcher.dispatch_pending(NOW.add(minutes=1))

            await BookingService(store, timezone=BERLIN).reschedule(
                RescheduleRequest(
                    appointment_id=appointment_id,
                    new_date=MONDAY,
                    new_start_time=time(11, 0),
                    duration_minutes=30,
                ),
                NOW.add(minutes=5),
            )
            await dispatcher.dispatch_pending(NOW.add(minutes=6))

            assert [t for t, _, _ in notifier.sent] == [NotificationType.CONFIRMATION] * 2

        asyncio.run(scenario())

    def test_already_delivered_intent_is_skipped(self):
        async def scenario():
            store = InMemoryStore()
            appointment_id = await _book(store)
            notifier = RecordingNotifier()
            dispatcher = NotificationDispatcher(store, notifier)
            await dispatcher.dispatch_pending(NOW.add(minutes=1))

            stale = NotificationIntent.create(appointment_id, NotificationType.CONFIRMATION, NOW)
            await store.commit(intents=[stale])
            report = await dispatcher.dispatch_pending(NOW.add(minutes=2))

            assert report.skipped == 1
            assert len(notifier.sent) == 1
            assert store.intents == {}

        asyncio.run(scenario())

    def test_failures_retry_then_drop(self):
        async def scenario():
            store = InMemoryStore()
            appointment_id = await _book(store)
            dispatcher = NotificationDispatcher(store, RecordingNotifier(fail=True), max_attempts=3)

            first = await dispatcher.dispatch_pending(NOW.add(minutes=1))
            assert first.failed == 1
            assert len(store.intents) == 1

            await dispatcher.dispatch_pending(NOW.add(minutes=2))
            last = await dispatcher.dispatch_pending(NOW.add(minutes=3))

            assert last.dropped == 1
            assert store.intents == {}
            log = store.notification_logs[(appointment_id, NotificationType.CONFIRMATION)]
            assert log.status is NotificationStatus.FAILED
            assert log.retry_count == 3
            assert log.error_message == "SMTP server unavailable"

        asyncio.run(scenario())

    def test_failed_send_does_not_affect_booking(self):
        async def scenario():
            store = InMemoryStore()
            appointment_id = await _book(store)

            await NotificationDispatcher(store, RecordingNotifier(fail=True)).dispatch_pending(NOW)

            assert appointment_id in store.appointments

        asyncio.run(scenario())

    def test_missing_appointment_is_dropped(self):
        async def scenario():
            store = InMemoryStore()
            await store.commit(intents=[NotificationIntent.create(uuid4(), NotificationType.REMINDER, NOW)])
            notifier = RecordingNotifier()

            report = await NotificationDispatcher(store, notifier).dispatch_pending(NOW)

            assert report.dropped == 1
            assert notifier.sent == []
            assert store.intents == {}

        asyncio.run(scenario())


class TestReminderSweep:
    """Tests for ReminderSweep."""

    def test_queues_reminders_for_tomorrow_once(self):
        async def scenario():
            store = InMemoryStore()
            appointment_id = await _book(store)
            other_id = await _book(store, start=time(11, 0), email="max@example.com")
            await BookingService(store, timezone=BERLIN).cancel(
                CancelRequest(appointment_id=other_id, reason="Moved away"), NOW
            )
            sweep = ReminderSweep(store)
            evening_before = pendulum.datetime(2025, 3, 9, 18, 0, tz=BERLIN)

            assert await sweep.run_once(pendulum.datetime(2025, 3, 8, 18, 0, tz=BERLIN)) == 0
            assert await sweep.run_once(evening_before) == 1
            # Already waiting in the outbox
            assert await sweep.run_once(evening_before) == 0

            notifier = RecordingNotifier()
            await NotificationDispatcher(store, notifier).dispatch_pending(evening_before)
            assert (NotificationType.REMINDER, appointment_id, None) in notifier.sent

            # Already delivered
            assert await sweep.run_once(evening_before.add(hours=1)) == 0

        asyncio.run(scenario())


class TestReminderWorker:
    """Tests for ReminderWorker."""

    def test_run_cycle_uses_clock(self):
        async def scenario():
            store = InMemoryStore()
            await _book(store)
            notifier = RecordingNotifier()
            worker = ReminderWorker(
                ReminderSweep(store),
                NotificationDispatcher(store, notifier),
                clock=lambda: pendulum.datetime(2025, 3, 9, 18, 0, tz=BERLIN),
            )

            report = await worker.run_cycle()

            assert report.sent == 2  # confirmation and reminder
            assert {t for t, _, _ in notifier.sent} == {NotificationType.CONFIRMATION, NotificationType.REMINDER}

        asyncio.run(scenario())

    def test_run_survives_failed_cycle(self):
        class FailingOnceSweep:
            def __init__(self, stop_event):
                self.calls = 0
                self.stop_event = stop_event

            async def run_once(self, now):
                self.calls += 1
                if self.calls == 1:
                    raise RuntimeError("store offline")
                self.stop_event.set()
                return 0

        async def scenario():
            stop_event = asyncio.Event()
            sweep = FailingOnceSweep(stop_event)
            worker = ReminderWorker(
                sweep,
                NotificationDispatcher(InMemoryStore(), RecordingNotifier()),
                interval=timedelta(seconds=30),
                failure_backoff=timedelta(milliseconds=1),
                clock=lambda: NOW,
            )

            await asyncio.wait_for(worker.run(stop_event), timeout=5)
            assert sweep.calls == 2

        asyncio.run(scenario())


class TestConsoleNotifier:
    """Tests for ConsoleNotifier."""

    def test_prints_notification(self):
        async def scenario():
            store = InMemoryStore()
            appointment_id = await _book(store)
            output = io.StringIO()
            notifier = ConsoleNotifier(Console(file=output, width=200))

            await notifier.send(NotificationType.CANCELLATION, store.appointments[appointment_id], reason="Sick")

            text = output.getvalue()
            assert "Appointment cancelled" in text
            assert "jane@example.com" in text
            assert "2025-03-10 10:00 - 10:30" in text
            assert "Sick" in text

        asyncio.run(scenario())
