"""
JSON-file backed store used by the command line interface.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

import pendulum

from ..domain.appointment import Appointment
from ..domain.exceptions import SchedulingError, StorageError
from ..domain.models import (
    AppointmentStatus,
    Customer,
    NotificationStatus,
    NotificationType,
    RecurrenceRule,
    TimeSlot,
)
from ..domain.notifications import NotificationIntent, NotificationLog
from ..domain.provider import BlockedTime, ServiceProvider, WorkingHours
from .memory_store import InMemoryStore


logger = logging.getLogger(__name__)


class JsonFileStore(InMemoryStore):
    """
    In-memory store that loads its state from a JSON file and writes the
    whole snapshot back after every commit.

    The file is replaced atomically; if writing fails the commit is rolled
    back in memory and a StorageError is raised.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._load()

    async def commit(
        self,
        *,
        providers: Iterable[ServiceProvider] = (),
        appointments: Iterable[Appointment] = (),
        intents: Iterable[NotificationIntent] = (),
        notification_logs: Iterable[NotificationLog] = (),
        resolved_intents: Iterable[UUID] = (),
    ) -> None:
        snapshot = (
            dict(self.providers),
            dict(self.appointments),
            dict(self.intents),
            dict(self.notification_logs),
        )
        await super().commit(
            providers=providers,
            appointments=appointments,
            intents=intents,
            notification_logs=notification_logs,
            resolved_intents=resolved_intents,
        )

        try:
            self._save()
        except (OSError, TypeError, ValueError) as exc:
            self.providers, self.appointments, self.intents, self.notification_logs = snapshot
            raise StorageError(f"Could not write {self.path}: {exc}") from exc

    def _load(self) -> None:
        if not self.path.exists():
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f) or {}
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Could not read {self.path}: {exc}") from exc

        # Rows are built with the domain constructors, which reject malformed values.
        try:
            for raw in data.get("providers", []):
                provider = _load_provider(raw)
                self.providers[provider.id] = provider
            for raw in data.get("appointments", []):
                appointment = _load_appointment(raw)
                self.appointments[appointment.id] = appointment
            for raw in data.get("intents", []):
                intent = _load_intent(raw)
                self.intents[intent.id] = intent
            for raw in data.get("notification_logs", []):
                log = _load_log(raw)
                self.notification_logs[(log.appointment_id, log.type)] = log
        except (KeyError, TypeError, ValueError, AttributeError, SchedulingError) as exc:
            raise StorageError(f"Could not read {self.path}: malformed record ({exc!r})") from exc

        logger.debug(
            "Loaded %d provider(s) and %d appointment(s) from %s",
            len(self.providers), len(self.appointments), self.path,
        )

    def _save(self) -> None:
        data = {
            "providers": [_dump_provider(p) for p in self.providers.values()],
            "appointments": [_dump_appointment(a) for a in self.appointments.values()],
            "intents": [_dump_intent(i) for i in self.intents.values()],
            "notification_logs": [_dump_log(log) for log in self.notification_logs.values()],
        }

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return pendulum.parse(value) if value else None


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _dump_provider(provider: ServiceProvider) -> Dict[str, Any]:
    return {
        "id": str(provider.id),
        "name": provider.name,
        "email": provider.email,
        "specialty": provider.specialty,
        "is_active": provider.is_active,
        "created_at": _dt(provider.created_at),
        "updated_at": _dt(provider.updated_at),
        "working_hours": [
            {
                "id": str(wh.id),
                "weekday": wh.weekday,
                "start_time": wh.start_time.isoformat(),
                "end_time": wh.end_time.isoformat(),
                "is_active": wh.is_active,
                "created_at": _dt(wh.created_at),
                "updated_at": _dt(wh.updated_at),
            }
            for wh in provider.working_hours
        ],
        "blocked_times": [
            {
                "id": str(bt.id),
                "start": _dt(bt.start),
                "end": _dt(bt.end),
                "reason": bt.reason,
                "created_at": _dt(bt.created_at),
            }
            for bt in provider.blocked_times
        ],
    }


def _load_provider(raw: Dict[str, Any]) -> ServiceProvider:
    return ServiceProvider(
        id=UUID(raw["id"]),
        name=raw["name"],
        email=raw["email"],
        specialty=raw["specialty"],
        is_active=raw.get("is_active", True),
        created_at=_parse_dt(raw["created_at"]),
        updated_at=_parse_dt(raw["updated_at"]),
        working_hours=tuple(
            WorkingHours(
                id=UUID(wh["id"]),
                weekday=wh["weekday"],
                start_time=time.fromisoformat(wh["start_time"]),
                end_time=time.fromisoformat(wh["end_time"]),
                is_active=wh.get("is_active", True),
                created_at=_parse_dt(wh["created_at"]),
                updated_at=_parse_dt(wh["updated_at"]),
            )
            for wh in raw.get("working_hours", [])
        ),
        blocked_times=tuple(
            BlockedTime(
                id=UUID(bt["id"]),
                start=_parse_dt(bt["start"]),
                end=_parse_dt(bt["end"]),
                reason=bt["reason"],
                created_at=_parse_dt(bt["created_at"]),
            )
            for bt in raw.get("blocked_times", [])
        ),
    )


def _dump_appointment(appointment: Appointment) -> Dict[str, Any]:
    rule = appointment.recurrence_rule
    return {
        "id": str(appointment.id),
        "provider_id": str(appointment.provider_id),
        "customer": {
            "name": appointment.customer.name,
            "email": appointment.customer.email,
            "phone": appointment.customer.phone,
        },
        "appointment_date": appointment.appointment_date.isoformat(),
        "start_time": appointment.slot.start.isoformat(),
        "end_time": appointment.slot.end.isoformat(),
        "status": appointment.status.value,
        "cancellation_reason": appointment.cancellation_reason,
        "recurrence_rule": None if rule is None else {
            "type": rule.type.value,
            "interval": rule.interval,
            "end_date": rule.end_date.isoformat() if rule.end_date else None,
        },
        "parent_appointment_id": str(appointment.parent_appointment_id) if appointment.parent_appointment_id else None,
        "created_at": _dt(appointment.created_at),
        "updated_at": _dt(appointment.updated_at),
    }


def _load_appointment(raw: Dict[str, Any]) -> Appointment:
    rule = raw.get("recurrence_rule")
    parent_id = raw.get("parent_appointment_id")
    return Appointment(
        id=UUID(raw["id"]),
        provider_id=UUID(raw["provider_id"]),
        customer=Customer(**raw["customer"]),
        appointment_date=date.fromisoformat(raw["appointment_date"]),
        slot=TimeSlot(
            start=time.fromisoformat(raw["start_time"]),
            end=time.fromisoformat(raw["end_time"]),
        ),
        status=AppointmentStatus(raw["status"]),
        cancellation_reason=raw.get("cancellation_reason"),
        recurrence_rule=None if rule is None else RecurrenceRule(
            type=rule["type"],
            interval=rule["interval"],
            end_date=_parse_date(rule.get("end_date")),
        ),
        parent_appointment_id=UUID(parent_id) if parent_id else None,
        created_at=_parse_dt(raw["created_at"]),
        updated_at=_parse_dt(raw["updated_at"]),
    )


def _dump_intent(intent: NotificationIntent) -> Dict[str, Any]:
    return {
        "id": str(intent.id),
        "appointment_id": str(intent.appointment_id),
        "type": intent.type.value,
        "created_at": _dt(intent.created_at),
        "reason": intent.reason,
    }


def _load_intent(raw: Dict[str, Any]) -> NotificationIntent:
    return NotificationIntent(
        id=UUID(raw["id"]),
        appointment_id=UUID(raw["appointment_id"]),
        type=NotificationType(raw["type"]),
        created_at=_parse_dt(raw["created_at"]),
        reason=raw.get("reason"),
    )


def _dump_log(log: NotificationLog) -> Dict[str, Any]:
    return {
        "id": str(log.id),
        "appointment_id": str(log.appointment_id),
        "type": log.type.value,
        "status": log.status.value,
        "created_at": _dt(log.created_at),
        "updated_at": _dt(log.updated_at),
        "sent_at": _dt(log.sent_at),
        "error_message": log.error_message,
        "retry_count": log.retry_count,
    }


def _load_log(raw: Dict[str, Any]) -> NotificationLog:
    return NotificationLog(
        id=UUID(raw["id"]),
        appointment_id=UUID(raw["appointment_id"]),
        type=NotificationType(raw["type"]),
        status=NotificationStatus(raw["status"]),
        created_at=_parse_dt(raw["created_at"]),
        updated_at=_parse_dt(raw["updated_at"]),
        sent_at=_parse_dt(raw.get("sent_at")),
        error_message=raw.get("error_message"),
        retry_count=raw.get("retry_count", 0),
    )
