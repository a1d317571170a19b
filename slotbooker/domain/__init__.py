"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .appointment import Appointment
from .conflict_checker import ConflictChecker
from .models import (
    AppointmentStatus,
    Customer,
    NotificationStatus,
    NotificationType,
    RecurrenceRule,
    RecurrenceType,
    TimeSlot,
)
from .notifications import NotificationIntent, NotificationLog
from .provider import BlockedTime, ServiceProvider, WorkingHours
from .slot_calculator import SlotCalculator

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "BlockedTime",
    "ConflictChecker",
    "Customer",
    "NotificationIntent",
    "NotificationLog",
    "NotificationStatus",
    "NotificationType",
    "RecurrenceRule",
    "RecurrenceType",
    "ServiceProvider",
    "SlotCalculator",
    "TimeSlot",
    "WorkingHours",
]
