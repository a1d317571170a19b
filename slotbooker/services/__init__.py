"""
Service layer helpers that orchestrate storage, notification and domain logic.
"""

from .booking import BookingService
from .errors import ErrorCategory, ErrorResponse, describe_error
from .notifications import DispatchReport, NotificationDispatcher, ReminderSweep, ReminderWorker
from .ports import Notifier, SchedulingStore
from .providers import ProviderService
from .recurrence import ExpansionResult, RecurrenceExpander

__all__ = [
    "BookingService",
    "DispatchReport",
    "ErrorCategory",
    "ErrorResponse",
    "ExpansionResult",
    "NotificationDispatcher",
    "Notifier",
    "ProviderService",
    "RecurrenceExpander",
    "ReminderSweep",
    "ReminderWorker",
    "SchedulingStore",
    "describe_error",
]
