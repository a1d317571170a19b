"""
Domain-specific exception hierarchy for the scheduling core.

Business-rule violations are expected, user-facing failures. Each carries a
stable ``code`` that callers can match on without parsing the message.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class BusinessRuleViolation(SchedulingError):
    """Raised when an operation breaks a scheduling rule."""

    code = "business_rule_violation"
    default_message = "Business rule violation"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidDuration(BusinessRuleViolation):
    code = "invalid_duration"
    default_message = "Duration must be 15, 30, 45, or 60 minutes"


class InvalidRange(BusinessRuleViolation):
    code = "invalid_range"
    default_message = "End time must be after start time"


class InvalidRecurrence(BusinessRuleViolation):
    code = "invalid_recurrence"
    default_message = "Recurrence interval must be at least 1"


class LeadTimeViolation(BusinessRuleViolation):
    code = "lead_time_violation"
    default_message = "Appointments must be booked at least 24 hours in advance"


class HorizonViolation(BusinessRuleViolation):
    code = "horizon_violation"
    default_message = "Cannot book more than 3 months in advance"


class PastDateViolation(BusinessRuleViolation):
    code = "past_date_violation"
    default_message = "Cannot book appointments in the past"


class InvalidCustomerInfo(BusinessRuleViolation):
    code = "invalid_customer_info"
    default_message = "Customer name, email and phone are required"


class InvalidProviderInfo(BusinessRuleViolation):
    code = "invalid_provider_info"
    default_message = "Provider name, email and specialty are required"


class InvalidTransition(BusinessRuleViolation):
    code = "invalid_transition"
    default_message = "Operation not allowed in the current state"


class MissingReason(BusinessRuleViolation):
    code = "missing_reason"
    default_message = "A reason is required"


class FutureCompletionViolation(BusinessRuleViolation):
    code = "future_completion_violation"
    default_message = "Cannot complete future appointments"


class TooEarlyViolation(BusinessRuleViolation):
    code = "too_early_violation"
    default_message = "Cannot mark as no-show until 15 minutes after appointment time"


class SlotConflict(BusinessRuleViolation):
    code = "slot_conflict"
    default_message = "This time slot conflicts with an existing appointment"


class OutsideWorkingHours(BusinessRuleViolation):
    code = "outside_working_hours"
    default_message = "Selected time is outside provider's working hours"


class ProviderUnavailable(BusinessRuleViolation):
    code = "provider_unavailable"
    default_message = "Provider is not accepting bookings"


class DuplicateProviderEmail(BusinessRuleViolation):
    code = "duplicate_provider_email"
    default_message = "A provider with this email already exists"


class NotFound(BusinessRuleViolation):
    code = "not_found"
    default_message = "Resource not found"


class AppointmentNotFound(NotFound):
    default_message = "Appointment not found"


class ProviderNotFound(NotFound):
    default_message = "Provider not found"


class StorageError(SchedulingError):
    """Raised when the storage collaborator cannot read or commit state."""
