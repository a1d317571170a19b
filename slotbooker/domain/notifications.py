"""
Outbox rows and delivery bookkeeping for appointment notifications.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from .models import NotificationStatus, NotificationType


@dataclass(frozen=True)
class NotificationIntent:
    """A request to notify the customer of an appointment, queued in the outbox."""
    id: UUID
    appointment_id: UUID
    type: NotificationType
    created_at: datetime
    reason: Optional[str] = None

    @classmethod
    def create(
        cls,
        appointment_id: UUID,
        notification_type: NotificationType,
        now: datetime,
        reason: Optional[str] = None,
    ) -> "NotificationIntent":
        return cls(
            id=uuid4(),
            appointment_id=appointment_id,
            type=NotificationType(notification_type),
            created_at=now,
            reason=reason,
        )


@dataclass(frozen=True)
class NotificationLog:
    """
    Delivery state for one (appointment, notification type) pair.

    ``retry_count`` counts failed attempts since the last successful send.
    """
    id: UUID
    appointment_id: UUID
    type: NotificationType
    created_at: datetime
    updated_at: datetime
    status: NotificationStatus = NotificationStatus.PENDING
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    retry_count: int = 0

    @classmethod
    def create(cls, appointment_id: UUID, notification_type: NotificationType, now: datetime) -> "NotificationLog":
        return cls(
            id=uuid4(),
            appointment_id=appointment_id,
            type=NotificationType(notification_type),
            created_at=now,
            updated_at=now,
        )

    def mark_sent(self, now: datetime) -> "NotificationLog":
        return replace(
            self,
            status=NotificationStatus.SENT,
            sent_at=now,
            error_message=None,
            retry_count=0,
            updated_at=now,
        )

    def mark_failed(self, error_message: str, now: datetime) -> "NotificationLog":
        return replace(
            self,
            status=NotificationStatus.FAILED,
            error_message=error_message,
            retry_count=self.retry_count + 1,
            updated_at=now,
        )

    def delivered_since(self, moment: datetime) -> bool:
        """True if a successful send happened at or after ``moment``."""
        return self.sent_at is not None and self.sent_at >= moment
