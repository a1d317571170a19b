"""
Request and response shapes for the booking intake operations.

These models only check input shape; scheduling rules live in the domain.
"""

from datetime import date, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from ..domain.models import AppointmentStatus, Customer, RecurrenceRule, RecurrenceType


class CustomerInfo(BaseModel):
    name: str
    email: str
    phone: str

    def to_customer(self) -> Customer:
        return Customer(name=self.name, email=self.email, phone=self.phone)


class RecurrenceSpec(BaseModel):
    type: RecurrenceType
    interval: int = Field(default=1, ge=1)
    end_date: Optional[date] = None

    def to_rule(self) -> RecurrenceRule:
        return RecurrenceRule(type=self.type, interval=self.interval, end_date=self.end_date)


class BookingRequest(BaseModel):
    provider_id: UUID
    customer: CustomerInfo
    appointment_date: date
    start_time: time
    duration_minutes: int
    recurrence: Optional[RecurrenceSpec] = None


class CancelRequest(BaseModel):
    appointment_id: UUID
    reason: str = Field(default="", max_length=500)


class RescheduleRequest(BaseModel):
    appointment_id: UUID
    new_date: date
    new_start_time: time
    duration_minutes: int


class AppointmentRef(BaseModel):
    appointment_id: UUID


class AvailabilityQuery(BaseModel):
    provider_id: UUID
    on_date: date
    duration_minutes: int


class AppointmentQuery(BaseModel):
    """Filters for listing appointments; unset fields match everything."""
    provider_id: Optional[UUID] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    customer_email: Optional[str] = None
    status: Optional[AppointmentStatus] = None

    @field_validator("customer_email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().lower() if value else value

    @model_validator(mode="after")
    def validate_range(self) -> "AppointmentQuery":
        if self.from_date and self.to_date and self.to_date < self.from_date:
            raise ValueError("to_date must not be before from_date")
        return self


class BookingResult(BaseModel):
    appointment_id: UUID
    recurring_appointment_ids: List[UUID] = Field(default_factory=list)
    total_created: int = 1
    expansion_complete: bool = True

