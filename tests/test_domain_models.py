"""
Tests for domain value objects.
"""

from datetime import date, time

import pytest

from slotbooker.domain.exceptions import InvalidDuration, InvalidRange, InvalidRecurrence
from slotbooker.domain.models import (
    AppointmentStatus,
    Customer,
    RecurrenceRule,
    RecurrenceType,
    TimeSlot,
    add_months,
    horizon_for,
)


class TestTimeSlot:
    """Tests for TimeSlot."""

    def test_duration(self):
        """Test duration calculation."""
        slot = TimeSlot(start=time(9, 0), end=time(9, 45))
        assert slot.duration_minutes == 45

    def test_end_before_start_rejected(self):
        """End must come after start."""
        with pytest.raises(InvalidRange):
            TimeSlot(start=time(10, 0), end=time(9, 30))

        with pytest.raises(InvalidRange):
            TimeSlot(start=time(10, 0), end=time(10, 0))

    def test_unsupported_duration_rejected(self):
        """Only 15, 30, 45 and 60 minute slots exist."""
        with pytest.raises(InvalidDuration):
            TimeSlot(start=time(9, 0), end=time(9, 20))

        with pytest.raises(InvalidDuration):
            TimeSlot(start=time(9, 0), end=time(10, 30))

    def test_from_start(self):
        """Test building a slot from start and duration."""
        slot = TimeSlot.from_start(time(16, 45), 15)
        assert slot == TimeSlot(start=time(16, 45), end=time(17, 0))

    def test_from_start_checks_duration_first(self):
        with pytest.raises(InvalidDuration):
            TimeSlot.from_start(time(23, 50), 20)

    def test_from_start_crossing_midnight(self):
        """A slot may not spill into the next day."""
        with pytest.raises(InvalidRange):
            TimeSlot.from_start(time(23, 30), 60)

    def test_overlaps(self):
        """Test overlap detection."""
        slot1 = TimeSlot(start=time(10, 0), end=time(11, 0))
        slot2 = TimeSlot(start=time(10, 30), end=time(11, 0))
        slot3 = TimeSlot(start=time(11, 0), end=time(11, 30))

        assert slot1.overlaps(slot2)
        assert slot2.overlaps(slot1)
        assert not slot1.overlaps(slot3)  # Touching, not overlapping
        assert not slot3.overlaps(slot1)

    def test_string_representation(self):
        assert str(TimeSlot(start=time(9, 0), end=time(9, 30))) == "09:00 - 09:30"


class TestRecurrenceRule:
    """Tests for RecurrenceRule."""

    def test_interval_must_be_positive(self):
        with pytest.raises(InvalidRecurrence):
            RecurrenceRule.weekly(interval=0)

    def test_type_is_coerced(self):
        rule = RecurrenceRule("monthly")
        assert rule.type is RecurrenceType.MONTHLY

    def test_weekly_next_occurrence(self):
        rule = RecurrenceRule.weekly(interval=2)
        assert rule.next_occurrence(date(2025, 3, 10)) == date(2025, 3, 24)

    def test_monthly_clamps_to_month_end(self):
        """Jan 31 plus one month lands on the last day of February."""
        rule = RecurrenceRule.monthly()
        assert rule.next_occurrence(date(2025, 1, 31)) == date(2025, 2, 28)

    def test_occurrences_stop_at_until(self):
        rule = RecurrenceRule.weekly()
        dates = list(rule.occurrences_after(date(2025, 3, 10), until=date(2025, 6, 3)))

        assert len(dates) == 12
        assert dates[0] == date(2025, 3, 17)
        assert dates[-1] == date(2025, 6, 2)

    def test_occurrences_stop_at_end_date(self):
        rule = RecurrenceRule.weekly(end_date=date(2025, 3, 31))
        dates = list(rule.occurrences_after(date(2025, 3, 10), until=date(2025, 6, 3)))

        assert dates == [date(2025, 3, 17), date(2025, 3, 24), date(2025, 3, 31)]

    def test_occurrences_capped_by_limit(self):
        """The starting occurrence counts towards the limit."""
        rule = RecurrenceRule.weekly()
        dates = list(rule.occurrences_after(date(2025, 1, 6), until=date(2030, 1, 1), limit=52))

        assert len(dates) == 51


class TestCustomer:
    """Tests for Customer."""

    def test_normalized(self):
        customer = Customer(name="  Jane Doe ", email=" Jane@Example.COM ", phone=" 123 ")
        assert customer.normalized() == Customer(name="Jane Doe", email="jane@example.com", phone="123")


class TestHelpers:
    """Tests for calendar helpers."""

    def test_add_months(self):
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)

    def test_horizon(self):
        assert horizon_for(date(2025, 3, 3)) == date(2025, 6, 3)

    def test_terminal_statuses(self):
        assert not AppointmentStatus.SCHEDULED.is_terminal
        assert AppointmentStatus.CANCELLED.is_terminal
        assert AppointmentStatus.COMPLETED.is_terminal
        assert AppointmentStatus.NO_SHOW.is_terminal
