"""
Tests for providers, working hours and blocked times.
"""

from datetime import date, datetime, time

import pendulum
import pytest

from slotbooker.domain.exceptions import (
    InvalidProviderInfo,
    InvalidRange,
    InvalidTransition,
    MissingReason,
)
from slotbooker.domain.models import TimeSlot
from slotbooker.domain.provider import ServiceProvider, WorkingHours


BERLIN = "Europe/Berlin"
NOW = pendulum.datetime(2025, 3, 3, 8, 0, tz=BERLIN)
BERLIN_TZ = pendulum.timezone(BERLIN)


def _provider() -> ServiceProvider:
    return ServiceProvider.create("Dr. Ada Lovelace", " Ada@Example.com ", "Dentistry", NOW)


class TestServiceProvider:
    """Tests for ServiceProvider."""

    def test_create_normalizes_email(self):
        provider = _provider()
        assert provider.email == "ada@example.com"
        assert provider.is_active
        assert provider.working_hours == ()

    @pytest.mark.parametrize(
        "name,email,specialty",
        [
            ("", "ada@example.com", "Dentistry"),
            ("Ada", "  ", "Dentistry"),
            ("Ada", "ada@example.com", ""),
            ("Ada", "ada.example.com", "Dentistry"),
        ],
    )
    def test_create_requires_details(self, name, email, specialty):
        with pytest.raises(InvalidProviderInfo):
            ServiceProvider.create(name, email, specialty, NOW)

    def test_update_details(self):
        later = NOW.add(days=1)
        updated = _provider().update_details("Ada King", "ADA.KING@example.com", "Orthodontics", later)

        assert updated.name == "Ada King"
        assert updated.email == "ada.king@example.com"
        assert updated.specialty == "Orthodontics"
        assert updated.updated_at == later

    def test_deactivate_and_activate(self):
        provider = _provider().deactivate(NOW)
        assert not provider.is_active

        with pytest.raises(InvalidTransition):
            provider.deactivate(NOW)

        provider = provider.activate(NOW)
        assert provider.is_active

        with pytest.raises(InvalidTransition):
            provider.activate(NOW)

    def test_add_working_hours_replaces_previous(self):
        """Setting hours twice keeps the old row as inactive history."""
        provider = _provider()
        provider = provider.add_working_hours(0, time(9, 0), time(17, 0), NOW)
        provider = provider.add_working_hours(0, time(10, 0), time(14, 0), NOW)

        monday = [wh for wh in provider.working_hours if wh.weekday == 0]
        assert len(monday) == 2
        assert [wh.is_active for wh in monday] == [False, True]

        active = provider.working_hours_for(0)
        assert active.start_time == time(10, 0)
        assert active.end_time == time(14, 0)

    def test_works(self):
        provider = _provider().add_working_hours(0, time(9, 0), time(12, 0), NOW)
        monday = date(2025, 3, 10)

        assert provider.works(monday, TimeSlot.from_start(time(9, 0), 60))
        assert provider.works(monday, TimeSlot.from_start(time(11, 30), 30))
        assert not provider.works(monday, TimeSlot.from_start(time(11, 45), 30))
        assert not provider.works(monday, TimeSlot.from_start(time(8, 45), 30))
        assert not provider.works(date(2025, 3, 11), TimeSlot.from_start(time(9, 0), 30))

    def test_block_time(self):
        start = pendulum.datetime(2025, 3, 10, 12, 0, tz=BERLIN)
        end = pendulum.datetime(2025, 3, 12, 9, 0, tz=BERLIN)
        provider = _provider().block_time(start, end, " Conference ", NOW)

        assert len(provider.blocked_times) == 1
        assert provider.blocked_times[0].reason == "Conference"
        assert provider.blocked_times_on(date(2025, 3, 11), BERLIN_TZ) == list(provider.blocked_times)
        assert provider.blocked_times_on(date(2025, 3, 13), BERLIN_TZ) == []

    def test_block_time_validation(self):
        start = pendulum.datetime(2025, 3, 10, 12, 0, tz=BERLIN)

        with pytest.raises(InvalidRange):
            _provider().block_time(start, start.subtract(hours=1), "Conference", NOW)

        with pytest.raises(MissingReason):
            _provider().block_time(start, start.add(hours=1), "  ", NOW)

    def test_block_time_requires_timezone(self):
        with pytest.raises(InvalidRange):
            _provider().block_time(datetime(2025, 3, 10, 12, 0), datetime(2025, 3, 10, 13, 0), "Lunch", NOW)

    def test_blocked_times_on_uses_scheduling_timezone(self):
        """20:00-23:00 UTC on Nov 10 is the morning of Nov 11 in Auckland."""
        auckland = pendulum.timezone("Pacific/Auckland")
        provider = _provider().block_time(
            pendulum.datetime(2026, 11, 10, 20, 0, tz="UTC"),
            pendulum.datetime(2026, 11, 10, 23, 0, tz="UTC"),
            "Clinic closed",
            NOW,
        )

        assert provider.blocked_times_on(date(2026, 11, 11), auckland) == list(provider.blocked_times)
        assert provider.blocked_times_on(date(2026, 11, 10), auckland) == []


class TestWorkingHours:
    """Tests for WorkingHours."""

    def test_end_before_start(self):
        with pytest.raises(InvalidRange):
            WorkingHours.create(0, time(17, 0), time(9, 0), NOW)

    def test_weekday_range(self):
        with pytest.raises(ValueError):
            WorkingHours.create(7, time(9, 0), time(17, 0), NOW)

    def test_inactive_hours_cover_nothing(self):
        hours = WorkingHours.create(0, time(9, 0), time(17, 0), NOW).deactivate(NOW)
        assert not hours.covers(TimeSlot.from_start(time(10, 0), 30))

    def test_string_representation(self):
        hours = WorkingHours.create(2, time(9, 0), time(17, 30), NOW)
        assert str(hours) == "Wednesday 09:00 - 17:30"
