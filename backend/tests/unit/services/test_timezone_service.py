"""
Tests for TimezoneService: alias resolution, local <-> UTC conversion and
the DST rejection rule.
"""

from datetime import date, datetime, time, timezone

import pytest

from trialdesk.core.exceptions import (
    AmbiguousLocalTimeException,
    InvalidTimezoneException,
    ValidationException,
)
from trialdesk.services.timezone_service import TimezoneService


@pytest.mark.unit
class TestResolveZone:
    def test_alias_maps_to_iana(self):
        assert TimezoneService.resolve_zone("uae") == "Asia/Dubai"
        assert TimezoneService.resolve_zone("Saudi") == "Asia/Riyadh"

    def test_iana_name_passes_through(self):
        assert TimezoneService.resolve_zone("Europe/London") == "Europe/London"

    @pytest.mark.parametrize("zone", ["", "   ", None, "Mars/Olympus"])
    def test_unknown_zone_rejected(self, zone):
        with pytest.raises(InvalidTimezoneException):
            TimezoneService.resolve_zone(zone)

    def test_zone_label(self):
        assert TimezoneService.zone_label("uae") == "UAE"
        assert TimezoneService.zone_label("Asia/Dubai") == "UAE"
        assert TimezoneService.zone_label("Europe/London") == "Europe/London"


@pytest.mark.unit
class TestConversion:
    def test_uae_evening_to_utc(self):
        start = TimezoneService.to_utc(date(2025, 6, 21), 18.5, "uae")
        assert start == datetime(2025, 6, 21, 14, 30, tzinfo=timezone.utc)

    def test_round_trip(self):
        for hour in (0, 6.5, 12, 18.5, 23.5):
            instant = TimezoneService.to_utc(date(2025, 1, 15), hour, "America/New_York")
            assert TimezoneService.from_utc(instant, "America/New_York") == (date(2025, 1, 15), hour)

    def test_uses_rules_of_the_requested_date(self):
        winter = TimezoneService.to_utc(date(2025, 1, 15), 9, "America/New_York")
        summer = TimezoneService.to_utc(date(2025, 7, 15), 9, "America/New_York")
        assert winter.hour == 14
        assert summer.hour == 13

    def test_spring_forward_gap_rejected(self):
        with pytest.raises(AmbiguousLocalTimeException) as exc_info:
            TimezoneService.local_to_utc(date(2025, 3, 9), time(2, 30), "America/New_York")
        assert exc_info.value.details["reason"] == "skipped"

    def test_fall_back_overlap_rejected(self):
        with pytest.raises(AmbiguousLocalTimeException) as exc_info:
            TimezoneService.local_to_utc(date(2025, 11, 2), time(1, 30), "America/New_York")
        assert exc_info.value.details["reason"] == "repeated"

    @pytest.mark.parametrize("hour", [-1, 24, 25.5, 10.123])
    def test_invalid_hour(self, hour):
        with pytest.raises(ValidationException):
            TimezoneService.hour_fraction_to_time(hour)

    def test_today_in_follows_the_zone(self):
        # 23:30 UTC is already the next day in Cairo
        now = datetime(2025, 6, 20, 23, 30, tzinfo=timezone.utc)
        assert TimezoneService.today_in("Africa/Cairo", now) == date(2025, 6, 21)
        assert TimezoneService.today_in("UTC", now) == date(2025, 6, 20)


@pytest.mark.unit
def test_format_range_has_no_leading_zero():
    start = datetime(2025, 6, 21, 14, 30, tzinfo=timezone.utc)
    end = datetime(2025, 6, 21, 15, 0, tzinfo=timezone.utc)
    assert TimezoneService.format_range(start, end, "Asia/Dubai") == "6:30 PM-7:00 PM"
