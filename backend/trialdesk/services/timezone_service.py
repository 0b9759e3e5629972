"""
Centralized timezone handling for the trial booking engine.

Rules:
- Sales agents pick a client timezone (IANA name or a short alias like "uae")
- Teachers see times in the reference timezone (Africa/Cairo)
- All storage: UTC
- All comparisons: UTC
- A wall-clock time that falls in a DST gap or overlap is rejected, never guessed
"""

from datetime import date, datetime, time, timezone
from typing import Optional, Tuple

import pytz

from ..core.config import settings
from ..core.constants import CLIENT_TIMEZONE_LABELS
from ..core.exceptions import (
    AmbiguousLocalTimeException,
    InvalidTimezoneException,
    ValidationException,
)

CLOCK_FORMAT = "%I:%M %p"


class TimezoneService:
    """Handles all timezone conversions consistently."""

    @staticmethod
    def resolve_zone(zone_id: Optional[str]) -> str:
        """
        Normalize a client alias or IANA name to an IANA name.

        Raises:
            InvalidTimezoneException: If the zone is empty or unknown
        """
        if not zone_id or not zone_id.strip():
            raise InvalidTimezoneException(zone_id)
        resolved = settings.resolve_client_alias(zone_id)
        if resolved not in pytz.all_timezones_set:
            raise InvalidTimezoneException(zone_id)
        return resolved

    @staticmethod
    def get_timezone(zone_id: Optional[str]) -> pytz.BaseTzInfo:
        return pytz.timezone(TimezoneService.resolve_zone(zone_id))

    @staticmethod
    def zone_label(zone_id: str) -> str:
        """Display label for a client zone: 'UAE' for the uae alias, else the IANA name."""
        key = zone_id.strip().lower()
        if key in CLIENT_TIMEZONE_LABELS:
            return CLIENT_TIMEZONE_LABELS[key]
        for alias, iana in settings.client_timezone_aliases.items():
            if iana == zone_id and alias in CLIENT_TIMEZONE_LABELS:
                return CLIENT_TIMEZONE_LABELS[alias]
        return zone_id

    @staticmethod
    def hour_fraction_to_time(hour: float) -> time:
        """
        18.5 -> 18:30. The value must lie in [0, 24) and land on a whole minute.
        """
        if hour < 0 or hour >= 24:
            raise ValidationException(
                f"Hour must be within [0, 24), got {hour}",
                code="INVALID_HOUR",
                details={"hour": hour},
            )
        total_minutes = hour * 60
        whole = round(total_minutes)
        if abs(total_minutes - whole) > 1e-6:
            raise ValidationException(
                f"Hour {hour} does not resolve to a whole minute",
                code="INVALID_HOUR",
                details={"hour": hour},
            )
        return time(whole // 60, whole % 60)

    @staticmethod
    def local_to_utc(local_date: date, local_time: time, zone_id: str) -> datetime:
        """
        Convert local date/time to UTC.

        Uses the timezone rules valid on local_date (not today).

        Raises:
            AmbiguousLocalTimeException: If the time does not exist (spring-forward
                gap) or exists twice (fall-back overlap)
        """
        tz = TimezoneService.get_timezone(zone_id)
        naive_dt = datetime.combine(local_date, local_time)  # naive on purpose for localize()
        try:
            # is_dst=None raises for ambiguous/nonexistent times
            local_dt = tz.localize(naive_dt, is_dst=None)
        except pytz.exceptions.NonExistentTimeError:
            raise AmbiguousLocalTimeException(
                local_date, local_time.strftime(CLOCK_FORMAT), zone_id, "skipped"
            )
        except pytz.exceptions.AmbiguousTimeError:
            raise AmbiguousLocalTimeException(
                local_date, local_time.strftime(CLOCK_FORMAT), zone_id, "repeated"
            )
        return local_dt.astimezone(timezone.utc)

    @staticmethod
    def to_utc(local_date: date, local_hour_fraction: float, zone_id: str) -> datetime:
        """Convert a civil date plus fractional hour (18.5 = 6:30 PM) in zone_id to UTC."""
        local_time = TimezoneService.hour_fraction_to_time(local_hour_fraction)
        return TimezoneService.local_to_utc(local_date, local_time, zone_id)

    @staticmethod
    def utc_to_local(utc_dt: datetime, zone_id: str) -> datetime:
        """Convert UTC datetime to local timezone."""
        if utc_dt.tzinfo is None:
            utc_dt = utc_dt.replace(tzinfo=timezone.utc)
        return utc_dt.astimezone(TimezoneService.get_timezone(zone_id))

    @staticmethod
    def from_utc(instant: datetime, zone_id: str) -> Tuple[date, float]:
        """Inverse of to_utc: the civil date and fractional hour in zone_id."""
        local = TimezoneService.utc_to_local(instant, zone_id)
        return local.date(), local.hour + local.minute / 60

    @staticmethod
    def today_in(zone_id: str, now: Optional[datetime] = None) -> date:
        """Civil date in zone_id at the given instant (defaults to the current time)."""
        instant = now or datetime.now(timezone.utc)
        return TimezoneService.utc_to_local(instant, zone_id).date()

    @staticmethod
    def format(instant: datetime, zone_id: str, pattern: str) -> str:
        """strftime-format an instant in zone_id."""
        return TimezoneService.utc_to_local(instant, zone_id).strftime(pattern)

    @staticmethod
    def format_clock(instant: datetime, zone_id: str) -> str:
        """Returns e.g. "6:30 PM" (no leading zero)."""
        return TimezoneService.format(instant, zone_id, CLOCK_FORMAT).lstrip("0")

    @staticmethod
    def format_range(start: datetime, end: datetime, zone_id: str) -> str:
        """Returns e.g. "6:30 PM-7:00 PM"."""
        return f"{TimezoneService.format_clock(start, zone_id)}-{TimezoneService.format_clock(end, zone_id)}"
