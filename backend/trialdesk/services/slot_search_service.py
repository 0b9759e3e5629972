# backend/trialdesk/services/slot_search_service.py
"""
Slot Search Service.

Turns "a client in <zone> wants <type> at <local hour> on <date>" into the
list of teachers who could take that half hour, with every time rendered in
both the client's zone and the reference zone teachers work in.
"""

from datetime import date, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import AmbiguousLocalTimeException, ValidationException
from ..models.availability import TeacherAvailabilitySlot
from ..models.user import User
from ..schemas.availability import SlotCandidate, SlotGroup
from . import slot_grouper
from .availability_service import AvailabilityService
from .base import BaseService, Clock
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)


def make_candidate(
    slot: TeacherAvailabilitySlot, teacher: User, client_zone: str, reference_zone: str
) -> SlotCandidate:
    """SlotCandidate for one open slot, displayed in the client's and the teacher's zones."""
    return SlotCandidate(
        teacher_id=teacher.id,
        teacher_name=teacher.full_name,
        teacher_type=teacher.teacher_type,
        start_utc=slot.start_utc,
        end_utc=slot.end_utc,
        client_time_display=TimezoneService.format_range(
            slot.start_utc, slot.end_utc, TimezoneService.resolve_zone(client_zone)
        ),
        reference_time_display=TimezoneService.format_range(
            slot.start_utc, slot.end_utc, reference_zone
        ),
        client_zone_label=TimezoneService.zone_label(client_zone),
    )


class SlotSearchService(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        availability_service: Optional[AvailabilityService] = None,
    ):
        super().__init__(db, clock)
        self.availability = availability_service or AvailabilityService(db, clock)

    @BaseService.measure_operation("search")
    def search(
        self,
        requested_date: date,
        client_zone: str,
        teacher_type: str,
        preferred_local_hour: float,
    ) -> List[SlotCandidate]:
        """
        Teachers free for the half hour starting at preferred_local_hour in client_zone.

        An empty list is the normal "no slots" answer.

        Raises:
            InvalidTimezoneException: Unknown client zone
            AmbiguousLocalTimeException: The local time is skipped or repeated by DST
        """
        zone_id = TimezoneService.resolve_zone(client_zone)
        start_utc = TimezoneService.to_utc(requested_date, preferred_local_hour, zone_id)
        end_utc = start_utc + timedelta(minutes=settings.slot_minutes)

        candidates = [
            make_candidate(slot, teacher, client_zone, self.availability.reference_zone_for(teacher))
            for slot, teacher in self.availability.find_free_slots(start_utc, end_utc, teacher_type)
        ]

        self.logger.debug(
            "Slot search",
            extra={
                "requested_date": str(requested_date),
                "client_zone": zone_id,
                "teacher_type": teacher_type,
                "start_utc": start_utc.isoformat(),
                "candidates": len(candidates),
            },
        )
        return candidates

    @BaseService.measure_operation("search_range")
    def search_range(
        self,
        requested_date: date,
        client_zone: str,
        teacher_type: str,
        start_hour: float,
        end_hour: float,
    ) -> List[SlotCandidate]:
        """
        Sweep [start_hour, end_hour) in slot-length steps.

        Steps that fall in a DST gap or overlap are skipped; a range sweep
        reports what exists rather than failing on one bad half hour.
        """
        if end_hour <= start_hour:
            raise ValidationException(
                "end_hour must be after start_hour",
                code="INVALID_HOUR_RANGE",
                details={"start_hour": start_hour, "end_hour": end_hour},
            )
        step = settings.slot_minutes / 60
        results: List[SlotCandidate] = []
        hour = start_hour
        while hour < end_hour and hour < 24:
            try:
                results.extend(self.search(requested_date, client_zone, teacher_type, hour))
            except AmbiguousLocalTimeException as exc:
                self.logger.info(
                    "Skipping DST-affected hour",
                    extra={"hour": hour, "reason": exc.details.get("reason")},
                )
            hour += step
        return results

    def search_availability(
        self,
        requested_date: date,
        client_zone: str,
        teacher_type: str,
        preferred_local_hour: Optional[float] = None,
        start_hour: Optional[float] = None,
        end_hour: Optional[float] = None,
    ) -> List[SlotGroup]:
        """Grouped results for a single hour, or for a range when no hour is given."""
        if preferred_local_hour is not None:
            candidates = self.search(requested_date, client_zone, teacher_type, preferred_local_hour)
        elif start_hour is not None and end_hour is not None:
            candidates = self.search_range(
                requested_date, client_zone, teacher_type, start_hour, end_hour
            )
        else:
            raise ValidationException(
                "Provide either an hour or a start/end hour range",
                code="MISSING_SEARCH_HOUR",
            )
        return slot_grouper.group_list(candidates)
