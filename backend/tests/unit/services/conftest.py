"""Service fixtures sharing one session and one frozen clock."""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

import pytest

from trialdesk.core.config import settings
from trialdesk.schemas.booking import BookingRequest, ContactIn, SlotSelection, StudentIn
from trialdesk.services.availability_service import AvailabilityService
from trialdesk.services.booking_service import BookingService
from trialdesk.services.family_payment_service import FamilyPaymentService
from trialdesk.services.follow_up_service import FollowUpService
from trialdesk.services.round_robin import RoundRobinAssigner
from trialdesk.services.slot_search_service import SlotSearchService
from trialdesk.services.status_lifecycle import LifecycleService


@pytest.fixture
def availability_service(db, clock) -> AvailabilityService:
    return AvailabilityService(db, clock)


@pytest.fixture
def search_service(db, clock, availability_service) -> SlotSearchService:
    return SlotSearchService(db, clock, availability_service)


@pytest.fixture
def lifecycle_service(db, clock) -> LifecycleService:
    return LifecycleService(db, clock)


@pytest.fixture
def assigner(db, clock) -> RoundRobinAssigner:
    return RoundRobinAssigner(db, clock)


@pytest.fixture
def booking_service(db, clock, availability_service, assigner, lifecycle_service) -> BookingService:
    return BookingService(db, clock, availability_service, assigner, lifecycle_service)


@pytest.fixture
def payment_service(db, clock, lifecycle_service) -> FamilyPaymentService:
    return FamilyPaymentService(db, clock=clock, lifecycle_service=lifecycle_service)


@pytest.fixture
def follow_up_service(db, clock, lifecycle_service) -> FollowUpService:
    return FollowUpService(db, clock, lifecycle_service)


@pytest.fixture
def build_request() -> Callable[..., BookingRequest]:
    def _build(
        start_utc: datetime,
        teacher_ids: Optional[List[str]] = None,
        teacher_id: Optional[str] = None,
        student_names: tuple = ("Omar",),
        client_timezone: str = "uae",
        teacher_type: str = "mixed",
    ) -> BookingRequest:
        return BookingRequest(
            students=[StudentIn(name=name, age=9) for name in student_names],
            contact=ContactIn(name="Mona Hassan", phone="+971500000001", country="AE"),
            client_timezone=client_timezone,
            teacher_type=teacher_type,
            slot=SlotSelection(
                start_utc=start_utc,
                end_utc=start_utc + timedelta(minutes=settings.slot_minutes),
                teacher_ids=teacher_ids or [],
                teacher_id=teacher_id,
            ),
        )

    return _build


@pytest.fixture
def trial_completed_subject(booking_service, lifecycle_service, make_teacher, make_slot, build_request, teacher_actor, scenario_start):
    """
    Book a trial and walk it through confirmation and completion.

    Returns a callable taking student names; one name books an individual,
    several book a family.
    """

    def _make(*names: str):
        teacher = make_teacher()
        make_slot(teacher, scenario_start)
        result = booking_service.book(
            build_request(scenario_start, teacher_ids=[teacher.id], student_names=names or ("Omar",))
        )
        lifecycle_service.attempt_transition(result.subject_id, "teacher_confirms", actor=teacher_actor)
        lifecycle_service.attempt_transition(result.subject_id, "trial_completed", actor=teacher_actor)
        return result

    return _make
