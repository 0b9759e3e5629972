# backend/trialdesk/services/booking_service.py
"""
Booking Service for the trial booking engine.

book() is the one entry point for individual and family trials. Inside a
single transaction it re-checks that the slot the agent picked is still
free, picks a teacher (round-robin over the group, or the agent's explicit
choice), reserves the slot, creates the family, students and one trial
booking per student, and records the initial status. Any failure rolls all
of it back, including the reservation and the round-robin statistics.

The selected slot travels in the request; nothing about a search result is
held server-side between search and booking.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import ANY_TEACHER_TYPE_FILTERS, AssignmentMethod, LifecycleEvent, TeacherType
from ..core.exceptions import NoSlotAvailableException, NotFoundException, SlotNoLongerAvailableException
from ..models.student import FamilyGroup, Student
from ..models.trial_booking import TrialBooking
from ..models.user import User
from ..principal import Principal
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import (
    BookingRequest,
    BookingResult,
    RescheduleRequest,
    SlotSelection,
    TrialBookingOut,
)
from . import slot_grouper
from .availability_service import AvailabilityService, teacher_types_for_filter
from .base import BaseService, Clock
from .round_robin import Assignment, RoundRobinAssigner
from .slot_search_service import make_candidate
from .status_lifecycle import INITIAL_STATUS, LifecycleService, Subject
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)


def _stored_teacher_type(requested: str) -> str:
    normalized = requested.strip().lower()
    if normalized in ANY_TEACHER_TYPE_FILTERS:
        return TeacherType.MIXED.value
    return normalized


class BookingService(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        availability_service: Optional[AvailabilityService] = None,
        assigner: Optional[RoundRobinAssigner] = None,
        lifecycle_service: Optional[LifecycleService] = None,
    ):
        super().__init__(db, clock)
        self.availability = availability_service or AvailabilityService(db, clock)
        self.assigner = assigner or RoundRobinAssigner(db, clock)
        self.lifecycle = lifecycle_service or LifecycleService(db, clock)
        self.family_repository = RepositoryFactory.create_family_repository(db)
        self.booking_repository = RepositoryFactory.create_trial_booking_repository(db)

    def _reserve_teacher(
        self, selection: SlotSelection, teacher_type: Optional[str], client_zone: str
    ) -> Assignment:
        """
        Reserve one teacher for the selected interval. Runs in the caller's transaction.

        Raises:
            SlotNoLongerAvailableException: No member of the selection is still
                free, or every remaining member was taken while we tried
        """
        wanted = {selection.teacher_id} if selection.is_manual else set(selection.teacher_ids)
        # An explicit pick overrides the type filter
        type_filter = None if selection.is_manual else teacher_type
        fresh = self.availability.find_free_slots(selection.start_utc, selection.end_utc, type_filter)
        members = [
            make_candidate(slot, teacher, client_zone, self.availability.reference_zone_for(teacher))
            for slot, teacher in fresh
            if teacher.id in wanted
        ]
        if not members:
            raise SlotNoLongerAvailableException(selection.start_utc, sorted(wanted))

        group = slot_grouper.build_group(selection.start_utc, selection.end_utc, members)
        method = AssignmentMethod.MANUAL if selection.is_manual else AssignmentMethod.ROUND_ROBIN
        try:
            return self.assigner.assign(
                group,
                reserve=lambda c: self.availability.reserve(c.teacher_id, c.start_utc, c.end_utc),
                method=method,
            )
        except NoSlotAvailableException as exc:
            raise SlotNoLongerAvailableException(
                selection.start_utc, exc.details.get("attempted_teacher_ids", [])
            ) from exc

    def _civil_start(self, teacher: User, start_utc: datetime):
        local = TimezoneService.utc_to_local(start_utc, self.availability.reference_zone_for(teacher))
        return local.date(), local.time().replace(tzinfo=None)

    @BaseService.measure_operation("book")
    def book(self, request: BookingRequest, actor: Optional[Principal] = None) -> BookingResult:
        """
        Book a trial for one student or a family of students.

        Raises:
            InvalidTimezoneException: Unknown client timezone
            ValidationException: Unknown teacher type
            SlotNoLongerAvailableException: The slot was taken since the search
        """
        client_zone = TimezoneService.resolve_zone(request.client_timezone)
        teacher_types_for_filter(request.teacher_type)
        teacher_type = _stored_teacher_type(request.teacher_type)
        agent_id = actor.id if actor is not None and actor.principal_type == "user" else None
        contact = request.contact

        with self.transaction():
            assignment = self._reserve_teacher(request.slot, request.teacher_type, request.client_timezone)
            teacher = self.availability.repository.get_teacher(assignment.teacher_id)
            slot = assignment.slot
            trial_date, trial_time = self._civil_start(teacher, slot.start_utc)
            year = TimezoneService.today_in(settings.reference_timezone, self.now()).year

            family: Optional[FamilyGroup] = None
            if request.multi_student:
                family = self.family_repository.create(
                    unique_id=self.family_repository.next_unique_id(
                        settings.unique_id_prefix, year, family=True
                    ),
                    parent_name=contact.name,
                    phone=contact.phone,
                    country=contact.country,
                    platform=contact.platform,
                    notes=contact.notes,
                    teacher_type=teacher_type,
                    status=INITIAL_STATUS.value,
                    student_count=len(request.students),
                    assigned_teacher_id=teacher.id,
                    assigned_sales_agent_id=agent_id,
                )

            students: List[Student] = []
            bookings: List[TrialBooking] = []
            for student_in in request.students:
                student = self.family_repository.create_student(
                    unique_id=self.family_repository.next_unique_id(
                        settings.unique_id_prefix, year, family=False
                    ),
                    name=student_in.name,
                    age=student_in.age,
                    phone=contact.phone,
                    country=contact.country,
                    platform=contact.platform,
                    notes=student_in.notes if family is not None else (student_in.notes or contact.notes),
                    status=INITIAL_STATUS.value,
                    family_group_id=family.id if family is not None else None,
                    assigned_sales_agent_id=agent_id,
                )
                students.append(student)
                bookings.append(
                    self.booking_repository.create(
                        student_id=student.id,
                        family_group_id=family.id if family is not None else None,
                        assigned_teacher_id=teacher.id,
                        availability_slot_id=slot.id,
                        teacher_type=teacher_type,
                        trial_date=trial_date,
                        trial_time=trial_time,
                        start_utc=slot.start_utc,
                        end_utc=slot.end_utc,
                        client_timezone=client_zone,
                        status=INITIAL_STATUS.value,
                        assignment_method=assignment.method.value,
                        sales_agent_id=agent_id,
                    )
                )

            if family is not None:
                subject = self.lifecycle.family_subject(family)
            else:
                subject = self.lifecycle.student_subject(students[0])
            self.lifecycle.record_initial(subject, actor)

        self.log_operation(
            "book",
            subject_id=subject.id,
            subject_type=subject.kind,
            teacher_id=teacher.id,
            start_utc=slot.start_utc.isoformat(),
            student_count=len(students),
            assignment_method=assignment.method.value,
        )
        return self._result(subject, teacher, assignment.method, client_zone)

    @BaseService.measure_operation("reschedule")
    def reschedule(
        self, subject_id: str, request: RescheduleRequest, actor: Optional[Principal] = None
    ) -> BookingResult:
        """
        Move a pending, confirmed or ghosted trial to a new slot.

        The new slot is reserved and the old one released in the same
        transaction; the subject returns to pending.

        Raises:
            InvalidTransitionException: The subject's status does not allow rescheduling
            SlotNoLongerAvailableException: The new slot was taken
            SlotLockedException: The old slot is dated today and cannot be released
        """
        subject = self.lifecycle.resolve_subject(subject_id)
        if not subject.bookings:
            raise NotFoundException(f"No trial booking for {subject_id}", code="TRIAL_NOT_FOUND")
        self.lifecycle.check(subject, LifecycleEvent.RESCHEDULE, {}, actor)

        current = subject.bookings[0]
        client_timezone = request.client_timezone or current.client_timezone
        client_zone = TimezoneService.resolve_zone(client_timezone)
        teacher_type = request.teacher_type or current.teacher_type
        old_teacher_id, old_start = current.assigned_teacher_id, current.start_utc

        with self.transaction():
            assignment = self._reserve_teacher(request.slot, teacher_type, client_timezone)
            self.availability.release(old_teacher_id, old_start)

            teacher = self.availability.repository.get_teacher(assignment.teacher_id)
            slot = assignment.slot
            trial_date, trial_time = self._civil_start(teacher, slot.start_utc)
            for booking in subject.bookings:
                booking.assigned_teacher_id = teacher.id
                booking.availability_slot_id = slot.id
                booking.start_utc = slot.start_utc
                booking.end_utc = slot.end_utc
                booking.trial_date = trial_date
                booking.trial_time = trial_time
                booking.client_timezone = client_zone
                booking.assignment_method = assignment.method.value
            if subject.family is not None:
                subject.family.assigned_teacher_id = teacher.id
            self.booking_repository.flush()

            self.lifecycle.apply(subject, LifecycleEvent.RESCHEDULE, {}, actor)

        self.log_operation(
            "reschedule",
            subject_id=subject.id,
            from_teacher_id=old_teacher_id,
            from_start_utc=old_start.isoformat(),
            teacher_id=teacher.id,
            start_utc=slot.start_utc.isoformat(),
        )
        return self._result(subject, teacher, assignment.method, client_zone)

    def _result(
        self,
        subject: Subject,
        teacher: User,
        method: AssignmentMethod,
        client_zone: str,
    ) -> BookingResult:
        first = subject.bookings[0]
        return BookingResult(
            subject_id=subject.id,
            family_group_id=subject.family.id if subject.family is not None else None,
            family_unique_id=subject.family.unique_id if subject.family is not None else None,
            student_ids=[s.id for s in subject.students],
            student_unique_ids=[s.unique_id for s in subject.students],
            bookings=[TrialBookingOut.model_validate(b) for b in subject.bookings],
            teacher_id=teacher.id,
            teacher_name=teacher.full_name,
            start_utc=first.start_utc,
            end_utc=first.end_utc,
            status=subject.status,
            assignment_method=method,
            client_time_display=TimezoneService.format_range(first.start_utc, first.end_utc, client_zone),
            reference_time_display=TimezoneService.format_range(
                first.start_utc, first.end_utc, self.availability.reference_zone_for(teacher)
            ),
        )
