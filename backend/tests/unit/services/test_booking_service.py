"""
Tests for BookingService: individual and family bookings, all-or-nothing
rollback, races against other agents, manual assignment and rescheduling.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest

from trialdesk.core.enums import AssignmentMethod
from trialdesk.core.exceptions import (
    InvalidTransitionException,
    InvalidTimezoneException,
    SlotNoLongerAvailableException,
)
from trialdesk.models.assignment import TeacherAssignmentStat
from trialdesk.models.availability import TeacherAvailabilitySlot
from trialdesk.models.follow_up import StatusChange
from trialdesk.models.student import FamilyGroup, Student
from trialdesk.models.trial_booking import TrialBooking
from trialdesk.schemas.booking import RescheduleRequest, SlotSelection


def _slot_row(db, teacher, start_utc):
    db.expire_all()
    return (
        db.query(TeacherAvailabilitySlot)
        .filter(TeacherAvailabilitySlot.teacher_id == teacher.id, TeacherAvailabilitySlot.start_utc == start_utc)
        .one()
    )


@pytest.mark.unit
class TestIndividualBooking:
    def test_books_one_student(self, db, booking_service, make_teacher, make_slot, build_request, scenario_start, sales_actor):
        teacher = make_teacher(full_name="Ahmed Hassan")
        make_slot(teacher, scenario_start)

        result = booking_service.book(build_request(scenario_start, teacher_ids=[teacher.id]), actor=sales_actor)

        assert result.family_group_id is None
        assert result.student_unique_ids == ["AYB_2025_000001"]
        assert result.teacher_id == teacher.id
        assert result.teacher_name == "Ahmed Hassan"
        assert result.status == "pending"
        assert result.assignment_method == AssignmentMethod.ROUND_ROBIN
        assert result.client_time_display == "6:30 PM-7:00 PM"
        assert result.reference_time_display == "5:30 PM-6:00 PM"

        assert _slot_row(db, teacher, scenario_start).is_booked is True
        booking = db.query(TrialBooking).one()
        assert booking.student_id == result.subject_id
        assert booking.sales_agent_id == "sales-agent-1"
        assert booking.client_timezone == "Asia/Dubai"
        assert booking.trial_date.isoformat() == "2025-06-21"
        assert booking.trial_time.strftime("%H:%M") == "17:30"

        history = db.query(StatusChange).filter(StatusChange.subject_id == result.subject_id).all()
        assert [(h.from_status, h.to_status, h.event) for h in history] == [(None, "pending", "booked")]

    def test_unique_ids_increment(self, booking_service, make_teacher, make_slot, build_request, scenario_start):
        teacher = make_teacher()
        second_start = scenario_start + timedelta(minutes=30)
        make_slot(teacher, scenario_start)
        make_slot(teacher, second_start)

        first = booking_service.book(build_request(scenario_start, teacher_ids=[teacher.id]))
        second = booking_service.book(build_request(second_start, teacher_ids=[teacher.id]))

        assert first.student_unique_ids == ["AYB_2025_000001"]
        assert second.student_unique_ids == ["AYB_2025_000002"]

    def test_unknown_client_timezone(self, booking_service, make_teacher, make_slot, build_request, scenario_start):
        teacher = make_teacher()
        make_slot(teacher, scenario_start)
        with pytest.raises(InvalidTimezoneException):
            booking_service.book(
                build_request(scenario_start, teacher_ids=[teacher.id], client_timezone="Mars/Olympus")
            )


@pytest.mark.unit
class TestFamilyBooking:
    def test_siblings_share_family_teacher_and_slot(self, db, booking_service, make_teacher, make_slot, build_request, scenario_start):
        teacher = make_teacher()
        make_slot(teacher, scenario_start)

        result = booking_service.book(
            build_request(scenario_start, teacher_ids=[teacher.id], student_names=("Omar", "Laila", "Yusuf"))
        )

        assert result.subject_id == result.family_group_id
        assert result.family_unique_id == "AYB_2025_FAM_000001"
        assert len(result.student_ids) == 3
        assert sorted(result.student_unique_ids) == ["AYB_2025_000001", "AYB_2025_000002", "AYB_2025_000003"]

        family = db.get(FamilyGroup, result.family_group_id)
        assert family.student_count == 3
        assert family.parent_name == "Mona Hassan"
        assert family.assigned_teacher_id == teacher.id

        bookings = db.query(TrialBooking).all()
        assert len(bookings) == 3
        assert {b.family_group_id for b in bookings} == {family.id}
        assert {b.assigned_teacher_id for b in bookings} == {teacher.id}
        assert {b.start_utc.replace(tzinfo=None) for b in bookings} == {scenario_start.replace(tzinfo=None)}
        assert {s.status for s in db.query(Student).all()} == {"pending"}

        # One reserved slot for the whole family
        assert db.query(TeacherAvailabilitySlot).filter(TeacherAvailabilitySlot.is_booked.is_(True)).count() == 1

    def test_failure_rolls_everything_back(self, db, booking_service, lifecycle_service, make_teacher, make_slot, build_request, scenario_start):
        teacher = make_teacher()
        make_slot(teacher, scenario_start)

        with patch.object(lifecycle_service, "record_initial", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                booking_service.book(
                    build_request(scenario_start, teacher_ids=[teacher.id], student_names=("Omar", "Laila"))
                )

        assert _slot_row(db, teacher, scenario_start).is_booked is False
        assert db.query(FamilyGroup).count() == 0
        assert db.query(Student).count() == 0
        assert db.query(TrialBooking).count() == 0
        assert db.query(TeacherAssignmentStat).count() == 0


@pytest.mark.unit
class TestRaces:
    def test_taken_teacher_is_skipped(self, db, booking_service, availability_service, make_teacher, make_slot, build_request, scenario_start):
        first, second = sorted([make_teacher(), make_teacher()], key=lambda t: t.id)
        make_slot(first, scenario_start)
        make_slot(second, scenario_start)

        # Another agent takes the first teacher between search and booking
        availability_service.reserve(first.id, scenario_start, scenario_start + timedelta(minutes=30))
        db.commit()

        result = booking_service.book(build_request(scenario_start, teacher_ids=[first.id, second.id]))
        assert result.teacher_id == second.id

    def test_whole_group_taken(self, db, booking_service, availability_service, make_teacher, make_slot, build_request, scenario_start):
        teachers = [make_teacher(), make_teacher()]
        for teacher in teachers:
            make_slot(teacher, scenario_start)
            availability_service.reserve(teacher.id, scenario_start, scenario_start + timedelta(minutes=30))
        db.commit()

        with pytest.raises(SlotNoLongerAvailableException) as exc_info:
            booking_service.book(build_request(scenario_start, teacher_ids=[t.id for t in teachers]))
        assert exc_info.value.code == "SLOT_NO_LONGER_AVAILABLE"
        assert db.query(Student).count() == 0


@pytest.mark.unit
class TestManualAssignment:
    def test_explicit_teacher_bypasses_rotation(self, db, booking_service, make_teacher, make_slot, build_request, scenario_start):
        first, second = sorted([make_teacher(), make_teacher()], key=lambda t: t.id)
        make_slot(first, scenario_start)
        make_slot(second, scenario_start)

        result = booking_service.book(build_request(scenario_start, teacher_id=second.id))

        assert result.teacher_id == second.id
        assert result.assignment_method == AssignmentMethod.MANUAL
        assert db.get(TeacherAssignmentStat, second.id).assignment_count == 1

    def test_explicit_teacher_ignores_type_filter(self, booking_service, make_teacher, make_slot, build_request, scenario_start):
        kids_teacher = make_teacher(teacher_type="kids")
        make_slot(kids_teacher, scenario_start)

        result = booking_service.book(
            build_request(scenario_start, teacher_id=kids_teacher.id, teacher_type="adult")
        )
        assert result.teacher_id == kids_teacher.id


@pytest.mark.unit
class TestReschedule:
    def test_moves_trial_and_frees_old_slot(self, db, booking_service, lifecycle_service, make_teacher, make_slot, build_request, scenario_start, teacher_actor, sales_actor):
        teacher = make_teacher()
        later = scenario_start + timedelta(hours=1)
        make_slot(teacher, scenario_start)
        make_slot(teacher, later)
        booked = booking_service.book(build_request(scenario_start, teacher_ids=[teacher.id]))
        lifecycle_service.attempt_transition(booked.subject_id, "teacher_confirms", actor=teacher_actor)

        request = RescheduleRequest(
            slot=SlotSelection(start_utc=later, end_utc=later + timedelta(minutes=30), teacher_ids=[teacher.id])
        )
        result = booking_service.reschedule(booked.subject_id, request, actor=sales_actor)

        assert result.status == "pending"
        assert result.start_utc.replace(tzinfo=None) == later.replace(tzinfo=None)
        assert _slot_row(db, teacher, scenario_start).is_booked is False
        assert _slot_row(db, teacher, later).is_booked is True
        booking = db.query(TrialBooking).one()
        assert booking.trial_time.strftime("%H:%M") == "18:30"

    def test_not_allowed_after_trial_completed(self, booking_service, trial_completed_subject, make_teacher, make_slot, scenario_start, sales_actor):
        booked = trial_completed_subject("Omar")
        later = scenario_start + timedelta(hours=2)
        teacher = make_teacher()
        make_slot(teacher, later)

        request = RescheduleRequest(
            slot=SlotSelection(start_utc=later, end_utc=later + timedelta(minutes=30), teacher_ids=[teacher.id])
        )
        with pytest.raises(InvalidTransitionException):
            booking_service.reschedule(booked.subject_id, request, actor=sales_actor)
