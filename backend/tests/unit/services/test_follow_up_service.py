"""
Tests for FollowUpService scheduling, completion outcomes and the due list.
"""

from datetime import datetime, timedelta

import pytest

from trialdesk.core.enums import FollowUpOutcome, FollowUpReason
from trialdesk.core.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from trialdesk.models.follow_up import FollowUp


@pytest.mark.unit
class TestSchedule:
    def test_moves_subject_to_follow_up(self, follow_up_service, lifecycle_service, trial_completed_subject, sales_actor, clock):
        result = trial_completed_subject("Omar")
        when = clock() + timedelta(days=2)

        follow_up = follow_up_service.schedule(
            result.subject_id, when, FollowUpReason.PAYMENT_DELAY, notes="Salary on the 25th", actor=sales_actor
        )

        assert follow_up.subject_id == result.subject_id
        assert follow_up.subject_type == "student"
        assert follow_up.reason == "payment-delay"
        assert follow_up.sales_agent_id == "sales-agent-1"
        assert follow_up.completed is False
        assert lifecycle_service.get_status(result.subject_id) == "follow-up"

    def test_family_member_schedules_for_family(self, follow_up_service, trial_completed_subject, sales_actor, clock):
        result = trial_completed_subject("Omar", "Laila")
        follow_up = follow_up_service.schedule(
            result.student_ids[0], clock() + timedelta(days=1), "family-decision", actor=sales_actor
        )
        assert follow_up.subject_id == result.family_group_id
        assert follow_up.subject_type == "family"

    def test_rescheduling_while_in_follow_up_keeps_one_open_row(self, db, follow_up_service, trial_completed_subject, sales_actor, clock):
        result = trial_completed_subject("Omar")
        first = follow_up_service.schedule(result.subject_id, clock() + timedelta(days=1), "questions", actor=sales_actor)
        second = follow_up_service.schedule(
            result.subject_id, clock() + timedelta(days=3), "price-negotiation", actor=sales_actor
        )

        assert second.id == first.id
        assert second.reason == "price-negotiation"
        assert db.query(FollowUp).count() == 1

    def test_must_be_in_the_future(self, follow_up_service, trial_completed_subject, sales_actor, clock):
        result = trial_completed_subject("Omar")
        with pytest.raises(ValidationException) as exc_info:
            follow_up_service.schedule(result.subject_id, clock() - timedelta(minutes=1), "other", actor=sales_actor)
        assert exc_info.value.code == "FOLLOW_UP_IN_PAST"

    def test_naive_datetime(self, follow_up_service, trial_completed_subject, sales_actor):
        result = trial_completed_subject("Omar")
        with pytest.raises(ValidationException) as exc_info:
            follow_up_service.schedule(result.subject_id, datetime(2030, 1, 1, 9, 0), "other", actor=sales_actor)
        assert exc_info.value.code == "NAIVE_DATETIME"

    def test_not_from_pending(self, follow_up_service, booking_service, make_teacher, make_slot, build_request, scenario_start, sales_actor, clock):
        teacher = make_teacher()
        make_slot(teacher, scenario_start)
        result = booking_service.book(build_request(scenario_start, teacher_ids=[teacher.id]))
        with pytest.raises(InvalidTransitionException):
            follow_up_service.schedule(result.subject_id, clock() + timedelta(days=1), "other", actor=sales_actor)

    def test_teachers_cannot_schedule(self, follow_up_service, trial_completed_subject, teacher_actor, clock):
        result = trial_completed_subject("Omar")
        with pytest.raises(ForbiddenException):
            follow_up_service.schedule(result.subject_id, clock() + timedelta(days=1), "other", actor=teacher_actor)


@pytest.mark.unit
class TestReschedule:
    def test_moves_time(self, follow_up_service, trial_completed_subject, sales_actor, clock):
        result = trial_completed_subject("Omar")
        follow_up = follow_up_service.schedule(result.subject_id, clock() + timedelta(days=1), "other", actor=sales_actor)
        later = clock() + timedelta(days=5)

        updated = follow_up_service.reschedule(follow_up.id, later)
        assert updated.scheduled_at_utc == later

    def test_unknown_follow_up(self, follow_up_service, clock):
        with pytest.raises(NotFoundException) as exc_info:
            follow_up_service.reschedule("01J00000000000000000000000", clock() + timedelta(days=1))
        assert exc_info.value.code == "FOLLOW_UP_NOT_FOUND"

    def test_completed_cannot_move(self, follow_up_service, trial_completed_subject, sales_actor, clock):
        result = trial_completed_subject("Omar")
        follow_up = follow_up_service.schedule(result.subject_id, clock() + timedelta(days=1), "other", actor=sales_actor)
        follow_up_service.complete(follow_up.id, FollowUpOutcome.NOT_INTERESTED, actor=sales_actor)

        with pytest.raises(BusinessRuleException) as exc_info:
            follow_up_service.reschedule(follow_up.id, clock() + timedelta(days=2))
        assert exc_info.value.code == "FOLLOW_UP_COMPLETED"


@pytest.mark.unit
class TestComplete:
    @pytest.mark.parametrize(
        "outcome, expected_status",
        [(FollowUpOutcome.READY, "awaiting-payment"), (FollowUpOutcome.NOT_INTERESTED, "dropped")],
    )
    def test_outcome_moves_subject(self, follow_up_service, lifecycle_service, trial_completed_subject, sales_actor, clock, outcome, expected_status):
        result = trial_completed_subject("Omar")
        follow_up = follow_up_service.schedule(
            result.subject_id, clock() + timedelta(days=1), "questions", notes="Call after 6pm", actor=sales_actor
        )
        clock.advance(days=1, minutes=5)

        done = follow_up_service.complete(follow_up.id, outcome, notes="Spoke with mother", actor=sales_actor)

        assert done.completed is True
        assert done.completed_at == clock()
        assert done.outcome == outcome.value
        assert done.notes == "Call after 6pm\nSpoke with mother"
        assert lifecycle_service.get_status(result.subject_id) == expected_status

    def test_twice(self, follow_up_service, trial_completed_subject, sales_actor, clock):
        result = trial_completed_subject("Omar")
        follow_up = follow_up_service.schedule(result.subject_id, clock() + timedelta(days=1), "other", actor=sales_actor)
        follow_up_service.complete(follow_up.id, "ready", actor=sales_actor)

        with pytest.raises(ConflictException) as exc_info:
            follow_up_service.complete(follow_up.id, "ready", actor=sales_actor)
        assert exc_info.value.code == "FOLLOW_UP_ALREADY_COMPLETED"


@pytest.mark.unit
class TestDue:
    def test_lists_open_follow_ups_that_are_due(self, follow_up_service, trial_completed_subject, sales_actor, clock):
        soon = trial_completed_subject("Omar")
        later = trial_completed_subject("Sara")
        closed = trial_completed_subject("Adam")
        due_soon = follow_up_service.schedule(soon.subject_id, clock() + timedelta(hours=2), "other", actor=sales_actor)
        follow_up_service.schedule(later.subject_id, clock() + timedelta(days=3), "other", actor=sales_actor)
        done = follow_up_service.schedule(closed.subject_id, clock() + timedelta(hours=1), "other", actor=sales_actor)
        follow_up_service.complete(done.id, "not_interested", actor=sales_actor)

        clock.advance(hours=3)
        assert [f.id for f in follow_up_service.list_due()] == [due_soon.id]
        assert len(follow_up_service.list_due(now=clock() + timedelta(days=5))) == 2
