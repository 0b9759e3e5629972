# backend/trialdesk/services/follow_up_service.py
"""
Follow-up scheduling for students and families that finished a trial but
are not ready to pay.

A subject has at most one open follow-up. Scheduling moves it into
follow-up; completing the follow-up moves it on to awaiting-payment or
dropped depending on the outcome.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import FollowUpOutcome, FollowUpReason, LifecycleEvent, TrialStatus
from ..core.exceptions import BusinessRuleException, ConflictException, NotFoundException, ValidationException
from ..models.follow_up import FollowUp
from ..principal import Principal
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock
from .status_lifecycle import LifecycleService

logger = logging.getLogger(__name__)

OUTCOME_EVENTS = {
    FollowUpOutcome.READY: LifecycleEvent.FOLLOW_UP_READY,
    FollowUpOutcome.NOT_INTERESTED: LifecycleEvent.FOLLOW_UP_NOT_INTERESTED,
}


class FollowUpService(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        lifecycle_service: Optional[LifecycleService] = None,
    ):
        super().__init__(db, clock)
        self.lifecycle = lifecycle_service or LifecycleService(db, clock)
        self.repository = RepositoryFactory.create_follow_up_repository(db)

    def _require_future(self, scheduled_at_utc: datetime) -> None:
        if scheduled_at_utc.tzinfo is None:
            raise ValidationException("scheduled_at_utc must be timezone-aware", code="NAIVE_DATETIME")
        if scheduled_at_utc <= self.now():
            raise ValidationException(
                "Follow-ups must be scheduled in the future",
                code="FOLLOW_UP_IN_PAST",
                details={"scheduled_at_utc": scheduled_at_utc.isoformat()},
            )

    def get(self, follow_up_id: str) -> FollowUp:
        follow_up = self.repository.get_by_id(follow_up_id, load_relationships=False)
        if follow_up is None:
            raise NotFoundException(f"Follow-up {follow_up_id} not found", code="FOLLOW_UP_NOT_FOUND")
        return follow_up

    @BaseService.measure_operation("schedule_follow_up")
    def schedule(
        self,
        subject_id: str,
        scheduled_at_utc: datetime,
        reason: FollowUpReason,
        notes: Optional[str] = None,
        actor: Optional[Principal] = None,
    ) -> FollowUp:
        """
        Schedule a call-back.

        A subject already in follow-up keeps its status and has its open
        follow-up replaced in place.
        """
        self._require_future(scheduled_at_utc)
        reason_value = FollowUpReason(reason).value
        subject = self.lifecycle.resolve_subject(subject_id)
        agent_id = actor.id if actor is not None and actor.principal_type == "user" else None

        existing = None
        if subject.status == TrialStatus.FOLLOW_UP.value:
            existing = self.repository.get_open_for_subject(subject.id)
        else:
            self.lifecycle.check(subject, LifecycleEvent.SCHEDULE_FOLLOW_UP, {}, actor)

        with self.transaction():
            if existing is not None:
                existing.scheduled_at_utc = scheduled_at_utc
                existing.reason = reason_value
                existing.notes = notes
                existing.sales_agent_id = agent_id or existing.sales_agent_id
                existing.updated_at = self.now()
                self.repository.flush()
                follow_up = existing
            else:
                if subject.status != TrialStatus.FOLLOW_UP.value:
                    self.lifecycle.apply(subject, LifecycleEvent.SCHEDULE_FOLLOW_UP, {}, actor, note=reason_value)
                follow_up = self.repository.create(
                    subject_id=subject.id,
                    subject_type=subject.kind,
                    scheduled_at_utc=scheduled_at_utc,
                    reason=reason_value,
                    notes=notes,
                    completed=False,
                    sales_agent_id=agent_id,
                    created_at=self.now(),
                    updated_at=self.now(),
                )

        self.log_operation(
            "schedule_follow_up",
            subject_id=subject.id,
            follow_up_id=follow_up.id,
            scheduled_at_utc=scheduled_at_utc.isoformat(),
            reason=reason_value,
        )
        return follow_up

    @BaseService.measure_operation("reschedule_follow_up")
    def reschedule(self, follow_up_id: str, scheduled_at_utc: datetime) -> FollowUp:
        follow_up = self.get(follow_up_id)
        if follow_up.completed:
            raise BusinessRuleException(
                "Completed follow-ups cannot be rescheduled",
                code="FOLLOW_UP_COMPLETED",
                details={"follow_up_id": follow_up.id},
            )
        self._require_future(scheduled_at_utc)

        with self.transaction():
            follow_up.scheduled_at_utc = scheduled_at_utc
            follow_up.updated_at = self.now()
            self.repository.flush()
        return follow_up

    @BaseService.measure_operation("complete_follow_up")
    def complete(
        self,
        follow_up_id: str,
        outcome: FollowUpOutcome,
        notes: Optional[str] = None,
        actor: Optional[Principal] = None,
    ) -> FollowUp:
        """
        Close a follow-up and move its subject on.

        Raises:
            ConflictException: The follow-up was already completed
            InvalidTransitionException: The subject is no longer in follow-up
        """
        follow_up = self.get(follow_up_id)
        if follow_up.completed:
            raise ConflictException(
                "Follow-up already completed",
                code="FOLLOW_UP_ALREADY_COMPLETED",
                details={"follow_up_id": follow_up.id, "outcome": follow_up.outcome},
            )
        outcome = FollowUpOutcome(outcome)
        event = OUTCOME_EVENTS[outcome]
        subject = self.lifecycle.resolve_subject(follow_up.subject_id)

        with self.transaction():
            self.lifecycle.apply(subject, event, {}, actor, note=notes)
            follow_up.completed = True
            follow_up.completed_at = self.now()
            follow_up.outcome = outcome.value
            if notes:
                follow_up.notes = f"{follow_up.notes}\n{notes}" if follow_up.notes else notes
            follow_up.updated_at = self.now()
            self.repository.flush()

        self.log_operation(
            "complete_follow_up",
            follow_up_id=follow_up.id,
            subject_id=subject.id,
            outcome=outcome.value,
            to_status=subject.status,
        )
        return follow_up

    def list_due(self, now: Optional[datetime] = None, limit: int = 200) -> List[FollowUp]:
        return self.repository.list_due(now or self.now(), limit)
