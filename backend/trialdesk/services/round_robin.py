# backend/trialdesk/services/round_robin.py
"""
Round-robin teacher assignment.

Among the members of a slot group, the teacher who was assigned least
recently goes first; teachers never assigned at all go before everyone,
and ties fall back to teacher id. Recency is a global monotonic sequence
stored per teacher, so the order survives restarts and is the same for
every process reading the database.

If the chosen teacher's slot is taken between search and booking, the next
teacher in order is tried. The statistics are written in the caller's
transaction, so a booking that rolls back leaves fairness untouched.
"""

from dataclasses import dataclass, field
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import AssignmentMethod
from ..core.exceptions import AlreadyBookedException, NoSlotAvailableException, SlotLockedException
from ..models.availability import TeacherAvailabilitySlot
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.availability import SlotCandidate, SlotGroup
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

ReserveFn = Callable[[SlotCandidate], TeacherAvailabilitySlot]

_NEVER_ASSIGNED = -1


@dataclass
class Assignment:
    teacher_id: str
    slot: TeacherAvailabilitySlot
    group: SlotGroup
    method: AssignmentMethod
    candidate: SlotCandidate
    skipped_teacher_ids: List[str] = field(default_factory=list)


class RoundRobinAssigner(BaseService):
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.repository = RepositoryFactory.create_assignment_repository(db)

    def order_candidates(self, group: SlotGroup, lock: bool = False) -> List[SlotCandidate]:
        """Members ordered oldest assignment first, never-assigned ahead of all."""
        stats = self.repository.get_stats((member.teacher_id for member in group.members), lock=lock)

        def sort_key(member: SlotCandidate):
            stat = stats.get(member.teacher_id)
            seq = stat.last_assignment_seq if stat and stat.last_assignment_seq is not None else None
            return (_NEVER_ASSIGNED if seq is None else seq, member.teacher_id)

        return sorted(group.members, key=sort_key)

    def record(self, candidate: SlotCandidate) -> None:
        self.repository.record_assignment(candidate.teacher_id, candidate.teacher_type, self.now())

    @BaseService.measure_operation("assign")
    def assign(
        self,
        group: SlotGroup,
        reserve: ReserveFn,
        method: AssignmentMethod = AssignmentMethod.ROUND_ROBIN,
    ) -> Assignment:
        """
        Reserve the first teacher in fairness order whose slot is still open.

        Args:
            group: Candidates sharing one interval
            reserve: Reserves a candidate's slot, raising AlreadyBookedException
                or SlotLockedException when it cannot

        Raises:
            NoSlotAvailableException: Every member failed to reserve
        """
        ordered = self.order_candidates(group, lock=True)
        skipped: List[str] = []
        for candidate in ordered:
            try:
                slot = reserve(candidate)
            except (AlreadyBookedException, SlotLockedException) as exc:
                self.logger.info(
                    "Round-robin candidate unavailable, trying next",
                    extra={"teacher_id": candidate.teacher_id, "reason": exc.code},
                )
                skipped.append(candidate.teacher_id)
                continue

            self.record(candidate)
            prometheus_metrics.record_assignment(AssignmentMethod(method).value, len(skipped))
            self.log_operation(
                "assign",
                teacher_id=candidate.teacher_id,
                start_utc=group.start_utc.isoformat(),
                retries=len(skipped),
            )
            return Assignment(
                teacher_id=candidate.teacher_id,
                slot=slot,
                group=group,
                method=AssignmentMethod(method),
                candidate=candidate,
                skipped_teacher_ids=skipped,
            )

        raise NoSlotAvailableException(group.start_utc, skipped)
