# backend/trialdesk/services/status_lifecycle.py
"""
Student / family status lifecycle.

TRANSITIONS is the single table every mutating entry point consults: the
generic transition endpoint, booking, rescheduling, payment links and
follow-ups all go through LifecycleService.apply(). Events that create
records of their own (payment links, follow-ups, reschedules) are refused by
the generic endpoint and only fire from their owning service. Anything not
in the table is rejected before a single row changes, and so is a
transition whose guard is not met.

A student booked alone is their own subject. Siblings booked together are
one subject, the family group: their statuses and bookings move together,
and addressing any member by student id resolves to the family.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from sqlalchemy.orm import Session

from ..core.enums import LifecycleEvent, RoleName, TrialStatus
from ..core.exceptions import (
    DedicatedEndpointRequiredException,
    ForbiddenException,
    GuardFailedException,
    InvalidTransitionException,
    NotFoundException,
)
from ..models.student import FamilyGroup, Student
from ..models.trial_booking import TrialBooking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import Principal
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

S = TrialStatus
E = LifecycleEvent
R = RoleName

SUBJECT_STUDENT = "student"
SUBJECT_FAMILY = "family"

# Guard keys
GUARD_TRIAL_SESSION = "trial_session_exists"
GUARD_PACKAGE_CURRENCY = "package_and_currency_selected"
GUARD_PAYMENT_REFERENCE = "payment_reference"
GUARD_SESSIONS_SCHEDULED = "all_sessions_scheduled"

_TEACHING = frozenset({R.TEACHER, R.ADMIN})
_SELLING = frozenset({R.SALES, R.ADMIN})
_ADMIN = frozenset({R.ADMIN})


@dataclass(frozen=True)
class Transition:
    event: LifecycleEvent
    sources: FrozenSet[TrialStatus]
    target: TrialStatus
    roles: FrozenSet[RoleName]
    guard: Optional[str] = None
    requirement: Optional[str] = None


def _t(
    event: LifecycleEvent,
    sources: Tuple[TrialStatus, ...],
    target: TrialStatus,
    roles: FrozenSet[RoleName],
    guard: Optional[str] = None,
    requirement: Optional[str] = None,
) -> Transition:
    return Transition(event, frozenset(sources), target, roles, guard, requirement)


TRANSITIONS: Tuple[Transition, ...] = (
    _t(E.TEACHER_CONFIRMS, (S.PENDING,), S.CONFIRMED, _TEACHING,
       GUARD_TRIAL_SESSION, "a trial session with an assigned teacher and slot"),
    _t(E.TRIAL_COMPLETED, (S.CONFIRMED,), S.TRIAL_COMPLETED, _TEACHING),
    _t(E.TRIAL_GHOSTED, (S.CONFIRMED,), S.TRIAL_GHOSTED, _TEACHING),
    _t(E.RECONFIRM, (S.TRIAL_GHOSTED,), S.CONFIRMED, frozenset({R.TEACHER, R.SALES, R.ADMIN})),
    _t(E.SCHEDULE_FOLLOW_UP, (S.TRIAL_COMPLETED, S.TRIAL_GHOSTED), S.FOLLOW_UP, _SELLING),
    _t(E.CREATE_PAYMENT_LINK, (S.TRIAL_COMPLETED, S.TRIAL_GHOSTED), S.AWAITING_PAYMENT, _SELLING,
       GUARD_PACKAGE_CURRENCY, "a package and a currency selected"),
    _t(E.FOLLOW_UP_READY, (S.FOLLOW_UP,), S.AWAITING_PAYMENT, _SELLING),
    _t(E.FOLLOW_UP_NOT_INTERESTED, (S.FOLLOW_UP,), S.DROPPED, _SELLING),
    _t(E.PAYMENT_RECEIVED, (S.AWAITING_PAYMENT,), S.PAID, _SELLING,
       GUARD_PAYMENT_REFERENCE, "an external payment reference"),
    _t(E.RETRACT_PAYMENT_LINK, (S.AWAITING_PAYMENT,), S.TRIAL_COMPLETED, _SELLING),
    _t(E.REGISTRATION_COMPLETED, (S.PAID,), S.ACTIVE, _SELLING,
       GUARD_SESSIONS_SCHEDULED, "all package sessions scheduled"),
    _t(E.PACKAGE_EXPIRED, (S.ACTIVE,), S.EXPIRED, _ADMIN),
    _t(E.CREATE_PAYMENT_LINK, (S.EXPIRED, S.CANCELLED), S.AWAITING_PAYMENT, _SELLING,
       GUARD_PACKAGE_CURRENCY, "a package and a currency selected"),
    _t(E.CANCEL, (S.PENDING, S.CONFIRMED, S.ACTIVE), S.CANCELLED, _ADMIN),
    _t(E.DROP, (S.TRIAL_COMPLETED, S.TRIAL_GHOSTED, S.AWAITING_PAYMENT, S.ACTIVE), S.DROPPED, _SELLING),
    _t(E.RESCHEDULE, (S.PENDING, S.CONFIRMED, S.TRIAL_GHOSTED), S.PENDING, _SELLING),
)

INITIAL_STATUS = S.PENDING

_INDEX: Dict[Tuple[TrialStatus, LifecycleEvent], Transition] = {
    (source, transition.event): transition
    for transition in TRANSITIONS
    for source in transition.sources
}

# UI actions that map to exactly one event
_ACTION_EVENTS = {
    "payment_link": E.CREATE_PAYMENT_LINK,
    "follow_up": E.SCHEDULE_FOLLOW_UP,
    "reschedule": E.RESCHEDULE,
}
ACTIONS = ("contact", "edit", "status_change", "payment_link", "follow_up", "reschedule")

# Events whose side effects (records, reservations) live in another service
DEDICATED_ENDPOINTS: Dict[LifecycleEvent, str] = {
    E.CREATE_PAYMENT_LINK: "POST /api/v1/families/{id}/payment-link or POST /api/v1/students/{id}/payment-link",
    E.SCHEDULE_FOLLOW_UP: "POST /api/v1/follow-ups",
    E.FOLLOW_UP_READY: "POST /api/v1/follow-ups/{id}/complete",
    E.FOLLOW_UP_NOT_INTERESTED: "POST /api/v1/follow-ups/{id}/complete",
    E.RESCHEDULE: "POST /api/v1/trials/{subject_id}/reschedule",
}


def _as_status(value: Union[str, TrialStatus]) -> Optional[TrialStatus]:
    try:
        return TrialStatus(value)
    except ValueError:
        return None


def _as_event(value: Union[str, LifecycleEvent]) -> Optional[LifecycleEvent]:
    try:
        return LifecycleEvent(value)
    except ValueError:
        return None


def _as_role(value: Union[str, RoleName, None]) -> Optional[RoleName]:
    if value is None:
        return None
    try:
        return RoleName(value)
    except ValueError:
        return None


def lookup(state: Union[str, TrialStatus], event: Union[str, LifecycleEvent]) -> Optional[Transition]:
    status, ev = _as_status(state), _as_event(event)
    if status is None or ev is None:
        return None
    return _INDEX.get((status, ev))


def transitions_from(state: Union[str, TrialStatus]) -> List[Transition]:
    status = _as_status(state)
    return [t for t in TRANSITIONS if status in t.sources]


def is_terminal(state: Union[str, TrialStatus]) -> bool:
    return not transitions_from(state)


def available_actions(state: Union[str, TrialStatus], role: Union[str, RoleName, None]) -> List[str]:
    """
    UI actions for a record in `state` viewed by `role`, derived from TRANSITIONS only.

    - contact: the record is not terminal
    - edit: the role may fire at least one event from this state
    - payment_link / follow_up / reschedule: the role may fire that event
    - status_change: the role may fire a status-only event through the generic endpoint
    """
    outgoing = transitions_from(state)
    role_name = _as_role(role)
    permitted = {t.event for t in outgoing if role_name in t.roles}

    actions = []
    if outgoing:
        actions.append("contact")
    if permitted:
        actions.append("edit")
    if permitted - set(DEDICATED_ENDPOINTS):
        actions.append("status_change")
    for action, event in _ACTION_EVENTS.items():
        if event in permitted:
            actions.append(action)
    return [a for a in ACTIONS if a in actions]


@dataclass
class Subject:
    """A student or family together with every row a transition touches."""

    id: str
    kind: str
    status: str
    family: Optional[FamilyGroup] = None
    student: Optional[Student] = None
    students: List[Student] = field(default_factory=list)
    bookings: List[TrialBooking] = field(default_factory=list)

    @property
    def is_family(self) -> bool:
        return self.kind == SUBJECT_FAMILY


class LifecycleService(BaseService):
    """Applies TRANSITIONS to students and families and keeps their history."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.family_repository = RepositoryFactory.create_family_repository(db)
        self.booking_repository = RepositoryFactory.create_trial_booking_repository(db)
        self.selection_repository = RepositoryFactory.create_family_selection_repository(db)
        self.history_repository = RepositoryFactory.create_status_change_repository(db)
        self._guards: Dict[str, Callable[[Subject, Mapping[str, Any]], bool]] = {
            GUARD_TRIAL_SESSION: self._has_trial_session,
            GUARD_PACKAGE_CURRENCY: self._has_package_and_currency,
            GUARD_PAYMENT_REFERENCE: self._has_payment_reference,
            GUARD_SESSIONS_SCHEDULED: self._has_sessions_scheduled,
        }

    # Subjects

    def family_subject(self, family: FamilyGroup) -> Subject:
        students = self.family_repository.list_students(family.id)
        return Subject(
            id=family.id,
            kind=SUBJECT_FAMILY,
            status=family.status,
            family=family,
            students=students,
            bookings=self.booking_repository.list_for_family(family.id),
        )

    def student_subject(self, student: Student) -> Subject:
        return Subject(
            id=student.id,
            kind=SUBJECT_STUDENT,
            status=student.status,
            student=student,
            students=[student],
            bookings=self.booking_repository.list_for_student(student.id),
        )

    def resolve_subject(self, subject_id: str) -> Subject:
        """
        Family id -> the family. Student id -> the student, or their family if
        they were booked as part of one.
        """
        family = self.family_repository.get_by_id(subject_id, load_relationships=False)
        if family is not None:
            return self.family_subject(family)
        student = self.family_repository.get_student(subject_id)
        if student is None:
            raise NotFoundException(f"No student or family with id {subject_id}", code="SUBJECT_NOT_FOUND")
        if student.family_group_id:
            family = self.family_repository.get_by_id(student.family_group_id, load_relationships=False)
            if family is not None:
                return self.family_subject(family)
        return self.student_subject(student)

    def get_status(self, subject_id: str) -> str:
        return self.resolve_subject(subject_id).status

    def history(self, subject_id: str):
        return self.history_repository.history(self.resolve_subject(subject_id).id)

    # Guards

    def _has_trial_session(self, subject: Subject, payload: Mapping[str, Any]) -> bool:
        return bool(subject.bookings) and all(b.has_session for b in subject.bookings)

    def _has_package_and_currency(self, subject: Subject, payload: Mapping[str, Any]) -> bool:
        if subject.is_family:
            if not subject.family or not subject.family.currency:
                return False
            selected = {s.student_id for s in self.selection_repository.list_for_family(subject.id)}
            return bool(subject.students) and all(s.id in selected for s in subject.students)
        return bool(payload.get("package_id")) and bool(payload.get("currency"))

    def _has_payment_reference(self, subject: Subject, payload: Mapping[str, Any]) -> bool:
        reference = payload.get("payment_reference")
        return isinstance(reference, str) and bool(reference.strip())

    def _has_sessions_scheduled(self, subject: Subject, payload: Mapping[str, Any]) -> bool:
        return payload.get("all_sessions_scheduled") is True

    # Transitions

    def check(
        self,
        subject: Subject,
        event: Union[str, LifecycleEvent],
        payload: Optional[Mapping[str, Any]] = None,
        actor: Optional[Principal] = None,
    ) -> Transition:
        """
        Validate a transition without touching any row.

        Raises:
            InvalidTransitionException: (state, event) is not in the table
            ForbiddenException: The actor's role may not fire this event
            GuardFailedException: The transition's precondition is not met
        """
        event_value = event.value if isinstance(event, LifecycleEvent) else str(event)
        transition = lookup(subject.status, event_value)
        if transition is None:
            raise InvalidTransitionException(subject.id, subject.status, event_value)

        role = actor.role if actor is not None else None
        if actor is not None and actor.principal_type == "user" and role not in transition.roles:
            raise ForbiddenException(
                f"Role '{role.value if role else None}' may not apply '{event_value}'",
                code="TRANSITION_FORBIDDEN",
                details={
                    "current_state": subject.status,
                    "attempted_event": event_value,
                    "allowed_roles": sorted(r.value for r in transition.roles),
                },
            )

        if transition.guard and not self._guards[transition.guard](subject, payload or {}):
            raise GuardFailedException(subject.status, event_value, transition.requirement or transition.guard)
        return transition

    def apply(
        self,
        subject: Subject,
        event: Union[str, LifecycleEvent],
        payload: Optional[Mapping[str, Any]] = None,
        actor: Optional[Principal] = None,
        note: Optional[str] = None,
    ) -> Transition:
        """Check then write the new status to every row of the subject. Does not commit."""
        try:
            transition = self.check(subject, event, payload, actor)
        except (InvalidTransitionException, ForbiddenException, GuardFailedException) as exc:
            prometheus_metrics.record_transition(str(getattr(event, "value", event)), exc.code)
            raise

        from_status = subject.status
        self._write_status(subject, transition.target.value)
        self.history_repository.create(
            subject_id=subject.id,
            subject_type=subject.kind,
            from_status=from_status,
            to_status=transition.target.value,
            event=transition.event.value,
            actor_id=actor.id if actor is not None else None,
            note=note,
            occurred_at=self.now(),
        )
        prometheus_metrics.record_transition(transition.event.value, "applied")
        self.log_operation(
            "transition",
            subject_id=subject.id,
            subject_type=subject.kind,
            from_status=from_status,
            to_status=transition.target.value,
            event=transition.event.value,
        )
        return transition

    def record_initial(self, subject: Subject, actor: Optional[Principal] = None) -> None:
        """History row for a freshly booked subject. Does not commit."""
        self._write_status(subject, INITIAL_STATUS.value)
        self.history_repository.create(
            subject_id=subject.id,
            subject_type=subject.kind,
            from_status=None,
            to_status=INITIAL_STATUS.value,
            event="booked",
            actor_id=actor.id if actor is not None else None,
            occurred_at=self.now(),
        )

    def _write_status(self, subject: Subject, status: str) -> None:
        now = self.now()
        if subject.family is not None:
            subject.family.status = status
            subject.family.updated_at = now
        for student in subject.students:
            student.status = status
            student.updated_at = now
        self.booking_repository.set_status(subject.bookings, status, now)
        subject.status = status

    @BaseService.measure_operation("attempt_transition")
    def attempt_transition(
        self,
        subject_id: str,
        event: Union[str, LifecycleEvent],
        payload: Optional[Mapping[str, Any]] = None,
        actor: Optional[Principal] = None,
        note: Optional[str] = None,
    ) -> Subject:
        """
        Apply an event that only changes status.

        Raises:
            DedicatedEndpointRequiredException: The event belongs to the booking,
                follow-up or payment flow
        """
        subject = self.resolve_subject(subject_id)
        event_value = event.value if isinstance(event, LifecycleEvent) else str(event)
        owned = _as_event(event_value)
        if owned in DEDICATED_ENDPOINTS and lookup(subject.status, owned) is not None:
            raise DedicatedEndpointRequiredException(
                subject.id, subject.status, event_value, DEDICATED_ENDPOINTS[owned]
            )
        with self.transaction():
            self.apply(subject, event, payload, actor, note)
        return subject
