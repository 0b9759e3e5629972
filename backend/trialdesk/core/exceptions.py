# backend/trialdesk/core/exceptions.py
"""
Domain-specific exceptions for the trial booking engine.

These exceptions carry business-focused messages plus structured details
(current state, attempted event, conflicting ids) so the API layer can
render a precise explanation instead of a generic failure.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when the acting principal may not perform an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""


# Timezone errors (user-correctable at search time)


class InvalidTimezoneException(ValidationException):
    def __init__(self, zone_id: Optional[str]):
        super().__init__(
            message=f"Unknown timezone: {zone_id!r}",
            code="INVALID_TIMEZONE",
            details={"zone_id": zone_id},
        )


class AmbiguousLocalTimeException(ValidationException):
    """A local wall-clock time falls in a DST gap or overlap."""

    def __init__(self, local_date: Any, local_time: str, zone_id: str, reason: str):
        super().__init__(
            message=(
                f"The time {local_time} on {local_date} in {zone_id} is {reason} "
                "due to Daylight Saving Time. Please select a different time."
            ),
            code="AMBIGUOUS_LOCAL_TIME",
            details={
                "date": str(local_date),
                "time": local_time,
                "zone_id": zone_id,
                "reason": reason,
            },
        )


# Slot races


class AlreadyBookedException(ConflictException):
    """A reserve call lost the compare-and-set for a slot."""

    def __init__(self, teacher_id: str, start_utc: datetime):
        super().__init__(
            message="This slot has already been booked",
            code="ALREADY_BOOKED",
            details={"teacher_id": teacher_id, "start_utc": start_utc.isoformat()},
        )


class SlotLockedException(ConflictException):
    """The slot is dated today in the teacher's reference timezone."""

    def __init__(self, teacher_id: str, slot_date: Any, reference_zone: str):
        super().__init__(
            message="Same-day availability is locked and cannot be changed",
            code="SLOT_LOCKED",
            details={
                "teacher_id": teacher_id,
                "slot_date": str(slot_date),
                "reference_zone": reference_zone,
            },
        )


class NoSlotAvailableException(ConflictException):
    """Every candidate of a slot group failed to reserve."""

    def __init__(self, start_utc: datetime, attempted_teacher_ids: List[str]):
        super().__init__(
            message="No teacher is available for this slot",
            code="NO_SLOT_AVAILABLE",
            details={
                "start_utc": start_utc.isoformat(),
                "attempted_teacher_ids": attempted_teacher_ids,
            },
        )


class SlotNoLongerAvailableException(ConflictException):
    """The slot was taken between search and booking; the caller must re-search."""

    def __init__(
        self,
        start_utc: datetime,
        teacher_ids: Optional[List[str]] = None,
        message: Optional[str] = None,
    ):
        super().__init__(
            message=message or "This slot is no longer available. Please search again.",
            code="SLOT_NO_LONGER_AVAILABLE",
            details={
                "start_utc": start_utc.isoformat(),
                "teacher_ids": teacher_ids or [],
            },
        )


# Lifecycle


class InvalidTransitionException(ConflictException):
    def __init__(self, subject_id: Optional[str], current_state: str, attempted_event: str):
        super().__init__(
            message=f"Cannot apply '{attempted_event}' while status is '{current_state}'",
            code="INVALID_TRANSITION",
            details={
                "subject_id": subject_id,
                "current_state": current_state,
                "attempted_event": attempted_event,
            },
        )


class GuardFailedException(BusinessRuleException):
    def __init__(self, current_state: str, attempted_event: str, requirement: str):
        super().__init__(
            message=f"'{attempted_event}' requires: {requirement}",
            code="TRANSITION_GUARD_FAILED",
            details={
                "current_state": current_state,
                "attempted_event": attempted_event,
                "requirement": requirement,
            },
        )


class DedicatedEndpointRequiredException(BusinessRuleException):
    def __init__(self, subject_id: Optional[str], current_state: str, attempted_event: str, endpoint: str):
        super().__init__(
            message=f"'{attempted_event}' has side effects; use {endpoint}",
            code="USE_DEDICATED_ENDPOINT",
            details={
                "subject_id": subject_id,
                "current_state": current_state,
                "attempted_event": attempted_event,
                "endpoint": endpoint,
            },
        )


# Family payments


class CurrencyAlreadyLockedException(ConflictException):
    def __init__(self, family_id: str, locked_currency: str, requested_currency: str):
        super().__init__(
            message=(
                f"Family currency is locked to {locked_currency}; cannot switch to "
                f"{requested_currency}"
            ),
            code="CURRENCY_ALREADY_LOCKED",
            details={
                "family_group_id": family_id,
                "locked_currency": locked_currency,
                "requested_currency": requested_currency,
            },
        )


class IncompleteFamilySelectionException(BusinessRuleException):
    def __init__(self, family_id: str, missing_student_ids: List[str]):
        super().__init__(
            message=f"{len(missing_student_ids)} student(s) still need a package selection",
            code="INCOMPLETE_FAMILY_SELECTION",
            details={
                "family_group_id": family_id,
                "missing_student_ids": missing_student_ids,
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
