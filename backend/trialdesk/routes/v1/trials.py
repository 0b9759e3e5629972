# backend/trialdesk/routes/v1/trials.py
"""
Trial Booking API Routes - API v1

Endpoints:
    POST /                          → Book a trial for one student or a family
    POST /{subject_id}/reschedule   → Move a trial to another slot
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, status

from ...api.dependencies.auth import get_actor
from ...api.dependencies.services import get_booking_service
from ...core.exceptions import DomainException
from ...principal import ActorPrincipal
from ...schemas.booking import BookingRequest, BookingResult, RescheduleRequest
from ...services.booking_service import BookingService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["trials-v1"])


@router.post("", response_model=BookingResult, status_code=status.HTTP_201_CREATED)
async def book_trial(
    payload: BookingRequest,
    actor: ActorPrincipal = Depends(get_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResult:
    """
    Book a trial.

    The request carries the slot the agent picked from search. A 409 with
    code SLOT_NO_LONGER_AVAILABLE means every teacher in that group was
    taken in the meantime; search again.
    """
    try:
        return await asyncio.to_thread(booking_service.book, payload, actor)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{subject_id}/reschedule", response_model=BookingResult)
async def reschedule_trial(
    subject_id: str,
    payload: RescheduleRequest,
    actor: ActorPrincipal = Depends(get_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResult:
    try:
        return await asyncio.to_thread(booking_service.reschedule, subject_id, payload, actor)
    except DomainException as e:
        handle_domain_exception(e)
