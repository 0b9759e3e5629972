# backend/trialdesk/routes/v1/availability.py
"""
Availability API Routes - API v1

Endpoints:
    GET /search              → Teachers free at a client-local hour, grouped by slot
    POST /slots              → Open half-hour slots for a teacher
    DELETE /slots/{slot_id}  → Close an open slot
"""

import asyncio
from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ...api.dependencies.auth import get_actor
from ...api.dependencies.services import get_availability_service, get_slot_search_service
from ...core.enums import TeacherType
from ...core.exceptions import DomainException
from ...principal import ActorPrincipal
from ...schemas.availability import AvailabilitySlotResponse, OpenSlotsRequest, SlotSearchResponse
from ...services.availability_service import AvailabilityService
from ...services.slot_search_service import SlotSearchService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["availability-v1"])


@router.get("/search", response_model=SlotSearchResponse)
async def search_slots(
    requested_date: date = Query(..., alias="date"),
    client_timezone: str = Query(..., description="IANA zone or alias such as 'uae'"),
    teacher_type: str = Query(TeacherType.MIXED.value),
    hour: Optional[float] = Query(None, ge=0, lt=24, description="Client-local hour, e.g. 18.5"),
    start_hour: Optional[float] = Query(None, ge=0, lt=24),
    end_hour: Optional[float] = Query(None, gt=0, le=24),
    search_service: SlotSearchService = Depends(get_slot_search_service),
) -> SlotSearchResponse:
    """
    Search open trial slots.

    An empty `groups` list means no teacher is free; it is not an error.
    """
    try:
        groups = await asyncio.to_thread(
            search_service.search_availability,
            requested_date,
            client_timezone,
            teacher_type,
            hour,
            start_hour,
            end_hour,
        )
        return SlotSearchResponse(
            requested_date=requested_date,
            client_timezone=client_timezone,
            teacher_type=teacher_type,
            groups=groups,
            total_groups=len(groups),
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/slots",
    response_model=List[AvailabilitySlotResponse],
    status_code=status.HTTP_201_CREATED,
)
async def open_slots(
    payload: OpenSlotsRequest,
    actor: ActorPrincipal = Depends(get_actor),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilitySlotResponse]:
    try:
        slots = await asyncio.to_thread(
            availability_service.open_slots,
            payload.teacher_id,
            payload.local_date,
            payload.hours,
            payload.timezone,
        )
        logger.info(
            "Slots opened",
            extra={"teacher_id": payload.teacher_id, "count": len(slots), "actor_id": actor.id},
        )
        return [AvailabilitySlotResponse.model_validate(slot) for slot in slots]
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def close_slot(
    slot_id: str,
    actor: ActorPrincipal = Depends(get_actor),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> Response:
    try:
        await asyncio.to_thread(availability_service.close_slot, slot_id)
        logger.info("Slot closed", extra={"slot_id": slot_id, "actor_id": actor.id})
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)
