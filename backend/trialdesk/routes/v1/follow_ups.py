# backend/trialdesk/routes/v1/follow_ups.py
"""
Follow-up API Routes - API v1

Endpoints:
    POST /                      → Schedule a follow-up for a student or family
    GET /due                    → Open follow-ups due now, oldest first
    PATCH /{follow_up_id}       → Move an open follow-up
    POST /{follow_up_id}/complete → Record the outcome
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import get_actor
from ...api.dependencies.services import get_follow_up_service
from ...core.exceptions import DomainException
from ...principal import ActorPrincipal
from ...schemas.follow_up import FollowUpComplete, FollowUpCreate, FollowUpOut, FollowUpReschedule
from ...services.follow_up_service import FollowUpService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["follow-ups-v1"])

# Static routes first (before dynamic routes with path parameters)


@router.get("/due", response_model=List[FollowUpOut])
async def list_due_follow_ups(
    limit: int = Query(200, ge=1, le=1000),
    follow_up_service: FollowUpService = Depends(get_follow_up_service),
) -> List[FollowUpOut]:
    follow_ups = await asyncio.to_thread(follow_up_service.list_due, None, limit)
    return [FollowUpOut.model_validate(f) for f in follow_ups]


@router.post("", response_model=FollowUpOut, status_code=status.HTTP_201_CREATED)
async def schedule_follow_up(
    payload: FollowUpCreate,
    actor: ActorPrincipal = Depends(get_actor),
    follow_up_service: FollowUpService = Depends(get_follow_up_service),
) -> FollowUpOut:
    try:
        follow_up = await asyncio.to_thread(
            follow_up_service.schedule,
            payload.subject_id,
            payload.scheduled_at_utc,
            payload.reason,
            payload.notes,
            actor,
        )
        return FollowUpOut.model_validate(follow_up)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{follow_up_id}", response_model=FollowUpOut)
async def reschedule_follow_up(
    follow_up_id: str,
    payload: FollowUpReschedule,
    actor: ActorPrincipal = Depends(get_actor),
    follow_up_service: FollowUpService = Depends(get_follow_up_service),
) -> FollowUpOut:
    try:
        follow_up = await asyncio.to_thread(
            follow_up_service.reschedule, follow_up_id, payload.scheduled_at_utc
        )
        return FollowUpOut.model_validate(follow_up)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{follow_up_id}/complete", response_model=FollowUpOut)
async def complete_follow_up(
    follow_up_id: str,
    payload: FollowUpComplete,
    actor: ActorPrincipal = Depends(get_actor),
    follow_up_service: FollowUpService = Depends(get_follow_up_service),
) -> FollowUpOut:
    try:
        follow_up = await asyncio.to_thread(
            follow_up_service.complete, follow_up_id, payload.outcome, payload.notes, actor
        )
        return FollowUpOut.model_validate(follow_up)
    except DomainException as e:
        handle_domain_exception(e)
