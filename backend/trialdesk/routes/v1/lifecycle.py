# backend/trialdesk/routes/v1/lifecycle.py
"""
Lifecycle API Routes - API v1

Endpoints:
    GET /{subject_id}               → Current status, permitted actions and history
    POST /{subject_id}/transitions  → Apply a lifecycle event
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from ...api.dependencies.auth import get_actor, get_optional_actor
from ...api.dependencies.services import get_lifecycle_service
from ...core.exceptions import DomainException
from ...principal import ActorPrincipal
from ...schemas.lifecycle import LifecycleStateResponse, StatusChangeOut, TransitionRequest
from ...services.status_lifecycle import LifecycleService, Subject, available_actions
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["lifecycle-v1"])


def _state_response(
    service: LifecycleService, subject: Subject, actor: Optional[ActorPrincipal]
) -> LifecycleStateResponse:
    return LifecycleStateResponse(
        subject_id=subject.id,
        subject_type=subject.kind,
        status=subject.status,
        available_actions=available_actions(subject.status, actor.role if actor else None),
        history=[StatusChangeOut.model_validate(row) for row in service.history(subject.id)],
    )


@router.get("/{subject_id}", response_model=LifecycleStateResponse)
async def get_lifecycle(
    subject_id: str,
    actor: Optional[ActorPrincipal] = Depends(get_optional_actor),
    lifecycle_service: LifecycleService = Depends(get_lifecycle_service),
) -> LifecycleStateResponse:
    """
    Status of a student or family.

    A student booked with siblings reports the family's status. Without
    actor headers no actions are offered.
    """
    try:
        subject = await asyncio.to_thread(lifecycle_service.resolve_subject, subject_id)
        return await asyncio.to_thread(_state_response, lifecycle_service, subject, actor)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{subject_id}/transitions", response_model=LifecycleStateResponse)
async def apply_transition(
    subject_id: str,
    payload: TransitionRequest,
    actor: ActorPrincipal = Depends(get_actor),
    lifecycle_service: LifecycleService = Depends(get_lifecycle_service),
) -> LifecycleStateResponse:
    try:
        subject = await asyncio.to_thread(
            lifecycle_service.attempt_transition,
            subject_id,
            payload.event,
            payload.payload,
            actor,
            payload.note,
        )
        return await asyncio.to_thread(_state_response, lifecycle_service, subject, actor)
    except DomainException as e:
        handle_domain_exception(e)
