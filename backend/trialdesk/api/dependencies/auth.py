# backend/trialdesk/api/dependencies/auth.py
"""
Caller identity dependencies.

Authentication happens upstream; the identity provider forwards the staff
member as two headers. They are parsed into an ActorPrincipal and nothing
else about the caller is trusted or stored.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from ...core.enums import RoleName
from ...principal import ActorPrincipal

logger = logging.getLogger(__name__)

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


def _parse_role(raw: str) -> RoleName:
    try:
        return RoleName(raw.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": f"Unknown actor role '{raw}'",
                "code": "INVALID_ACTOR_ROLE",
                "details": {"allowed": [r.value for r in RoleName]},
            },
        )


def get_optional_actor(
    x_actor_id: Optional[str] = Header(default=None, alias=ACTOR_ID_HEADER),
    x_actor_role: Optional[str] = Header(default=None, alias=ACTOR_ROLE_HEADER),
) -> Optional[ActorPrincipal]:
    """Actor from the identity headers, or None when they are absent."""
    if not x_actor_id or not x_actor_id.strip():
        return None
    if not x_actor_role or not x_actor_role.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": f"{ACTOR_ROLE_HEADER} is required with {ACTOR_ID_HEADER}",
                "code": "MISSING_ACTOR_ROLE",
            },
        )
    return ActorPrincipal(actor_id=x_actor_id.strip(), actor_role=_parse_role(x_actor_role))


def get_actor(
    x_actor_id: Optional[str] = Header(default=None, alias=ACTOR_ID_HEADER),
    x_actor_role: Optional[str] = Header(default=None, alias=ACTOR_ROLE_HEADER),
) -> ActorPrincipal:
    """Require an acting staff member."""
    actor = get_optional_actor(x_actor_id, x_actor_role)
    if actor is None:
        logger.info("Request rejected without actor headers")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Actor identity headers are required", "code": "MISSING_ACTOR"},
        )
    return actor
