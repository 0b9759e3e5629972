"""Principal abstractions for callers of the booking engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Protocol, runtime_checkable

from .core.enums import RoleName


@runtime_checkable
class Principal(Protocol):
    """Represents the entity making a request. Issued by an external identity provider."""

    @property
    def id(self) -> str:
        """Unique identifier for audit trails."""
        ...

    @property
    def role(self) -> Optional[RoleName]:
        """Staff role, or None for internal callers."""
        ...

    @property
    def principal_type(self) -> Literal["user", "system"]:
        ...


@dataclass(frozen=True)
class ActorPrincipal:
    """A staff member acting through the console."""

    actor_id: str
    actor_role: RoleName

    @property
    def id(self) -> str:
        return self.actor_id

    @property
    def role(self) -> Optional[RoleName]:
        return self.actor_role

    @property
    def principal_type(self) -> Literal["user", "system"]:
        return "user"


@dataclass(frozen=True)
class SystemPrincipal:
    """Internal caller (scheduled jobs, payment webhooks). Not subject to role checks."""

    name: str = "system"

    @property
    def id(self) -> str:
        return self.name

    @property
    def role(self) -> Optional[RoleName]:
        return None

    @property
    def principal_type(self) -> Literal["user", "system"]:
        return "system"
