"""
Payment-link collaborator.

The engine decides that a link is needed and for what amount and currency;
creating the hosted checkout is the provider's job. Providers implement
PaymentLinkClient. NullPaymentLinkClient is used when none is configured.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, runtime_checkable

import ulid


@dataclass(frozen=True)
class PaymentLinkRequest:
    amount: Decimal
    currency: str
    description: str
    student_ids: List[str]
    family_group_id: Optional[str] = None
    package_id: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentLinkResult:
    reference: str
    url: Optional[str] = None


@runtime_checkable
class PaymentLinkClient(Protocol):
    def create_payment_link(self, request: PaymentLinkRequest) -> PaymentLinkResult:
        ...


class NullPaymentLinkClient:
    """No-op payment client used when no provider is configured."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        self._label = "null-payments"

    def create_payment_link(self, request: PaymentLinkRequest) -> PaymentLinkResult:
        return PaymentLinkResult(reference=f"null_{ulid.ULID()}", url=None)
