# backend/trialdesk/schemas/payment.py
"""
Family payment aggregation schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from .base import Money, StandardizedModel, StrictRequestModel


class CurrencyRequest(StrictRequestModel):
    currency: str = Field(..., min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return value.upper()


class SelectionRequest(StrictRequestModel):
    package_id: str
    custom_price: Optional[Money] = None


class SelectionOut(StandardizedModel):
    family_group_id: str
    student_id: str
    package_id: str
    custom_price: Optional[Money] = None
    use_custom_price: bool
    currency: str
    effective_price: Money


class FamilyCurrencyResponse(StandardizedModel):
    family_group_id: str
    currency: str
    currency_locked_at: datetime


class FamilyTotalResponse(StandardizedModel):
    family_group_id: str
    currency: Optional[str] = None
    total: Money
    selection_count: int


class FamilyValidationResponse(StandardizedModel):
    is_complete: bool
    missing_count: int
    total_count: int
    missing_student_ids: List[str]


class IndividualPaymentLinkRequest(StrictRequestModel):
    package_id: str
    currency: str = Field(..., min_length=3, max_length=3)
    custom_price: Optional[Money] = None

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return value.upper()


class PaymentLinkResponse(StandardizedModel):
    id: str
    external_reference: str
    url: Optional[str] = None
    amount: Money
    currency: str
    student_ids: List[str]
    family_group_id: Optional[str] = None
    package_id: Optional[str] = None
    status: str
    subject_status: str
