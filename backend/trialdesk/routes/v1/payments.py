# backend/trialdesk/routes/v1/payments.py
"""
Payment API Routes - API v1

Families pay once for all of their students; individual students get a
link for a single package.

Endpoints:
    POST /families/{family_id}/currency                 → Lock the family currency
    PUT /families/{family_id}/selections/{student_id}   → Choose a student's package
    GET /families/{family_id}/total                     → Sum of selected packages
    GET /families/{family_id}/validation                → Which students still need a package
    POST /families/{family_id}/payment-link             → One link for the whole family
    POST /students/{student_id}/payment-link            → Link for an individual student
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, status

from ...api.dependencies.auth import get_actor
from ...api.dependencies.services import get_family_payment_service
from ...core.exceptions import DomainException
from ...models.payment import PaymentLinkRecord
from ...principal import ActorPrincipal
from ...schemas.payment import (
    CurrencyRequest,
    FamilyCurrencyResponse,
    FamilyTotalResponse,
    FamilyValidationResponse,
    IndividualPaymentLinkRequest,
    PaymentLinkResponse,
    SelectionOut,
    SelectionRequest,
)
from ...services.family_payment_service import FamilyPaymentService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments-v1"])


def _link_response(record: PaymentLinkRecord, subject_status: str) -> PaymentLinkResponse:
    return PaymentLinkResponse(
        id=record.id,
        external_reference=record.external_reference,
        url=record.url,
        amount=record.amount,
        currency=record.currency,
        student_ids=list(record.student_ids or []),
        family_group_id=record.family_group_id,
        package_id=record.package_id,
        status=record.status,
        subject_status=subject_status,
    )


@router.post("/families/{family_id}/currency", response_model=FamilyCurrencyResponse)
async def select_currency(
    family_id: str,
    payload: CurrencyRequest,
    actor: ActorPrincipal = Depends(get_actor),
    payment_service: FamilyPaymentService = Depends(get_family_payment_service),
) -> FamilyCurrencyResponse:
    try:
        family = await asyncio.to_thread(payment_service.select_currency, family_id, payload.currency)
        return FamilyCurrencyResponse(
            family_group_id=family.id,
            currency=family.currency,
            currency_locked_at=family.currency_locked_at,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/families/{family_id}/selections/{student_id}", response_model=SelectionOut)
async def upsert_selection(
    family_id: str,
    student_id: str,
    payload: SelectionRequest,
    actor: ActorPrincipal = Depends(get_actor),
    payment_service: FamilyPaymentService = Depends(get_family_payment_service),
) -> SelectionOut:
    try:
        selection = await asyncio.to_thread(
            payment_service.upsert_selection,
            family_id,
            student_id,
            payload.package_id,
            payload.custom_price,
        )
        return SelectionOut.model_validate(selection)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/families/{family_id}/total", response_model=FamilyTotalResponse)
async def get_family_total(
    family_id: str,
    payment_service: FamilyPaymentService = Depends(get_family_payment_service),
) -> FamilyTotalResponse:
    try:
        family = await asyncio.to_thread(payment_service.get_family, family_id)
        selections = await asyncio.to_thread(payment_service.list_selections, family_id)
        total = await asyncio.to_thread(payment_service.total, family_id)
        return FamilyTotalResponse(
            family_group_id=family.id,
            currency=family.currency,
            total=total,
            selection_count=len(selections),
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/families/{family_id}/validation", response_model=FamilyValidationResponse)
async def validate_family(
    family_id: str,
    payment_service: FamilyPaymentService = Depends(get_family_payment_service),
) -> FamilyValidationResponse:
    try:
        return await asyncio.to_thread(payment_service.validate, family_id)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/families/{family_id}/payment-link",
    response_model=PaymentLinkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_family_payment_link(
    family_id: str,
    actor: ActorPrincipal = Depends(get_actor),
    payment_service: FamilyPaymentService = Depends(get_family_payment_service),
) -> PaymentLinkResponse:
    try:
        record = await asyncio.to_thread(payment_service.request_payment_link, family_id, actor)
        subject_status = await asyncio.to_thread(payment_service.lifecycle.get_status, family_id)
        return _link_response(record, subject_status)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/students/{student_id}/payment-link",
    response_model=PaymentLinkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_individual_payment_link(
    student_id: str,
    payload: IndividualPaymentLinkRequest,
    actor: ActorPrincipal = Depends(get_actor),
    payment_service: FamilyPaymentService = Depends(get_family_payment_service),
) -> PaymentLinkResponse:
    try:
        record = await asyncio.to_thread(
            payment_service.request_individual_payment_link,
            student_id,
            payload.package_id,
            payload.currency,
            payload.custom_price,
            actor,
        )
        subject_status = await asyncio.to_thread(payment_service.lifecycle.get_status, student_id)
        return _link_response(record, subject_status)
    except DomainException as e:
        handle_domain_exception(e)
