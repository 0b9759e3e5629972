# backend/trialdesk/services/family_payment_service.py
"""
Family Payment Service.

A family pays once for all of its students. The flow is:

1. lock a currency for the family (once; re-selecting the same code is a no-op)
2. pick a package per student, optionally with a negotiated custom price
3. validate that every student has a selection
4. request one payment link for the summed amount, which moves the family to
   awaiting-payment

Package prices are currency-neutral numbers, so totals never convert
currencies; they are plain Decimal sums and independent of selection order.
Individual students skip the aggregation and go straight to a link for one
package.
"""

from decimal import Decimal
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import LifecycleEvent, TrialStatus
from ..core.exceptions import (
    BusinessRuleException,
    CurrencyAlreadyLockedException,
    IncompleteFamilySelectionException,
    NotFoundException,
    ValidationException,
)
from ..integrations.payment_link_client import (
    NullPaymentLinkClient,
    PaymentLinkClient,
    PaymentLinkRequest,
)
from ..models.payment import FamilyPackageSelection, Package, PaymentLinkRecord
from ..models.student import FamilyGroup
from ..principal import Principal
from ..repositories.factory import RepositoryFactory
from ..schemas.payment import FamilyValidationResponse
from .base import BaseService, Clock
from .status_lifecycle import LifecycleService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# Statuses after which the family's selections are frozen
_SELECTION_FROZEN = frozenset(
    {TrialStatus.AWAITING_PAYMENT.value, TrialStatus.PAID.value, TrialStatus.ACTIVE.value}
)


class FamilyPaymentService(BaseService):
    def __init__(
        self,
        db: Session,
        payment_client: Optional[PaymentLinkClient] = None,
        clock: Optional[Clock] = None,
        lifecycle_service: Optional[LifecycleService] = None,
    ):
        super().__init__(db, clock)
        self.payment_client = payment_client or NullPaymentLinkClient()
        self.lifecycle = lifecycle_service or LifecycleService(db, clock)
        self.family_repository = RepositoryFactory.create_family_repository(db)
        self.package_repository = RepositoryFactory.create_package_repository(db)
        self.selection_repository = RepositoryFactory.create_family_selection_repository(db)
        self.payment_link_repository = RepositoryFactory.create_payment_link_repository(db)

    # Lookups

    def get_family(self, family_id: str) -> FamilyGroup:
        family = self.family_repository.get_by_id(family_id, load_relationships=False)
        if family is None:
            raise NotFoundException(f"Family group {family_id} not found", code="FAMILY_NOT_FOUND")
        return family

    def _get_active_package(self, package_id: str) -> Package:
        package = self.package_repository.get_active(package_id)
        if package is None:
            raise NotFoundException(f"Package {package_id} not found or inactive", code="PACKAGE_NOT_FOUND")
        return package

    @staticmethod
    def _validated_currency(code: str) -> str:
        normalized = (code or "").strip().upper()
        if normalized not in settings.enabled_currencies:
            raise ValidationException(
                f"Currency {code!r} is not enabled",
                code="CURRENCY_NOT_ENABLED",
                details={"currency": code, "enabled": list(settings.enabled_currencies)},
            )
        return normalized

    # Currency

    @BaseService.measure_operation("select_currency")
    def select_currency(self, family_id: str, code: str) -> FamilyGroup:
        """
        Lock the family's currency.

        Raises:
            ValidationException: The code is not an enabled currency
            CurrencyAlreadyLockedException: A different currency is already locked
        """
        currency = self._validated_currency(code)
        family = self.get_family(family_id)
        if family.currency:
            if family.currency == currency:
                return family
            raise CurrencyAlreadyLockedException(family.id, family.currency, currency)

        with self.transaction():
            family.currency = currency
            family.currency_locked_at = self.now()
            self.family_repository.flush()

        self.log_operation("select_currency", family_group_id=family.id, currency=currency)
        return family

    # Selections

    @BaseService.measure_operation("upsert_selection")
    def upsert_selection(
        self,
        family_id: str,
        student_id: str,
        package_id: str,
        custom_price: Optional[Decimal] = None,
    ) -> FamilyPackageSelection:
        family = self.get_family(family_id)
        if not family.currency:
            raise BusinessRuleException(
                "Select the family currency before choosing packages",
                code="CURRENCY_NOT_SELECTED",
                details={"family_group_id": family.id},
            )
        if family.status in _SELECTION_FROZEN:
            raise BusinessRuleException(
                "Package selections are locked once a payment link has been requested",
                code="SELECTION_LOCKED",
                details={"family_group_id": family.id, "status": family.status},
            )
        student = self.family_repository.get_student(student_id)
        if student is None or student.family_group_id != family.id:
            raise ValidationException(
                f"Student {student_id} is not a member of family {family.id}",
                code="STUDENT_NOT_IN_FAMILY",
                details={"family_group_id": family.id, "student_id": student_id},
            )
        if custom_price is not None and custom_price < 0:
            raise ValidationException("Custom price cannot be negative", code="INVALID_PRICE")
        self._get_active_package(package_id)

        with self.transaction():
            selection = self.selection_repository.get_selection(family.id, student.id)
            if selection is None:
                selection = self.selection_repository.create(
                    family_group_id=family.id,
                    student_id=student.id,
                    package_id=package_id,
                    custom_price=custom_price,
                    use_custom_price=custom_price is not None,
                    currency=family.currency,
                )
            else:
                selection.package_id = package_id
                selection.custom_price = custom_price
                selection.use_custom_price = custom_price is not None
                selection.currency = family.currency
                selection.updated_at = self.now()
                self.selection_repository.flush()
                self.db.refresh(selection, attribute_names=["package"])

        self.log_operation(
            "upsert_selection",
            family_group_id=family.id,
            student_id=student.id,
            package_id=package_id,
            custom_price=str(custom_price) if custom_price is not None else None,
        )
        return selection

    def list_selections(self, family_id: str) -> List[FamilyPackageSelection]:
        return self.selection_repository.list_for_family(self.get_family(family_id).id)

    def total(self, family_id: str) -> Decimal:
        """Sum of effective prices; custom price wins where use_custom_price is set."""
        selections = self.list_selections(family_id)
        total = sum((Decimal(s.effective_price) for s in selections), Decimal("0"))
        return total.quantize(CENTS)

    def validate(self, family_id: str) -> FamilyValidationResponse:
        family = self.get_family(family_id)
        students = self.family_repository.list_students(family.id)
        selected = {s.student_id for s in self.selection_repository.list_for_family(family.id)}
        missing = [s.id for s in students if s.id not in selected]
        return FamilyValidationResponse(
            is_complete=bool(students) and not missing,
            missing_count=len(missing),
            total_count=len(students),
            missing_student_ids=missing,
        )

    # Payment links

    @BaseService.measure_operation("request_payment_link")
    def request_payment_link(
        self, family_id: str, actor: Optional[Principal] = None
    ) -> PaymentLinkRecord:
        """
        One link for the whole family.

        Raises:
            InvalidTransitionException: The family's status does not allow a payment link
            IncompleteFamilySelectionException: Some students have no package yet
        """
        family = self.get_family(family_id)
        validation = self.validate(family.id)
        if not validation.is_complete:
            raise IncompleteFamilySelectionException(family.id, validation.missing_student_ids)

        subject = self.lifecycle.family_subject(family)
        self.lifecycle.check(subject, LifecycleEvent.CREATE_PAYMENT_LINK, {}, actor)

        amount = self.total(family.id)
        student_ids = [s.id for s in subject.students]
        result = self.payment_client.create_payment_link(
            PaymentLinkRequest(
                amount=amount,
                currency=family.currency,
                description=f"{family.unique_id} - {len(student_ids)} students",
                student_ids=student_ids,
                family_group_id=family.id,
                metadata={"family_unique_id": family.unique_id, "parent_name": family.parent_name},
            )
        )

        with self.transaction():
            record = self.payment_link_repository.create(
                external_reference=result.reference,
                url=result.url,
                amount=amount,
                currency=family.currency,
                student_ids=student_ids,
                family_group_id=family.id,
                created_by=actor.id if actor is not None else None,
                created_at=self.now(),
            )
            self.lifecycle.apply(
                subject,
                LifecycleEvent.CREATE_PAYMENT_LINK,
                {},
                actor,
                note=f"payment link {result.reference}",
            )

        self.log_operation(
            "request_payment_link",
            family_group_id=family.id,
            amount=str(amount),
            currency=family.currency,
            reference=result.reference,
        )
        return record

    @BaseService.measure_operation("request_individual_payment_link")
    def request_individual_payment_link(
        self,
        student_id: str,
        package_id: str,
        currency: str,
        custom_price: Optional[Decimal] = None,
        actor: Optional[Principal] = None,
    ) -> PaymentLinkRecord:
        student = self.family_repository.get_student(student_id)
        if student is None:
            raise NotFoundException(f"Student {student_id} not found", code="STUDENT_NOT_FOUND")
        if student.family_group_id:
            raise ValidationException(
                "Students booked as a family are paid for through the family payment flow",
                code="USE_FAMILY_PAYMENT",
                details={"student_id": student.id, "family_group_id": student.family_group_id},
            )
        code = self._validated_currency(currency)
        package = self._get_active_package(package_id)
        if custom_price is not None and custom_price < 0:
            raise ValidationException("Custom price cannot be negative", code="INVALID_PRICE")
        amount = Decimal(custom_price if custom_price is not None else package.price).quantize(CENTS)

        subject = self.lifecycle.student_subject(student)
        payload = {"package_id": package.id, "currency": code}
        self.lifecycle.check(subject, LifecycleEvent.CREATE_PAYMENT_LINK, payload, actor)

        result = self.payment_client.create_payment_link(
            PaymentLinkRequest(
                amount=amount,
                currency=code,
                description=f"{student.unique_id} - {package.name}",
                student_ids=[student.id],
                package_id=package.id,
                metadata={"student_unique_id": student.unique_id},
            )
        )

        with self.transaction():
            record = self.payment_link_repository.create(
                external_reference=result.reference,
                url=result.url,
                amount=amount,
                currency=code,
                student_ids=[student.id],
                package_id=package.id,
                created_by=actor.id if actor is not None else None,
                created_at=self.now(),
            )
            self.lifecycle.apply(
                subject,
                LifecycleEvent.CREATE_PAYMENT_LINK,
                payload,
                actor,
                note=f"payment link {result.reference}",
            )

        self.log_operation(
            "request_individual_payment_link",
            student_id=student.id,
            amount=str(amount),
            currency=code,
            reference=result.reference,
        )
        return record
