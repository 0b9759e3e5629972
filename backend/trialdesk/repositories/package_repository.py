# backend/trialdesk/repositories/package_repository.py
"""
Packages, family package selections and payment-link records.
"""

from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from ..models.payment import FamilyPackageSelection, Package, PaymentLinkRecord
from .base_repository import BaseRepository


class PackageRepository(BaseRepository[Package]):
    def __init__(self, db: Session):
        super().__init__(db, Package)

    def get_active(self, package_id: str) -> Optional[Package]:
        return (
            self.db.query(Package)
            .filter(Package.id == package_id, Package.is_active.is_(True))
            .first()
        )


class FamilySelectionRepository(BaseRepository[FamilyPackageSelection]):
    def __init__(self, db: Session):
        super().__init__(db, FamilyPackageSelection)

    def get_selection(self, family_group_id: str, student_id: str) -> Optional[FamilyPackageSelection]:
        return (
            self.db.query(FamilyPackageSelection)
            .filter(
                FamilyPackageSelection.family_group_id == family_group_id,
                FamilyPackageSelection.student_id == student_id,
            )
            .first()
        )

    def list_for_family(self, family_group_id: str) -> List[FamilyPackageSelection]:
        return (
            self.db.query(FamilyPackageSelection)
            .options(joinedload(FamilyPackageSelection.package))
            .filter(FamilyPackageSelection.family_group_id == family_group_id)
            .order_by(FamilyPackageSelection.student_id)
            .all()
        )


class PaymentLinkRepository(BaseRepository[PaymentLinkRecord]):
    def __init__(self, db: Session):
        super().__init__(db, PaymentLinkRecord)
