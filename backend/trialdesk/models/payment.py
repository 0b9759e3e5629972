# backend/trialdesk/models/payment.py
"""
Packages, per-student family selections, and payment-link records.

Package prices are currency-neutral; the currency is chosen per family (or
per individual link) and locked for the rest of the payment flow.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import PaymentLinkStatus
from ..database import Base
from .types import StringListType, UTCDateTime, now_utc


class Package(Base):
    __tablename__ = "packages"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    session_count = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime(), nullable=False, default=now_utc)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_packages_price"),
        CheckConstraint("session_count > 0", name="ck_packages_session_count"),
    )


class FamilyPackageSelection(Base):
    __tablename__ = "family_package_selections"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    family_group_id = Column(
        String(26),
        ForeignKey("family_groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_id = Column(String(26), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    package_id = Column(String(26), ForeignKey("packages.id"), nullable=False)
    custom_price = Column(Numeric(10, 2), nullable=True)
    use_custom_price = Column(Boolean, nullable=False, default=False)
    currency = Column(String(3), nullable=False)
    created_at = Column(UTCDateTime(), nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime(), nullable=False, default=now_utc, onupdate=now_utc)

    package = relationship("Package")

    __table_args__ = (
        UniqueConstraint("family_group_id", "student_id", name="uq_family_selection_student"),
        CheckConstraint(
            "custom_price IS NULL OR custom_price >= 0", name="ck_family_selection_custom_price"
        ),
    )

    @property
    def effective_price(self):
        if self.use_custom_price and self.custom_price is not None:
            return self.custom_price
        return self.package.price


class PaymentLinkRecord(Base):
    __tablename__ = "payment_links"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    external_reference = Column(String(255), nullable=False)
    url = Column(String(1024), nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    student_ids = Column(StringListType(), nullable=False)
    family_group_id = Column(String(26), ForeignKey("family_groups.id"), nullable=True)
    package_id = Column(String(26), ForeignKey("packages.id"), nullable=True)
    status = Column(String(20), nullable=False, default=PaymentLinkStatus.PENDING.value)
    created_by = Column(String(64), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=now_utc)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','clicked','expired','paid')", name="ck_payment_links_status"
        ),
        Index("idx_payment_links_family", "family_group_id"),
    )
