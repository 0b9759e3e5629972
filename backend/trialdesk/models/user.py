# backend/trialdesk/models/user.py
"""
Staff user model.

Sales agents, teachers, supervisors and admins share one table. Teachers
additionally carry a teacher_type used by slot search and round-robin
fairness. Authentication lives outside this service; users arrive here
already provisioned.
"""

from sqlalchemy import CheckConstraint, Column, Index, String
from sqlalchemy.orm import relationship
import ulid

from ..core.constants import REFERENCE_TIMEZONE
from ..core.enums import UserStatus
from ..database import Base
from .types import UTCDateTime, now_utc


class User(Base):
    __tablename__ = "users"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(40), nullable=True)
    role = Column(String(20), nullable=False)
    teacher_type = Column(String(20), nullable=True)
    status = Column(String(20), nullable=False, default=UserStatus.PENDING.value)
    timezone = Column(String(64), nullable=False, default=REFERENCE_TIMEZONE)
    created_at = Column(UTCDateTime(), nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime(), nullable=False, default=now_utc, onupdate=now_utc)

    availability_slots = relationship(
        "TeacherAvailabilitySlot",
        back_populates="teacher",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin','sales','teacher','supervisor')",
            name="ck_users_role",
        ),
        CheckConstraint(
            "status IN ('pending','approved','rejected')",
            name="ck_users_status",
        ),
        CheckConstraint(
            "teacher_type IS NULL OR teacher_type IN ('kids','adult','mixed','expert')",
            name="ck_users_teacher_type",
        ),
        Index("idx_users_role_type_status", "role", "teacher_type", "status"),
    )

    def __repr__(self) -> str:
        return f"<User {self.id} {self.role} {self.full_name!r}>"
