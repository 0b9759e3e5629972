# backend/trialdesk/repositories/family_repository.py
"""
Students and family groups, including the human-readable unique ids
(AYB_2025_000123 for students, AYB_2025_FAM_000045 for families).
"""

from typing import List, Optional, Type, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.student import FamilyGroup, Student
from .base_repository import BaseRepository

_SEQUENCE_WIDTH = 6


def _unique_id_prefix(brand_prefix: str, year: int, family: bool) -> str:
    if family:
        return f"{brand_prefix}_{year}_FAM_"
    return f"{brand_prefix}_{year}_"


class FamilyRepository(BaseRepository[FamilyGroup]):
    def __init__(self, db: Session):
        super().__init__(db, FamilyGroup)

    def _apply_eager_loading(self, query):
        return query.options(selectinload(FamilyGroup.students))

    def get_student(self, student_id: str) -> Optional[Student]:
        try:
            return self.db.query(Student).filter(Student.id == student_id).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting student {student_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve Student: {str(e)}")

    def list_students(self, family_group_id: str) -> List[Student]:
        return (
            self.db.query(Student)
            .filter(Student.family_group_id == family_group_id)
            .order_by(Student.id)
            .all()
        )

    def create_student(self, **kwargs) -> Student:
        try:
            student = Student(**kwargs)
            self.db.add(student)
            self.db.flush()
            return student
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating Student: {str(e)}")
            raise RepositoryException(f"Failed to create Student: {str(e)}") from e

    def next_unique_id(self, brand_prefix: str, year: int, *, family: bool) -> str:
        """
        Next sequential id for the year, zero padded so string order matches numeric order.

        Student ids (AYB_2025_000123) and family ids (AYB_2025_FAM_000045) are
        numbered independently.
        """
        prefix = _unique_id_prefix(brand_prefix, year, family)
        model: Type[Union[Student, FamilyGroup]] = FamilyGroup if family else Student
        query = self.db.query(model.unique_id).filter(model.unique_id.like(f"{prefix}%"))
        if not family:
            query = query.filter(~model.unique_id.like(f"{prefix}FAM_%"))
        latest = query.order_by(model.unique_id.desc()).first()
        if latest is None:
            number = 1
        else:
            number = int(latest[0][len(prefix):]) + 1
        return f"{prefix}{number:0{_SEQUENCE_WIDTH}d}"
