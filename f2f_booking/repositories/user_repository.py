"""
User directory and enrollment lookups for identity resolution.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from ..models.user import Enrollment, User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Read access to users and their course enrollments."""

    def __init__(self, db: Session):
        super().__init__(db, User)

    def find_by_email(self, email: str, case_sensitive: bool = True) -> List[User]:
        """
        Find directory entries for an email address.

        Case-sensitive lookups compare the stored value exactly and return at
        most one user. Case-insensitive lookups compare casefolded values
        (User.email_normalized) and may return several users whose emails
        differ only by case.
        """
        if case_sensitive:
            query = self.db.query(User).filter(User.email == email)
        else:
            query = self.db.query(User).filter(User.email_normalized == email.casefold())
        return self._execute_query(query.order_by(User.id))

    def is_enrolled(self, user_id: str, course_id: str) -> bool:
        """Check whether a user is enrolled in a course."""
        query = self.db.query(Enrollment.id).filter(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
        )
        return bool(self._execute_query(query.limit(1)))
