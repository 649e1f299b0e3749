"""
Identity resolution for uploaded booking rows.

Maps an email address to exactly one user enrolled in the activity's course.
Case-sensitive mode compares emails exactly. Case-insensitive mode compares
casefolded emails and refuses to pick when more than one user matches.
"""

from dataclasses import dataclass
import logging
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.messages import BookingErrorCode
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..repositories.user_repository import UserRepository
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityResult:
    """Outcome of resolving one email: a user, or the reason there is none."""

    email: str
    user: Optional[User] = None
    error: Optional[BookingErrorCode] = None

    @property
    def ok(self) -> bool:
        return self.user is not None and self.error is None


class IdentityResolver(BaseService):
    """
    Resolves emails to enrolled users for one course.

    Results are memoized per (mode, email) until clear_cache() is called;
    BookingManager clears the cache at the start of every validation pass so
    a new pass sees users added since the previous one.
    """

    def __init__(
        self,
        db: Session,
        course_id: str,
        case_insensitive: bool = False,
        user_repository: Optional[UserRepository] = None,
    ):
        super().__init__(db)
        self.course_id = course_id
        self.case_insensitive = case_insensitive
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)
        self._cache: Dict[Tuple[bool, str], IdentityResult] = {}

    def set_case_insensitive(self, case_insensitive: bool) -> None:
        if case_insensitive != self.case_insensitive:
            self.case_insensitive = case_insensitive
            self.clear_cache()

    def clear_cache(self) -> None:
        self._cache.clear()

    def resolve(self, email: str) -> IdentityResult:
        key = (self.case_insensitive, email.casefold() if self.case_insensitive else email)
        cached = self._cache.get(key)
        if cached is not None:
            return IdentityResult(email=email, user=cached.user, error=cached.error)

        result = self._resolve_uncached(email)
        self._cache[key] = result
        return result

    def _resolve_uncached(self, email: str) -> IdentityResult:
        matches = self.user_repository.find_by_email(
            email, case_sensitive=not self.case_insensitive
        )

        if not matches:
            return IdentityResult(email=email, error=BookingErrorCode.USER_DOES_NOT_EXIST)

        distinct = {user.id: user for user in matches}
        if len(distinct) > 1:
            self.logger.info(
                "Email %s matched %d users ignoring case", email, len(distinct)
            )
            return IdentityResult(email=email, error=BookingErrorCode.MULTIPLE_USERS_MATCHED)

        user = next(iter(distinct.values()))
        if not self.user_repository.is_enrolled(user.id, self.course_id):
            return IdentityResult(email=email, user=user, error=BookingErrorCode.USER_NOT_ENROLLED)

        return IdentityResult(email=email, user=user)
