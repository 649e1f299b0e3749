"""
Attendance Repository for face-to-face sessions.

Handles the persisted side of session signups:
- Current attendee and cancellation views of a session
- Creating signups and appending status history
- Soft cancellation (state + timestamp, never deletion)
- Grade lookups for an activity

Nothing here commits; BookingManager wraps each upload row in a transaction.
"""

from datetime import datetime
import logging
from typing import List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.enums import AttendanceStatus, NotificationType, SignupState
from ..core.exceptions import RepositoryException
from ..models.facetoface import FacetofaceSession
from ..models.signup import SessionSignup, SignupStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AttendanceRepository(BaseRepository[SessionSignup]):
    """Data access for SessionSignup and its status history."""

    def __init__(self, db: Session):
        super().__init__(db, SessionSignup)

    # Views

    def get_attendees(self, session_id: str) -> List[SessionSignup]:
        """
        Current attendees of a session.

        Active signups whose status is booked or an attendance mark, in
        signup order.
        """
        query = (
            self.db.query(SessionSignup)
            .options(joinedload(SessionSignup.user))
            .filter(
                SessionSignup.session_id == session_id,
                SessionSignup.state == SignupState.ACTIVE.value,
                SessionSignup.status_code >= AttendanceStatus.BOOKED.value,
            )
            .order_by(SessionSignup.created_at, SessionSignup.id)
        )
        return self._execute_query(query)

    def get_cancellations(self, session_id: str) -> List[SessionSignup]:
        """Cancelled signups of a session, most recent cancellation first."""
        query = (
            self.db.query(SessionSignup)
            .options(joinedload(SessionSignup.user))
            .filter(
                SessionSignup.session_id == session_id,
                SessionSignup.state == SignupState.CANCELLED.value,
            )
            .order_by(SessionSignup.cancelled_at.desc(), SessionSignup.id)
        )
        return self._execute_query(query)

    def get_attendee_user_ids(self, session_id: str) -> Set[str]:
        return {signup.user_id for signup in self.get_attendees(session_id)}

    def get_signup(self, session_id: str, user_id: str) -> Optional[SessionSignup]:
        """Return the signup for (session, user) in any state."""
        return self.find_one_by(session_id=session_id, user_id=user_id)

    # Writes

    def create_signup(
        self,
        session_id: str,
        user_id: str,
        notification_type: NotificationType,
        discount_code: Optional[str],
        now: datetime,
    ) -> SessionSignup:
        """Create a booked signup together with its first status history row."""
        signup = self.create(
            session_id=session_id,
            user_id=user_id,
            notification_type=int(notification_type),
            discount_code=discount_code,
            status_code=AttendanceStatus.BOOKED.value,
            state=SignupState.ACTIVE.value,
        )
        self._append_status(signup, AttendanceStatus.BOOKED, now)
        self.flush()
        return signup

    def set_status(self, signup: SessionSignup, status: AttendanceStatus, now: datetime) -> None:
        """
        Move a signup to a new status.

        Supersedes the current history row, records the new one and derives
        the grade. Booking a cancelled signup re-activates it; booking an
        attendance-marked signup clears its grade.
        """
        self._supersede_current(signup)
        self._append_status(signup, status, now)

        signup.status_code = status.value
        if status.is_attendee:
            signup.state = SignupState.ACTIVE.value
            signup.cancelled_at = None
        if status.grade is not None:
            signup.grade = status.grade
            signup.graded_at = now
        elif status.is_attendee:
            signup.grade = None
            signup.graded_at = None
        self.flush()

    def soft_cancel(self, signup: SessionSignup, now: datetime) -> None:
        """Cancel a signup, keeping the row with its cancellation time."""
        self._supersede_current(signup)
        self._append_status(signup, AttendanceStatus.USER_CANCELLED, now)

        signup.status_code = AttendanceStatus.USER_CANCELLED.value
        signup.state = SignupState.CANCELLED.value
        signup.cancelled_at = now
        self.flush()

    # Grades

    def get_grade(self, user_id: str, facetoface_id: str) -> Optional[int]:
        """
        Latest attendance grade of a user across an activity's sessions.

        Returns None when no attendance has been marked.
        """
        try:
            signup = (
                self.db.query(SessionSignup)
                .join(FacetofaceSession, FacetofaceSession.id == SessionSignup.session_id)
                .filter(
                    SessionSignup.user_id == user_id,
                    FacetofaceSession.facetoface_id == facetoface_id,
                    SessionSignup.grade.isnot(None),
                )
                .order_by(SessionSignup.graded_at.desc())
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading grade for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to load grade: {str(e)}")
        return signup.grade if signup else None

    def get_status_history(self, signup_id: str) -> List[SignupStatus]:
        query = (
            self.db.query(SignupStatus)
            .filter(SignupStatus.signup_id == signup_id)
            .order_by(SignupStatus.created_at, SignupStatus.id)
        )
        return self._execute_query(query)

    # Helpers

    def _supersede_current(self, signup: SessionSignup) -> None:
        for entry in signup.statuses:
            if not entry.superseded:
                entry.superseded = True

    def _append_status(
        self, signup: SessionSignup, status: AttendanceStatus, now: datetime
    ) -> SignupStatus:
        entry = SignupStatus(
            status_code=status.value,
            grade=status.grade,
            superseded=False,
            created_at=now,
        )
        signup.statuses.append(entry)
        return entry
