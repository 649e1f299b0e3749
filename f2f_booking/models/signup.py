"""
Session signup (attendance) models.

A SessionSignup is the persisted attendance of one user in one session.
It is created by the first successful booking and updated in place after
that. Cancelling sets state CANCELLED and stamps cancelled_at; the row is
kept so it still shows up in the session's cancellations.

Every status change appends a SignupStatus row and supersedes the previous
one, giving the full history of a signup.
"""

import logging

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import AttendanceStatus, NotificationType, SignupState
from ..database import Base

logger = logging.getLogger(__name__)


class SessionSignup(Base):
    """
    Attendance of a user in a session, keyed by (session_id, user_id).

    Attributes:
        status_code: Current AttendanceStatus value
        state: ACTIVE or CANCELLED (soft delete)
        grade: Derived from the attendance status; None until attendance is marked
        graded_at: When the grade last changed
        cancelled_at: Set when the signup is cancelled
    """

    __tablename__ = "facetoface_signups"
    __table_args__ = (UniqueConstraint("session_id", "user_id", name="uq_signup_session_user"),)

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    session_id = Column(
        String(26), ForeignKey("facetoface_sessions.id"), nullable=False, index=True
    )
    user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)

    status_code = Column(Integer, nullable=False, default=AttendanceStatus.BOOKED.value)
    state = Column(String(20), nullable=False, default=SignupState.ACTIVE.value, index=True)
    notification_type = Column(Integer, nullable=False, default=NotificationType.BOTH.value)
    discount_code = Column(String(255), nullable=True)
    grade = Column(Integer, nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    session = relationship("FacetofaceSession", back_populates="signups")
    user = relationship("User")
    statuses = relationship(
        "SignupStatus",
        back_populates="signup",
        cascade="all, delete-orphan",
        order_by="SignupStatus.created_at",
    )

    @property
    def status(self) -> AttendanceStatus:
        return AttendanceStatus(self.status_code)

    @property
    def is_active(self) -> bool:
        return self.state == SignupState.ACTIVE.value

    @property
    def email(self) -> str:
        return self.user.email

    def __repr__(self) -> str:
        return (
            f"<SessionSignup session={self.session_id} user={self.user_id} "
            f"status={self.status_code}>"
        )


class SignupStatus(Base):
    """One entry in a signup's status history."""

    __tablename__ = "facetoface_signup_statuses"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    signup_id = Column(
        String(26), ForeignKey("facetoface_signups.id"), nullable=False, index=True
    )
    status_code = Column(Integer, nullable=False)
    grade = Column(Integer, nullable=True)
    superseded = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    signup = relationship("SessionSignup", back_populates="statuses")
