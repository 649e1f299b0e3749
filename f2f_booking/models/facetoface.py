"""
Face-to-face activity and session models.

A Facetoface activity belongs to a course and owns bookable sessions. Each
session has a capacity, an overbooking policy and one or more scheduled
date ranges.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.time_utils import ensure_utc
from ..database import Base

logger = logging.getLogger(__name__)


class Facetoface(Base):
    """
    The activity a booking batch is scoped to.

    Confirmation and cancellation emails are only sent when both the subject
    and the message of that kind are configured.
    """

    __tablename__ = "facetofaces"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    course_id = Column(String(26), ForeignKey("courses.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    # Notification templates (Jinja2 source)
    confirmation_subject = Column(String(255), nullable=True)
    confirmation_message = Column(Text, nullable=True)
    cancellation_subject = Column(String(255), nullable=True)
    cancellation_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    course = relationship("Course", back_populates="facetofaces")
    sessions = relationship(
        "FacetofaceSession", back_populates="facetoface", cascade="all, delete-orphan"
    )

    @property
    def sends_confirmations(self) -> bool:
        return bool(self.confirmation_subject and self.confirmation_message)

    @property
    def sends_cancellations(self) -> bool:
        return bool(self.cancellation_subject and self.cancellation_message)


class FacetofaceSession(Base):
    """A scheduled, capacity-bounded event within a face-to-face activity."""

    __tablename__ = "facetoface_sessions"
    __table_args__ = (CheckConstraint("capacity >= 0", name="check_capacity_non_negative"),)

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    facetoface_id = Column(String(26), ForeignKey("facetofaces.id"), nullable=False, index=True)

    capacity = Column(Integer, nullable=False, default=10)
    allow_overbook = Column(Boolean, nullable=False, default=False)
    allow_cancellations = Column(Boolean, nullable=False, default=True)

    details = Column(Text, nullable=True)
    duration = Column(Numeric(6, 2), nullable=True, comment="Hours")
    normal_cost = Column(Numeric(10, 2), nullable=True)
    discount_cost = Column(Numeric(10, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    facetoface = relationship("Facetoface", back_populates="sessions")
    dates = relationship(
        "SessionDate",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionDate.time_start",
    )
    signups = relationship("SessionSignup", back_populates="session")

    @property
    def first_start(self) -> Optional[datetime]:
        starts = [ensure_utc(d.time_start) for d in self.dates if d.time_start is not None]
        return min(starts) if starts else None

    def has_started(self, as_of: datetime) -> bool:
        """
        True once any scheduled date has begun at ``as_of``.

        Sessions without dates are never considered started.
        """
        first_start = self.first_start
        return first_start is not None and first_start <= ensure_utc(as_of)

    def __repr__(self) -> str:
        return f"<FacetofaceSession {self.id} capacity={self.capacity}>"


class SessionDate(Base):
    """One scheduled start/finish range of a session."""

    __tablename__ = "facetoface_session_dates"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    session_id = Column(
        String(26), ForeignKey("facetoface_sessions.id"), nullable=False, index=True
    )
    time_start = Column(DateTime(timezone=True), nullable=False)
    time_finish = Column(DateTime(timezone=True), nullable=False)

    session = relationship("FacetofaceSession", back_populates="dates")
