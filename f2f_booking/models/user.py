"""
User directory and course enrollment models.

The booking upload only reads these: it resolves an uploaded email to a
User and checks that the User is enrolled in the activity's Course.
"""

import logging

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class User(Base):
    """
    Directory entry for a person who can be booked into sessions.

    Attributes:
        id: Primary key (ULID)
        email: Login email; unique as stored, so two users may differ only by case
        email_normalized: Casefolded email, kept in step with email for case-insensitive lookups
        first_name: Given name used in notifications
        last_name: Family name used in notifications
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    email_normalized = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    enrollments = relationship("Enrollment", back_populates="user", cascade="all, delete-orphan")

    @validates("email")
    def _sync_normalized_email(self, key: str, value: str) -> str:
        self.email_normalized = value.casefold()
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Course(Base):
    """A course; face-to-face activities live inside one."""

    __tablename__ = "courses"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    full_name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")
    facetofaces = relationship("Facetoface", back_populates="course")


class Enrollment(Base):
    """A user's enrollment in a course."""

    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),)

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(String(26), ForeignKey("courses.id"), nullable=False, index=True)
    role = Column(String(50), nullable=False, default="student")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")
