# f2f_booking/repositories/factory.py
"""
Repository Factory for face-to-face bookings.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .attendance_repository import AttendanceRepository
    from .session_repository import SessionRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services and tests can swap
    implementations in one place.
    """

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        """Create repository for user directory and enrollment lookups."""
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_session_repository(db: Session) -> "SessionRepository":
        """Create repository for activity and session lookups."""
        from .session_repository import SessionRepository

        return SessionRepository(db)

    @staticmethod
    def create_attendance_repository(db: Session) -> "AttendanceRepository":
        """Create repository for signups and their status history."""
        from .attendance_repository import AttendanceRepository

        return AttendanceRepository(db)
