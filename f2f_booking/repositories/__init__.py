"""Repository layer for face-to-face bookings."""

from .attendance_repository import AttendanceRepository
from .base_repository import BaseRepository
from .factory import RepositoryFactory
from .session_repository import SessionRepository
from .user_repository import UserRepository

__all__ = [
    "AttendanceRepository",
    "BaseRepository",
    "RepositoryFactory",
    "SessionRepository",
    "UserRepository",
]
