# f2f_booking/models/__init__.py
"""
Database models for face-to-face bookings.

Importing this package registers every model on Base.metadata.
"""

from .facetoface import Facetoface, FacetofaceSession, SessionDate
from .signup import SessionSignup, SignupStatus
from .user import Course, Enrollment, User

__all__ = [
    "Course",
    "Enrollment",
    "Facetoface",
    "FacetofaceSession",
    "SessionDate",
    "SessionSignup",
    "SignupStatus",
    "User",
]
