"""
Status and notification codes for face-to-face signups.

The numeric values are stored in the database and ordered so that anything
at or above BOOKED counts as an attendee of the session.
"""

from enum import Enum, IntEnum
from typing import Dict, Optional


class AttendanceStatus(IntEnum):
    """Signup status codes, persisted on each status history row."""

    USER_CANCELLED = 10
    BOOKED = 70
    NO_SHOW = 80
    PARTIALLY_ATTENDED = 90
    FULLY_ATTENDED = 100

    @property
    def is_attendee(self) -> bool:
        return self >= AttendanceStatus.BOOKED

    @property
    def is_attendance_mark(self) -> bool:
        return self in ATTENDANCE_GRADES

    @property
    def grade(self) -> Optional[int]:
        return ATTENDANCE_GRADES.get(self)


ATTENDANCE_GRADES: Dict[AttendanceStatus, int] = {
    AttendanceStatus.NO_SHOW: 0,
    AttendanceStatus.PARTIALLY_ATTENDED: 50,
    AttendanceStatus.FULLY_ATTENDED: 100,
}


class SignupState(str, Enum):
    """Lifecycle of a signup row. Cancelled rows are kept, never deleted."""

    ACTIVE = "active"
    CANCELLED = "cancelled"


class NotificationType(IntEnum):
    """How the attendee wants to be notified."""

    ICAL = 1
    TEXT = 2
    BOTH = 3


# Upload column values. Blank means the default.
UPLOAD_STATUSES: Dict[str, AttendanceStatus] = {
    "": AttendanceStatus.BOOKED,
    "booked": AttendanceStatus.BOOKED,
    "cancelled": AttendanceStatus.USER_CANCELLED,
    "no_show": AttendanceStatus.NO_SHOW,
    "partially_attended": AttendanceStatus.PARTIALLY_ATTENDED,
    "fully_attended": AttendanceStatus.FULLY_ATTENDED,
}

UPLOAD_NOTIFICATION_TYPES: Dict[str, NotificationType] = {
    "": NotificationType.BOTH,
    "ical": NotificationType.ICAL,
    "text": NotificationType.TEXT,
    "both": NotificationType.BOTH,
}
