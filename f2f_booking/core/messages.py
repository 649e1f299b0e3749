"""
Error codes for booking upload rows and the strings they render to.

Error identity is (code, params); the catalog below only formats them for
display. Keep wording in one place so it can be swapped for translations.
"""

from enum import Enum
from typing import Any, Mapping


class BookingErrorCode(str, Enum):
    MALFORMED_RECORD = "MalformedRecord"
    USER_DOES_NOT_EXIST = "UserDoesNotExist"
    USER_NOT_ENROLLED = "UserNotEnrolled"
    MULTIPLE_USERS_MATCHED = "MultipleUsersMatched"
    INVALID_STATUS = "InvalidStatusSpecified"
    INVALID_NOTIFICATION_TYPE = "InvalidNotificationTypeSpecified"
    SESSION_DOES_NOT_EXIST = "SessionDoesNotExist"
    SESSION_FROM_ANOTHER_MODULE = "TryingToUpdateSessionFromAnotherModule"
    SESSION_OVERBOOKED = "SessionOverbooked"
    CANNOT_SIGNUP_SESSION_OVER = "CannotSignupSessionOver"
    NO_BOOKING_TO_UPDATE = "NoBookingToUpdate"
    PERSISTENCE_FAILURE = "PersistenceFailure"


MESSAGES: Mapping[BookingErrorCode, str] = {
    BookingErrorCode.MALFORMED_RECORD: "Row could not be read: {reason}",
    BookingErrorCode.USER_DOES_NOT_EXIST: 'User with email "{email}" does not exist.',
    BookingErrorCode.USER_NOT_ENROLLED: 'User "{email}" is not enrolled into the course.',
    BookingErrorCode.MULTIPLE_USERS_MATCHED: (
        'Multiple users matched the email "{email}" when ignoring case.'
    ),
    BookingErrorCode.INVALID_STATUS: (
        'Invalid status "{status}" specified. Expected one of: {allowed}.'
    ),
    BookingErrorCode.INVALID_NOTIFICATION_TYPE: (
        'Invalid notification type "{notificationtype}" specified. Expected one of: {allowed}.'
    ),
    BookingErrorCode.SESSION_DOES_NOT_EXIST: "Session {session} does not exist.",
    BookingErrorCode.SESSION_FROM_ANOTHER_MODULE: (
        "Trying to update session {session} which does not belong to face-to-face activity {f}."
    ),
    BookingErrorCode.SESSION_OVERBOOKED: "Session {session} would be overbooked by {amount}.",
    BookingErrorCode.CANNOT_SIGNUP_SESSION_OVER: (
        "Cannot sign up for a session that has already started or finished."
    ),
    BookingErrorCode.NO_BOOKING_TO_UPDATE: (
        'User "{email}" has no booking in session {session} to record attendance against.'
    ),
    BookingErrorCode.PERSISTENCE_FAILURE: "Saving the row failed: {reason}",
}


def format_message(code: BookingErrorCode, params: Mapping[str, Any]) -> str:
    """Render an error code with its parameters."""
    return MESSAGES[code].format(**params)
