# f2f_booking/services/booking_validator.py
"""
Row validation for booking uploads.

Each row is checked on its own, but against state shared across the batch:
session seat counts and the identity cache. Every applicable error is
reported; checks that depend on an earlier failure are skipped.

Seat accounting starts from the session's current attendees and replays the
batch in load order. A valid booking claims a seat (once per user), a valid
cancellation frees one. Rows beyond capacity on a session that does not allow
overbooking are rejected with the running excess, so the first rows loaded
win when capacity is tight.
"""

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from ..core.enums import (
    UPLOAD_NOTIFICATION_TYPES,
    UPLOAD_STATUSES,
    AttendanceStatus,
    NotificationType,
)
from ..core.messages import BookingErrorCode
from ..models.facetoface import Facetoface, FacetofaceSession
from ..models.user import User
from ..repositories.attendance_repository import AttendanceRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.session_repository import SessionRepository
from ..schemas.booking_upload import AttendanceRecord, LoadedRow, RowError
from .base import BaseService
from .identity_resolver import IdentityResolver

logger = logging.getLogger(__name__)

ALLOWED_STATUSES = ", ".join(key for key in UPLOAD_STATUSES if key)
ALLOWED_NOTIFICATION_TYPES = ", ".join(key for key in UPLOAD_NOTIFICATION_TYPES if key)


@dataclass
class ValidatedRow:
    """A row that passed every check, with everything needed to commit it."""

    row: int
    record: AttendanceRecord
    session: FacetofaceSession
    user: User
    status: AttendanceStatus
    notification_type: NotificationType


@dataclass
class _SeatLedger:
    """Batch view of one session's seats."""

    capacity: int
    allow_overbook: bool
    occupants: Set[str] = field(default_factory=set)
    rejected: int = 0


@dataclass
class ValidationOutcome:
    errors: List[RowError] = field(default_factory=list)
    valid_rows: List[ValidatedRow] = field(default_factory=list)

    @property
    def error_rows(self) -> Set[int]:
        return {error.row for error in self.errors}


class BookingRowValidator(BaseService):
    """Applies the booking rules to a loaded batch for one activity."""

    def __init__(
        self,
        db: Session,
        facetoface: Facetoface,
        identity_resolver: IdentityResolver,
        session_repository: Optional[SessionRepository] = None,
        attendance_repository: Optional[AttendanceRepository] = None,
    ):
        super().__init__(db)
        self.facetoface = facetoface
        self.identity_resolver = identity_resolver
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )
        self.attendance_repository = (
            attendance_repository or RepositoryFactory.create_attendance_repository(db)
        )

    @BaseService.measure_operation("validate_rows")
    def validate(self, rows: List[LoadedRow], as_of: datetime) -> ValidationOutcome:
        """
        Validate every loaded row.

        Args:
            rows: Loaded rows in upload order
            as_of: Time used for the session-started rule

        Returns:
            All row errors plus the rows that can be committed
        """
        outcome = ValidationOutcome()
        sessions: Dict[str, Optional[FacetofaceSession]] = {}
        ledgers: Dict[str, _SeatLedger] = {}

        for loaded in rows:
            if loaded.record is None:
                outcome.errors.append(
                    RowError(
                        loaded.row,
                        BookingErrorCode.MALFORMED_RECORD,
                        {"reason": loaded.parse_error or "missing required fields"},
                    )
                )
                continue

            errors, validated = self._validate_row(
                loaded.row, loaded.record, as_of, sessions, ledgers
            )
            outcome.errors.extend(errors)
            if validated is not None:
                outcome.valid_rows.append(validated)

        self.logger.info(
            "Validated %d rows for facetoface %s: %d errors",
            len(rows),
            self.facetoface.id,
            len(outcome.errors),
        )
        return outcome

    def _validate_row(
        self,
        row: int,
        record: AttendanceRecord,
        as_of: datetime,
        sessions: Dict[str, Optional[FacetofaceSession]],
        ledgers: Dict[str, _SeatLedger],
    ) -> Tuple[List[RowError], Optional[ValidatedRow]]:
        errors: List[RowError] = []

        # Session ownership
        session = self._get_session(record.session, sessions)
        session_ok = False
        if session is None:
            errors.append(
                RowError(row, BookingErrorCode.SESSION_DOES_NOT_EXIST, {"session": record.session})
            )
        elif session.facetoface_id != self.facetoface.id:
            errors.append(
                RowError(
                    row,
                    BookingErrorCode.SESSION_FROM_ANOTHER_MODULE,
                    {"session": record.session, "f": self.facetoface.id},
                )
            )
        else:
            session_ok = True

        # Identity
        identity = self.identity_resolver.resolve(record.email)
        if not identity.ok:
            errors.append(RowError(row, identity.error, {"email": record.email}))

        # Field values
        status = record.parsed_status
        if status is None:
            errors.append(
                RowError(
                    row,
                    BookingErrorCode.INVALID_STATUS,
                    {"status": record.status, "allowed": ALLOWED_STATUSES},
                )
            )
        notification_type = record.parsed_notification_type
        if notification_type is None:
            errors.append(
                RowError(
                    row,
                    BookingErrorCode.INVALID_NOTIFICATION_TYPE,
                    {
                        "notificationtype": record.notification_type,
                        "allowed": ALLOWED_NOTIFICATION_TYPES,
                    },
                )
            )

        if not session_ok or status is None:
            return errors, None

        # Attendance can be recorded after the session; new bookings cannot.
        if status == AttendanceStatus.BOOKED and session.has_started(as_of):
            errors.append(RowError(row, BookingErrorCode.CANNOT_SIGNUP_SESSION_OVER, {}))

        if errors or notification_type is None:
            return errors, None

        ledger = self._get_ledger(session, ledgers)
        user_id = identity.user.id

        if status == AttendanceStatus.BOOKED:
            if user_id not in ledger.occupants:
                if not ledger.allow_overbook and len(ledger.occupants) >= ledger.capacity:
                    ledger.rejected += 1
                    amount = len(ledger.occupants) + ledger.rejected - ledger.capacity
                    errors.append(
                        RowError(
                            row,
                            BookingErrorCode.SESSION_OVERBOOKED,
                            {"session": session.id, "amount": amount},
                        )
                    )
                    return errors, None
                ledger.occupants.add(user_id)
        elif status == AttendanceStatus.USER_CANCELLED:
            ledger.occupants.discard(user_id)
        elif user_id not in ledger.occupants:
            errors.append(
                RowError(
                    row,
                    BookingErrorCode.NO_BOOKING_TO_UPDATE,
                    {"email": record.email, "session": session.id},
                )
            )
            return errors, None

        return errors, ValidatedRow(
            row=row,
            record=record,
            session=session,
            user=identity.user,
            status=status,
            notification_type=notification_type,
        )

    def _get_session(
        self, session_id: str, sessions: Dict[str, Optional[FacetofaceSession]]
    ) -> Optional[FacetofaceSession]:
        if session_id not in sessions:
            sessions[session_id] = self.session_repository.get_session(session_id)
        return sessions[session_id]

    def _get_ledger(
        self, session: FacetofaceSession, ledgers: Dict[str, _SeatLedger]
    ) -> _SeatLedger:
        ledger = ledgers.get(session.id)
        if ledger is None:
            ledger = _SeatLedger(
                capacity=session.capacity,
                allow_overbook=bool(session.allow_overbook),
                occupants=set(self.attendance_repository.get_attendee_user_ids(session.id)),
            )
            ledgers[session.id] = ledger
        return ledger
