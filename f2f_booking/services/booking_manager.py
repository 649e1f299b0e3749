# f2f_booking/services/booking_manager.py
"""
Booking Manager for face-to-face activities.

Loads a batch of uploaded attendance rows for one activity, validates them
and commits the valid ones:
- booked (or blank) rows create or refresh a booking
- cancelled rows soft-cancel the booking
- no_show / partially_attended / fully_attended rows record attendance and
  the grade that goes with it

Usage:
    manager = BookingManager(db, facetoface_id)
    manager.load_records(rows)
    errors = manager.validate()
    if not errors:
        manager.process()

process() validates the batch again before writing, using the time of the
last validate() call, and never commits a row that has errors. Each row is
committed in its own transaction, so one failing row does not undo or stop
the others.
"""

from datetime import datetime
import logging
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import AttendanceStatus
from ..core.exceptions import BusinessRuleException, DomainException, FacetofaceNotFoundException
from ..core.messages import BookingErrorCode
from ..core.time_utils import ensure_utc, utcnow
from ..models.facetoface import Facetoface
from ..models.signup import SessionSignup
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.attendance_repository import AttendanceRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.session_repository import SessionRepository
from ..repositories.user_repository import UserRepository
from ..schemas.booking_upload import AttendanceRecord, BatchResult, LoadedRow, RowError
from .base import BaseService
from .booking_validator import BookingRowValidator, ValidatedRow
from .identity_resolver import IdentityResolver
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

CONFIRMATION = "confirmation"
CANCELLATION = "cancellation"


class BookingManager(BaseService):
    """
    Batch processor for booking uploads against one face-to-face activity.

    Holds no locks across batches; concurrent writers are left to the
    database's own consistency guarantees.
    """

    def __init__(
        self,
        db: Session,
        facetoface_id: str,
        notification_service: Optional[NotificationService] = None,
        session_repository: Optional[SessionRepository] = None,
        attendance_repository: Optional[AttendanceRepository] = None,
        user_repository: Optional[UserRepository] = None,
    ):
        """
        Initialize the manager for an activity.

        Raises:
            FacetofaceNotFoundException: If the activity does not exist
        """
        super().__init__(db)
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )
        self.attendance_repository = (
            attendance_repository or RepositoryFactory.create_attendance_repository(db)
        )

        facetoface = self.session_repository.get_facetoface(facetoface_id)
        if facetoface is None:
            raise FacetofaceNotFoundException(facetoface_id)
        self.facetoface: Facetoface = facetoface

        self.identity_resolver = IdentityResolver(
            db,
            course_id=facetoface.course_id,
            case_insensitive=settings.default_case_insensitive,
            user_repository=user_repository,
        )
        self.validator = BookingRowValidator(
            db,
            facetoface,
            self.identity_resolver,
            session_repository=self.session_repository,
            attendance_repository=self.attendance_repository,
        )
        self._notification_service = notification_service
        self._suppress_notifications = settings.suppress_notifications

        self.rows: List[LoadedRow] = []
        self.last_result: Optional[BatchResult] = None
        self._last_as_of: Optional[datetime] = None

    # Batch configuration

    def load_records(self, records: Iterable[Any]) -> None:
        """
        Replace the batch with new rows.

        Rows may be mappings or attribute objects. Rows that cannot be read
        are kept and reported as MalformedRecord by validate().
        """
        self.rows = [self._load_row(number, raw) for number, raw in enumerate(records, start=1)]
        self.last_result = None
        self._last_as_of = None
        self.identity_resolver.clear_cache()
        self.log_operation("load_records", facetoface_id=self.facetoface.id, rows=len(self.rows))

    def set_case_insensitive(self, case_insensitive: bool) -> None:
        """Match uploaded emails ignoring case for this batch."""
        self.identity_resolver.set_case_insensitive(case_insensitive)

    @property
    def case_insensitive(self) -> bool:
        return self.identity_resolver.case_insensitive

    def suppress_notifications(self, suppress: bool = True) -> None:
        """Disable confirmation and cancellation emails for every row of the batch."""
        self._suppress_notifications = suppress

    @property
    def notifications_suppressed(self) -> bool:
        return self._suppress_notifications

    @property
    def notification_service(self) -> NotificationService:
        if self._notification_service is None:
            self._notification_service = NotificationService(self.db)
        return self._notification_service

    # Validation

    @BaseService.measure_operation("validate")
    def validate(self, as_of: Optional[datetime] = None) -> List[RowError]:
        """
        Validate the loaded batch.

        Args:
            as_of: Time used for the session-started rule; defaults to now

        Returns:
            Every row error, in row order
        """
        self._last_as_of = ensure_utc(as_of) or utcnow()
        self.identity_resolver.clear_cache()
        outcome = self.validator.validate(self.rows, self._last_as_of)
        for error in outcome.errors:
            prometheus_metrics.record_validation_error(error.code.value)
        return outcome.errors

    # Processing

    @BaseService.measure_operation("process")
    def process(self) -> bool:
        """
        Commit every valid row of the batch.

        Returns:
            True when every row was committed, False when any row had
            validation errors or failed to persist
        """
        as_of = self._last_as_of or utcnow()
        self.identity_resolver.clear_cache()
        outcome = self.validator.validate(self.rows, as_of)

        result = BatchResult()
        result.row_errors.extend(outcome.errors)
        result.skipped = len(outcome.error_rows)
        if result.skipped:
            self.logger.warning(
                f"Skipping {result.skipped} rows with validation errors "
                f"for facetoface {self.facetoface.id}"
            )

        for validated in outcome.valid_rows:
            self._commit_row(validated, result)

        for _ in range(result.skipped):
            prometheus_metrics.record_row_outcome("skipped")

        self.last_result = result
        self.log_operation(
            "process",
            facetoface_id=self.facetoface.id,
            booked=result.booked,
            cancelled=result.cancelled,
            updated=result.updated,
            unchanged=result.unchanged,
            skipped=result.skipped,
            failed=result.failed,
            notifications_sent=result.notifications_sent,
        )
        return result.success

    def _commit_row(self, validated: ValidatedRow, result: BatchResult) -> None:
        now = utcnow()
        try:
            with self.transaction():
                outcome, signup, notice = self._apply_row(validated, now)
        except DomainException as e:
            self.logger.error(f"Row {validated.row} could not be saved: {e.message}")
            result.failed += 1
            result.row_errors.append(
                RowError(validated.row, BookingErrorCode.PERSISTENCE_FAILURE, {"reason": e.message})
            )
            prometheus_metrics.record_row_outcome("failed")
            return

        setattr(result, outcome, getattr(result, outcome) + 1)
        prometheus_metrics.record_row_outcome(outcome)

        if notice and not self._suppress_notifications:
            if self._notify(notice, validated, signup):
                result.notifications_sent += 1

    def _apply_row(
        self, validated: ValidatedRow, now: datetime
    ) -> tuple[str, Optional[SessionSignup], Optional[str]]:
        """
        Write one row.

        Returns:
            (result counter to bump, signup touched, notice to send or None)
        """
        status = validated.status
        signup = self.attendance_repository.get_signup(validated.session.id, validated.user.id)

        if status == AttendanceStatus.BOOKED:
            return self._apply_booking(validated, signup, now)

        if status == AttendanceStatus.USER_CANCELLED:
            if signup is not None and signup.is_active:
                self.attendance_repository.soft_cancel(signup, now)
            return "cancelled", signup, CANCELLATION

        # Attendance marks only ever update an existing booking.
        if signup is None or not signup.is_active:
            raise BusinessRuleException(
                f"No active booking for {validated.record.email} in session {validated.session.id}",
                code=BookingErrorCode.NO_BOOKING_TO_UPDATE.value,
            )
        if signup.status == status:
            return "unchanged", signup, None
        self.attendance_repository.set_status(signup, status, now)
        return "updated", signup, None

    def _apply_booking(
        self, validated: ValidatedRow, signup: Optional[SessionSignup], now: datetime
    ) -> tuple[str, Optional[SessionSignup], Optional[str]]:
        record = validated.record
        if signup is None:
            signup = self.attendance_repository.create_signup(
                session_id=validated.session.id,
                user_id=validated.user.id,
                notification_type=validated.notification_type,
                discount_code=record.discount_code,
                now=now,
            )
            return "booked", signup, CONFIRMATION

        details_changed = (
            signup.notification_type != int(validated.notification_type)
            or signup.discount_code != record.discount_code
        )
        signup.notification_type = int(validated.notification_type)
        signup.discount_code = record.discount_code

        if signup.is_active and signup.status == AttendanceStatus.BOOKED:
            self.attendance_repository.flush()
            return ("updated" if details_changed else "unchanged"), signup, None

        self.attendance_repository.set_status(signup, AttendanceStatus.BOOKED, now)
        return "booked", signup, CONFIRMATION

    def _notify(
        self, notice: str, validated: ValidatedRow, signup: Optional[SessionSignup]
    ) -> bool:
        try:
            if notice == CONFIRMATION and signup is not None:
                return self.notification_service.send_booking_confirmation(signup)
            return self.notification_service.send_cancellation_notice(
                validated.session, validated.user, signup
            )
        except Exception as e:
            self.logger.error(f"Failed to send {notice} for row {validated.row}: {str(e)}")
            return False

    # Helpers

    @staticmethod
    def _load_row(number: int, raw: Any) -> LoadedRow:
        try:
            if isinstance(raw, Mapping):
                record = AttendanceRecord.model_validate(dict(raw))
            else:
                record = AttendanceRecord.model_validate(raw, from_attributes=True)
        except ValidationError as e:
            reason = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'row'}: {err['msg']}"
                for err in e.errors()
            )
            return LoadedRow(row=number, parse_error=reason)
        return LoadedRow(row=number, record=record)
