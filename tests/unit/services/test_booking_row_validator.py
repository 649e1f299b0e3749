from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Dict, List
from unittest.mock import Mock

import pytest

from f2f_booking.core.messages import BookingErrorCode
from f2f_booking.schemas.booking_upload import AttendanceRecord, LoadedRow
from f2f_booking.services.booking_validator import BookingRowValidator
from f2f_booking.services.identity_resolver import IdentityResult

AS_OF = datetime(2030, 1, 1, tzinfo=timezone.utc)

pytestmark = pytest.mark.unit


def _session(session_id: str = "s1", capacity: int = 2, **overrides: object) -> Mock:
    session = Mock()
    session.id = session_id
    session.facetoface_id = overrides.get("facetoface_id", "f1")
    session.capacity = capacity
    session.allow_overbook = overrides.get("allow_overbook", False)
    session.has_started.return_value = overrides.get("started", False)
    return session


def _rows(*records: Dict[str, object]) -> List[LoadedRow]:
    return [
        LoadedRow(row=n, record=AttendanceRecord.model_validate(r))
        for n, r in enumerate(records, start=1)
    ]



def _seat(validator: BookingRowValidator, *user_ids: str) -> None:
    """Current attendees of every session, as the repository would report them."""
    validator.attendance_repository.get_attendee_user_ids.side_effect = (
        lambda _session_id: set(user_ids)
    )


@pytest.fixture
def identity_resolver() -> Mock:
    resolver = Mock()
    resolver.resolve.side_effect = lambda email: IdentityResult(
        email=email, user=SimpleNamespace(id=f"user-{email}")
    )
    return resolver


@pytest.fixture
def sessions() -> Dict[str, Mock]:
    return {"s1": _session()}


@pytest.fixture
def validator(identity_resolver: Mock, sessions: Dict[str, Mock]) -> BookingRowValidator:
    session_repo = Mock()
    session_repo.get_session.side_effect = sessions.get
    attendance_repo = Mock()
    attendance_repo.get_attendee_user_ids.side_effect = lambda _session_id: set()
    return BookingRowValidator(
        Mock(),
        SimpleNamespace(id="f1"),
        identity_resolver,
        session_repository=session_repo,
        attendance_repository=attendance_repo,
    )


class TestSeatLedger:
    def test_running_excess_in_load_order(self, validator: BookingRowValidator) -> None:
        rows = _rows(*({"email": f"u{i}@x.com", "session": "s1"} for i in range(4)))

        outcome = validator.validate(rows, AS_OF)

        assert [(e.row, e.params["amount"]) for e in outcome.errors] == [(3, 1), (4, 2)]
        assert [v.row for v in outcome.valid_rows] == [1, 2]

    def test_existing_attendees_start_the_ledger(self, validator: BookingRowValidator) -> None:
        _seat(validator, "user-a@x.com", "user-b@x.com")
        rows = _rows(
            {"email": "a@x.com", "session": "s1"},
            {"email": "c@x.com", "session": "s1"},
        )

        outcome = validator.validate(rows, AS_OF)

        assert [(e.row, e.code) for e in outcome.errors] == [
            (2, BookingErrorCode.SESSION_OVERBOOKED)
        ]
        validator.attendance_repository.get_attendee_user_ids.assert_called_once_with("s1")

    def test_cancellation_frees_seat(self, validator: BookingRowValidator) -> None:
        _seat(validator, "user-a@x.com", "user-b@x.com")
        rows = _rows(
            {"email": "a@x.com", "session": "s1", "status": "cancelled"},
            {"email": "c@x.com", "session": "s1"},
        )

        assert validator.validate(rows, AS_OF).errors == []

    def test_overbookable_session(
        self, validator: BookingRowValidator, sessions: Dict[str, Mock]
    ) -> None:
        sessions["s1"] = _session(capacity=0, allow_overbook=True)
        rows = _rows({"email": "a@x.com", "session": "s1"})

        assert validator.validate(rows, AS_OF).errors == []

    def test_rows_with_errors_claim_no_seat(
        self, validator: BookingRowValidator, identity_resolver: Mock
    ) -> None:
        def resolve(email: str) -> IdentityResult:
            if email == "ghost@x.com":
                return IdentityResult(email=email, error=BookingErrorCode.USER_DOES_NOT_EXIST)
            return IdentityResult(email=email, user=SimpleNamespace(id=f"user-{email}"))

        identity_resolver.resolve.side_effect = resolve
        rows = _rows(
            {"email": "ghost@x.com", "session": "s1"},
            {"email": "a@x.com", "session": "s1", "notificationtype": "fax"},
            {"email": "b@x.com", "session": "s1"},
            {"email": "c@x.com", "session": "s1"},
        )

        outcome = validator.validate(rows, AS_OF)

        assert outcome.error_rows == {1, 2}
        assert [v.row for v in outcome.valid_rows] == [3, 4]

    def test_ledgers_are_per_session(
        self, validator: BookingRowValidator, sessions: Dict[str, Mock]
    ) -> None:
        sessions["s1"] = _session("s1", capacity=1)
        sessions["s2"] = _session("s2", capacity=1)
        rows = _rows(
            {"email": "a@x.com", "session": "s1"},
            {"email": "b@x.com", "session": "s2"},
        )

        assert validator.validate(rows, AS_OF).errors == []

    def test_attendee_set_from_repository_is_not_modified(
        self, validator: BookingRowValidator, sessions: Dict[str, Mock]
    ) -> None:
        sessions["s1"] = _session("s1", capacity=1)
        sessions["s2"] = _session("s2", capacity=1)
        attendees: set = set()
        validator.attendance_repository.get_attendee_user_ids.side_effect = None
        validator.attendance_repository.get_attendee_user_ids.return_value = attendees
        rows = _rows(
            {"email": "a@x.com", "session": "s1"},
            {"email": "b@x.com", "session": "s2"},
        )

        assert validator.validate(rows, AS_OF).errors == []
        assert attendees == set()


class TestRowChecks:
    def test_every_applicable_error_is_reported(
        self, validator: BookingRowValidator, sessions: Dict[str, Mock]
    ) -> None:
        sessions["s9"] = _session("s9", facetoface_id="other")
        rows = _rows(
            {"email": "a@x.com", "session": "s9", "status": "maybe", "notificationtype": "fax"}
        )

        codes = {e.code for e in validator.validate(rows, AS_OF).errors}

        assert codes == {
            BookingErrorCode.SESSION_FROM_ANOTHER_MODULE,
            BookingErrorCode.INVALID_STATUS,
            BookingErrorCode.INVALID_NOTIFICATION_TYPE,
        }

    def test_invalid_status_lists_allowed_values(self, validator: BookingRowValidator) -> None:
        rows = _rows({"email": "a@x.com", "session": "s1", "status": "maybe"})

        [error] = validator.validate(rows, AS_OF).errors

        assert error.params["status"] == "maybe"
        assert "fully_attended" in error.params["allowed"]
        assert "maybe" in error.message

    def test_started_session_blocks_booking_only(
        self, validator: BookingRowValidator, sessions: Dict[str, Mock]
    ) -> None:
        sessions["s1"] = _session(started=True)
        _seat(validator, "user-b@x.com")
        rows = _rows(
            {"email": "a@x.com", "session": "s1", "status": "booked"},
            {"email": "b@x.com", "session": "s1", "status": "no_show"},
        )

        outcome = validator.validate(rows, AS_OF)

        assert [(e.row, e.code) for e in outcome.errors] == [
            (1, BookingErrorCode.CANNOT_SIGNUP_SESSION_OVER)
        ]
        sessions["s1"].has_started.assert_called_with(AS_OF)

    def test_malformed_row(self, validator: BookingRowValidator) -> None:
        rows = [LoadedRow(row=1, parse_error="email: Field required")]

        [error] = validator.validate(rows, AS_OF).errors

        assert error.code == BookingErrorCode.MALFORMED_RECORD
        assert error.message == "Row could not be read: email: Field required"
        validator.identity_resolver.resolve.assert_not_called()

    def test_sessions_are_looked_up_once_per_pass(self, validator: BookingRowValidator) -> None:
        rows = _rows(
            {"email": "a@x.com", "session": "s1"},
            {"email": "b@x.com", "session": "s1"},
        )

        validator.validate(rows, AS_OF)

        validator.session_repository.get_session.assert_called_once_with("s1")
