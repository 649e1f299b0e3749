from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from f2f_booking.core.exceptions import FacetofaceNotFoundException
from f2f_booking.services.booking_manager import CANCELLATION, CONFIRMATION, BookingManager

pytestmark = pytest.mark.unit


@pytest.fixture
def manager() -> BookingManager:
    session_repo = Mock()
    session_repo.get_facetoface.return_value = SimpleNamespace(id="f1", course_id="c1")
    return BookingManager(
        Mock(),
        "f1",
        notification_service=Mock(),
        session_repository=session_repo,
        attendance_repository=Mock(),
        user_repository=Mock(),
    )


class TestLoadRecords:
    def test_rows_are_numbered_from_one(self, manager: BookingManager) -> None:
        manager.load_records(
            [
                {"email": "a@x.com", "session": "s1"},
                SimpleNamespace(email="b@x.com", session="s1", status="cancelled"),
            ]
        )

        assert [r.row for r in manager.rows] == [1, 2]
        assert manager.rows[1].record.status == "cancelled"

    def test_unreadable_rows_are_kept(self, manager: BookingManager) -> None:
        manager.load_records([{"email": "a@x.com"}])

        [loaded] = manager.rows
        assert loaded.record is None
        assert "session" in loaded.parse_error

    def test_reload_clears_previous_result(self, manager: BookingManager) -> None:
        manager.last_result = Mock()
        manager.identity_resolver._cache[(False, "a@x.com")] = Mock()

        manager.load_records([])

        assert manager.last_result is None
        assert manager.identity_resolver._cache == {}


class TestBatchFlags:
    def test_case_insensitive_is_forwarded(self, manager: BookingManager) -> None:
        manager.set_case_insensitive(True)

        assert manager.case_insensitive is True
        assert manager.identity_resolver.case_insensitive is True

    def test_suppress_notifications(self, manager: BookingManager) -> None:
        assert manager.notifications_suppressed is False
        manager.suppress_notifications()
        assert manager.notifications_suppressed is True
        manager.suppress_notifications(False)
        assert manager.notifications_suppressed is False


class TestNotify:
    def test_confirmation_goes_to_signup(self, manager: BookingManager) -> None:
        signup = Mock()
        validated = SimpleNamespace(row=1, session=Mock(), user=Mock())
        manager.notification_service.send_booking_confirmation.return_value = True

        assert manager._notify(CONFIRMATION, validated, signup) is True
        manager.notification_service.send_booking_confirmation.assert_called_once_with(signup)

    def test_cancellation_without_signup(self, manager: BookingManager) -> None:
        validated = SimpleNamespace(row=1, session=Mock(), user=Mock())

        manager._notify(CANCELLATION, validated, None)

        manager.notification_service.send_cancellation_notice.assert_called_once_with(
            validated.session, validated.user, None
        )

    def test_failures_are_logged_not_raised(self, manager: BookingManager) -> None:
        validated = SimpleNamespace(row=4, session=Mock(), user=Mock())
        manager.notification_service.send_cancellation_notice.side_effect = RuntimeError("smtp")

        assert manager._notify(CANCELLATION, validated, None) is False


def test_unknown_facetoface_raises() -> None:
    session_repo = Mock()
    session_repo.get_facetoface.return_value = None

    with pytest.raises(FacetofaceNotFoundException) as info:
        BookingManager(Mock(), "missing", session_repository=session_repo)

    assert info.value.details == {"facetoface_id": "missing"}
