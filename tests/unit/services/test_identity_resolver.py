from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from f2f_booking.core.messages import BookingErrorCode
from f2f_booking.services.identity_resolver import IdentityResolver

pytestmark = pytest.mark.unit


@pytest.fixture
def user_repo() -> Mock:
    repo = Mock()
    repo.find_by_email.return_value = [SimpleNamespace(id="u1", email="a@x.com")]
    repo.is_enrolled.return_value = True
    return repo


@pytest.fixture
def resolver(user_repo: Mock) -> IdentityResolver:
    return IdentityResolver(Mock(), course_id="c1", user_repository=user_repo)


class TestIdentityResolver:
    def test_resolves_enrolled_user(self, resolver: IdentityResolver, user_repo: Mock) -> None:
        result = resolver.resolve("a@x.com")

        assert result.ok
        assert result.user.id == "u1"
        user_repo.find_by_email.assert_called_once_with("a@x.com", case_sensitive=True)
        user_repo.is_enrolled.assert_called_once_with("u1", "c1")

    def test_unknown_user(self, resolver: IdentityResolver, user_repo: Mock) -> None:
        user_repo.find_by_email.return_value = []

        result = resolver.resolve("nobody@x.com")

        assert not result.ok
        assert result.error == BookingErrorCode.USER_DOES_NOT_EXIST
        user_repo.is_enrolled.assert_not_called()

    def test_not_enrolled_keeps_user(self, resolver: IdentityResolver, user_repo: Mock) -> None:
        user_repo.is_enrolled.return_value = False

        result = resolver.resolve("a@x.com")

        assert result.error == BookingErrorCode.USER_NOT_ENROLLED
        assert result.user.id == "u1"
        assert not result.ok

    def test_multiple_matches_in_case_insensitive_mode(
        self, resolver: IdentityResolver, user_repo: Mock
    ) -> None:
        user_repo.find_by_email.return_value = [
            SimpleNamespace(id="u1", email="a@x.com"),
            SimpleNamespace(id="u2", email="A@x.com"),
        ]
        resolver.set_case_insensitive(True)

        result = resolver.resolve("A@X.COM")

        assert result.error == BookingErrorCode.MULTIPLE_USERS_MATCHED
        user_repo.find_by_email.assert_called_once_with("A@X.COM", case_sensitive=False)

    def test_results_are_cached_per_mode(self, resolver: IdentityResolver, user_repo: Mock) -> None:
        resolver.resolve("a@x.com")
        resolver.resolve("a@x.com")
        assert user_repo.find_by_email.call_count == 1

        resolver.set_case_insensitive(True)
        resolver.resolve("A@x.com")
        resolver.resolve("a@X.com")
        assert user_repo.find_by_email.call_count == 2

    def test_cached_result_reports_the_queried_email(self, resolver: IdentityResolver) -> None:
        resolver.set_case_insensitive(True)
        resolver.resolve("a@x.com")

        assert resolver.resolve("A@X.com").email == "A@X.com"

    def test_clear_cache(self, resolver: IdentityResolver, user_repo: Mock) -> None:
        resolver.resolve("a@x.com")
        resolver.clear_cache()
        resolver.resolve("a@x.com")

        assert user_repo.find_by_email.call_count == 2
