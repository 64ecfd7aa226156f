import pytest
from unittest.mock import AsyncMock, MagicMock

from src.api.utils.jwt import TokenService
from src.api.utils.passwords import CredentialStore
from src.app.use_cases.otp import OtpCodeHasher
from src.libs.clock import FrozenClock


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    uow.users = MagicMock()
    uow.users.get_by_email = AsyncMock(return_value=None)
    uow.users.get_by_id = AsyncMock(return_value=None)
    uow.users.create = AsyncMock(side_effect=lambda user: user)
    uow.users.update = AsyncMock(side_effect=lambda user: user)

    uow.posts = MagicMock()
    uow.posts.get_by_id = AsyncMock(return_value=None)

    uow.favorites = MagicMock()
    uow.favorites.exists = AsyncMock(return_value=False)
    uow.favorites.add = AsyncMock(return_value=True)
    uow.favorites.remove = AsyncMock(return_value=True)
    uow.favorites.list_post_ids = AsyncMock(return_value=[])

    uow.otp_challenges = MagicMock()
    uow.otp_challenges.get_active_by_email = AsyncMock(return_value=None)
    uow.otp_challenges.replace_active = AsyncMock(side_effect=lambda challenge: challenge)
    uow.otp_challenges.increment_attempts = AsyncMock()
    uow.otp_challenges.mark_used = AsyncMock(return_value=True)

    uow.audit_events = MagicMock()
    uow.audit_events.create = AsyncMock()
    return uow


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def credentials():
    return CredentialStore(rounds=4, workers=2)


@pytest.fixture
def tokens(clock):
    return TokenService("unit-test-secret", default_ttl=900, clock=clock)


@pytest.fixture
def hasher():
    return OtpCodeHasher("unit-test-otp-secret")
