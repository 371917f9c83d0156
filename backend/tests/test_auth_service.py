"""
NoteCraft Backend: Auth Service Tests
=======================================

What we test:
    ✅ Token round trip; expired, tampered, foreign and garbage tokens
    ✅ Password hashing never stores the plain password
    ✅ Login: identical failure for unknown email and wrong password
    ✅ Login lockout after repeated failures, reset on success
"""

import uuid
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from jose import jwt

from notecraft.exceptions import AuthError, AuthReason, RateLimitExceededError, ValidationError
from notecraft.middleware.rate_limit import InMemoryRateLimitStore, SlidingWindowLimiter
from notecraft.models.user import User
from notecraft.services.auth_service import AuthService, login_limit_key


@pytest.fixture
def service():
    return AuthService(secret="unit-test-secret-0123456789", algorithm="HS256", expire_minutes=60)


@pytest.fixture
def limiter():
    return SlidingWindowLimiter(InMemoryRateLimitStore(), limit=2, window=900)


def returning_user(mock_db_session, user):
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    mock_db_session.execute.return_value = result


class TestTokens:

    def test_round_trip(self, service):
        user_id = uuid.uuid4()
        assert service.verify(service.create_access_token(user_id)) == user_id

    @pytest.mark.parametrize("credential", [None, "", "   "])
    def test_missing(self, service, credential):
        with pytest.raises(AuthError) as exc_info:
            service.verify(credential)
        assert exc_info.value.reason == AuthReason.MISSING

    def test_expired(self, service):
        token = service.create_access_token(uuid.uuid4(), expires_delta=timedelta(seconds=-10))
        with pytest.raises(AuthError) as exc_info:
            service.verify(token)
        assert exc_info.value.reason == AuthReason.EXPIRED
        assert exc_info.value.message == "Session expired. Please log in again."

    def test_signed_with_other_secret(self, service):
        other = AuthService(secret="a-completely-different-secret", algorithm="HS256")
        with pytest.raises(AuthError) as exc_info:
            service.verify(other.create_access_token(uuid.uuid4()))
        assert exc_info.value.reason == AuthReason.INVALID

    def test_garbage(self, service):
        with pytest.raises(AuthError) as exc_info:
            service.verify("not.a.jwt")
        assert exc_info.value.reason == AuthReason.INVALID

    def test_subject_must_be_uuid(self, service):
        token = jwt.encode({"sub": "42"}, service.secret, algorithm="HS256")
        with pytest.raises(AuthError) as exc_info:
            service.verify(token)
        assert exc_info.value.reason == AuthReason.INVALID


class TestPasswords:

    @pytest.mark.asyncio
    async def test_hash_and_verify(self, service):
        hashed = await service.hash_password("s3cret!")
        assert "s3cret!" not in hashed
        assert await service.verify_password("s3cret!", hashed)
        assert not await service.verify_password("wrong", hashed)


class TestLogin:

    @pytest.mark.asyncio
    async def test_success_returns_token(self, service, limiter, mock_db_session):
        user = User(id=uuid.uuid4(), email="ann@example.com", password_hash=await service.hash_password("pw1234"))
        returning_user(mock_db_session, user)

        found, token = await service.login(mock_db_session, limiter, "ann@example.com", "pw1234", "1.2.3.4")

        assert found is user
        assert service.verify(token) == user.id

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_the_same(self, service, limiter, mock_db_session):
        returning_user(mock_db_session, None)
        with pytest.raises(ValidationError) as unknown:
            await service.login(mock_db_session, limiter, "nobody@example.com", "pw1234", "1.2.3.4")

        user = User(id=uuid.uuid4(), email="ann@example.com", password_hash=await service.hash_password("pw1234"))
        returning_user(mock_db_session, user)
        with pytest.raises(ValidationError) as wrong:
            await service.login(mock_db_session, limiter, "ann@example.com", "nope12", "1.2.3.4")

        assert unknown.value.message == wrong.value.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_lockout_after_failures(self, service, limiter, mock_db_session):
        returning_user(mock_db_session, None)
        for _ in range(limiter.limit):
            with pytest.raises(ValidationError):
                await service.login(mock_db_session, limiter, "ann@example.com", "guess1", "1.2.3.4")

        with pytest.raises(RateLimitExceededError) as exc_info:
            await service.login(mock_db_session, limiter, "ann@example.com", "guess1", "1.2.3.4")
        assert exc_info.value.retry_after > 0

        # Another IP for the same email is counted separately
        with pytest.raises(ValidationError):
            await service.login(mock_db_session, limiter, "ann@example.com", "guess1", "5.6.7.8")

    @pytest.mark.asyncio
    async def test_success_clears_failures(self, service, limiter, mock_db_session):
        user = User(id=uuid.uuid4(), email="ann@example.com", password_hash=await service.hash_password("pw1234"))
        returning_user(mock_db_session, user)

        with pytest.raises(ValidationError):
            await service.login(mock_db_session, limiter, "ann@example.com", "wrong1", "1.2.3.4")
        await service.login(mock_db_session, limiter, "ann@example.com", "pw1234", "1.2.3.4")

        key = login_limit_key("ann@example.com", "1.2.3.4")
        assert await limiter.retry_after(key) is None
        assert await limiter.store.recent(key, 0) == []


class TestRegister:

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service, mock_db_session):
        returning_user(mock_db_session, User(id=uuid.uuid4(), email="ann@example.com", password_hash="x"))

        with pytest.raises(ValidationError) as exc_info:
            await service.register(mock_db_session, "ann@example.com", "pw1234")
        assert exc_info.value.message == "User already exists"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_new_user_is_hashed(self, service, mock_db_session):
        returning_user(mock_db_session, None)

        user, token = await service.register(mock_db_session, "ann@example.com", "pw1234")

        mock_db_session.add.assert_called_once_with(user)
        assert user.password_hash != "pw1234"
        assert user.email == "ann@example.com"
