"""
NoteCraft Backend: Authentication Service
===========================================

What:  Password hashing, bearer token issue/verification, register and login.
Why:   Every notes and AI route needs the caller's user id; this is the one
       place that decides whether a credential proves it.
How:   - Passwords: passlib CryptContext (pbkdf2_sha256). Hashing runs in
         the threadpool so it does not stall the event loop.
       - Tokens: JWT via python-jose, HS256, claims `sub` (user id) and `exp`.
       - Failed logins: counted per (email, client IP) in a sliding window.

Verification outcomes:
    missing credential  → AuthError(MISSING)
    expired token       → AuthError(EXPIRED)
    anything else wrong → AuthError(INVALID)  (bad signature, garbage, no sub)
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from notecraft.config import settings
from notecraft.exceptions import (
    AuthError,
    AuthReason,
    DatabaseError,
    RateLimitExceededError,
    ValidationError,
)
from notecraft.middleware.rate_limit import SlidingWindowLimiter
from notecraft.models.user import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

INVALID_CREDENTIALS = "Invalid credentials"
USER_EXISTS = "User already exists"


def login_limit_key(email: str, client_ip: str) -> str:
    return f"login:{email}:{client_ip}"


class AuthService:
    """
    Stateless apart from its signing configuration.

    The secret, algorithm and lifetime default to the settings; tests pass
    their own.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_minutes: Optional[int] = None,
    ):
        self.secret = secret or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.expire_minutes = expire_minutes or settings.jwt_expire_minutes

    # ── Passwords ─────────────────────────────────────────────────────────

    async def hash_password(self, password: str) -> str:
        return await run_in_threadpool(pwd_context.hash, password)

    async def verify_password(self, password: str, password_hash: str) -> bool:
        return await run_in_threadpool(pwd_context.verify, password, password_hash)

    # ── Tokens ────────────────────────────────────────────────────────────

    def create_access_token(
        self, user_id: uuid.UUID, expires_delta: Optional[timedelta] = None
    ) -> str:
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=self.expire_minutes)
        )
        claims = {"sub": str(user_id), "exp": expire}
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, credential: Optional[str]) -> uuid.UUID:
        """
        Return the user id a bearer credential proves.

        Raises:
            AuthError: with reason MISSING, EXPIRED or INVALID (→ 401)
        """
        if not credential or not credential.strip():
            raise AuthError(AuthReason.MISSING)

        try:
            payload = jwt.decode(credential.strip(), self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise AuthError(AuthReason.EXPIRED)
        except JWTError as e:
            logger.debug("Rejected bearer token: %s", e)
            raise AuthError(AuthReason.INVALID)

        subject = payload.get("sub")
        if not subject:
            raise AuthError(AuthReason.INVALID)
        try:
            return uuid.UUID(str(subject))
        except ValueError:
            raise AuthError(AuthReason.INVALID)

    # ── Accounts ──────────────────────────────────────────────────────────

    async def register(
        self, db: AsyncSession, email: str, password: str
    ) -> Tuple[User, str]:
        """
        Create an account and return it with a fresh token.

        `email` arrives already validated and lower-cased by the schema.

        Raises:
            ValidationError: email already registered (→ 400)
            DatabaseError: insert failed for another reason (→ 500)
        """
        if await self._find_user(db, email) is not None:
            raise ValidationError(USER_EXISTS, field="email")

        user = User(
            id=uuid.uuid4(),
            email=email,
            password_hash=await self.hash_password(password),
        )
        try:
            db.add(user)
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            raise ValidationError(USER_EXISTS, field="email")
        except SQLAlchemyError as e:
            logger.error("Failed to create user: %s", e, exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("User %s registered", user.id)
        return user, self.create_access_token(user.id)

    async def login(
        self,
        db: AsyncSession,
        limiter: SlidingWindowLimiter,
        email: str,
        password: str,
        client_ip: str,
    ) -> Tuple[User, str]:
        """
        Check credentials and return the user with a fresh token.

        Unknown email and wrong password are reported identically. After
        `limiter.limit` failures for the same email and IP inside the
        window, further attempts are refused until the oldest failure ages
        out; a success clears the count.

        Raises:
            RateLimitExceededError: too many recent failures (→ 429)
            ValidationError: bad credentials (→ 400)
        """
        key = login_limit_key(email, client_ip)
        retry_after = await limiter.retry_after(key)
        if retry_after is not None:
            logger.warning("Login blocked for %s from %s", email, client_ip)
            raise RateLimitExceededError(
                retry_after=retry_after,
                message=(
                    f"Too many failed login attempts. "
                    f"Please try again in {retry_after} seconds."
                ),
            )

        user = await self._find_user(db, email)
        if user is None or not await self.verify_password(password, user.password_hash):
            await limiter.hit(key)
            logger.info("Failed login for %s from %s", email, client_ip)
            raise ValidationError(INVALID_CREDENTIALS)

        await limiter.reset(key)
        return user, self.create_access_token(user.id)

    async def _find_user(self, db: AsyncSession, email: str) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user: %s", e, exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})


auth_service = AuthService()
