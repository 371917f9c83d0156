"""
NoteCraft Backend: Authentication Routes
==========================================

What:  POST /api/auth/register and POST /api/auth/login.
How:   Credentials are validated by CredentialsRequest before the handler
       runs; AuthService does the rest. Both return a bearer token and the
       public part of the user.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from notecraft.database import get_db_session
from notecraft.dependencies import get_auth_service, get_client_ip, get_login_limiter
from notecraft.middleware.rate_limit import SlidingWindowLimiter
from notecraft.schemas.auth import CredentialsRequest, TokenResponse, UserResponse
from notecraft.schemas.common import ErrorResponse
from notecraft.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid email/password or user already exists", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: CredentialsRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    user, token = await auth.register(db, body.email, body.password)
    return TokenResponse(token=token, user=UserResponse.model_validate(user))


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"description": "Invalid credentials", "model": ErrorResponse},
        429: {"description": "Too many failed attempts", "model": ErrorResponse},
    },
    summary="Log in and receive a bearer token",
)
async def login(
    body: CredentialsRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
    limiter: SlidingWindowLimiter = Depends(get_login_limiter),
    client_ip: str = Depends(get_client_ip),
) -> TokenResponse:
    user, token = await auth.login(db, limiter, body.email, body.password, client_ip)
    return TokenResponse(token=token, user=UserResponse.model_validate(user))
