"""
NoteCraft Backend: FastAPI Dependencies
=========================================

What:  Request-scoped accessors for the current user and for the
       process-scoped handles created in create_app().
Why:   Handlers never reach for module globals; tests swap any of these
       with app.dependency_overrides.

Process-scoped handles (app.state):
    llm_service      LLMService (Gemini, with circuit breaker)
    grammar_service  GrammarService (shared httpx.AsyncClient)
    login_limiter    SlidingWindowLimiter for failed logins
"""

import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from notecraft.middleware.rate_limit import SlidingWindowLimiter
from notecraft.services.auth_service import AuthService, auth_service
from notecraft.services.grammar_service import GrammarService
from notecraft.services.llm_base import LLMService

# auto_error=False: a missing header becomes AuthError(MISSING) with our
# error body instead of FastAPI's default 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service() -> AuthService:
    return auth_service


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> uuid.UUID:
    """The verified user id, or AuthError (→ 401)."""
    return auth.verify(credentials.credentials if credentials else None)


def get_llm_service(request: Request) -> LLMService:
    return request.app.state.llm_service


def get_grammar_service(request: Request) -> GrammarService:
    return request.app.state.grammar_service


def get_login_limiter(request: Request) -> SlidingWindowLimiter:
    return request.app.state.login_limiter


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"
