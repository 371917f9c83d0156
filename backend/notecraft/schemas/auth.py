"""
NoteCraft Backend: Authentication Schemas
===========================================

What:  Request/response models for /api/auth/register and /api/auth/login.
How:   Field validators run before the route body, so malformed credentials
       never reach the database. Their messages are what the client sees
       (RequestValidationError is mapped to a 400 in main.py).
"""

import re
import uuid

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
MIN_PASSWORD_LENGTH = 6


class CredentialsRequest(BaseModel):
    """Body of both register and login."""

    email: str = Field(default="", validate_default=True, description="Account email address")
    password: str = Field(default="", validate_default=True, description=f"At least {MIN_PASSWORD_LENGTH} characters")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please provide a valid email address")
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        return v


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """Returned by register (201) and login (200)."""
    token: str = Field(description="Bearer token for the Authorization header")
    user: UserResponse
