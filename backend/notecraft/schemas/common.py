"""
NoteCraft Backend: Shared Response Schemas
============================================

What:  Error and health response models used across all routers.
Why:   Clients need one error structure to parse programmatically, and the
       OpenAPI docs reference these models in every `responses=` table.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Content is required and cannot be empty",
            "details": {"field": "content"},
            "request_id": "1f0c9a2e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Service and dependency status for monitors and load balancers."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    llm: str = Field(description="LLM provider status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
