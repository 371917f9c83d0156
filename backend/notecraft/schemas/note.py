"""
NoteCraft Backend: Note Request/Response Schemas
==================================================

What:  Pydantic models defining the notes API contract.
Why:   Strict input validation, automatic serialization, and OpenAPI docs.

Design Decision:
    Schemas are separate from SQLAlchemy models because:
    1. We control exactly what data is exposed (owner_id never leaves the server)
    2. Request bodies cannot smuggle fields such as an owner into the model
    3. OpenAPI docs are generated from schemas, not from DB models
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, field_validator

from notecraft.schemas.ai import GrammarIssue


class NoteWriteRequest(BaseModel):
    """
    Body of POST /api/notes and PUT /api/notes/{id}.

    PUT is a full replace: both fields are required every time.
    """
    title: str = Field(max_length=200, description="Note title (required)")
    content: str = Field(default="", description="Note body; may contain editor HTML")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v


class NoteResponse(BaseModel):
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    title: str
    content: str
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")
    updated_at: datetime = Field(description="When the note was last changed (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class NoteCorrectionsRequest(BaseModel):
    """
    Body of POST /api/notes/{id}/corrections.

    `snapshot` is the token /api/ai/check returned for the content the
    issues were generated against. It must match the stored content.
    """
    snapshot: str = Field(min_length=64, max_length=64, description="Snapshot token from the check")
    issues: List[GrammarIssue] = Field(description="Issues to apply with their first replacement")
