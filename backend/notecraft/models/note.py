"""
NoteCraft Backend: Note SQLAlchemy Model
==========================================

What:  ORM model representing the `notes` table.
Why:   Maps Python objects to database rows for type-safe database operations.
Who:   Used by NoteService for CRUD operations and by Alembic for schema management.

Table Design Rationale:
    - UUID primary key: Non-sequential, so IDs cannot be enumerated
    - owner_id: Every query filters on it; it comes from the verified token,
      never from the request body
    - content: TEXT, no length limit (notes can be arbitrarily long)
    - updated_at: Drives list ordering (most recently edited first)

    Composite index (owner_id, updated_at DESC):
        Serves the list query "my notes, newest edit first" with an index scan.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TIMESTAMP

from notecraft.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Note(Base):
    """
    A user's text note.

    Lifecycle:
        1. Created by POST /api/notes
        2. Title and content replaced as a whole by PUT or by applying corrections
        3. Deleted by DELETE /api/notes/{id}
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier",
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="User who created the note",
    )

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    # Why TIMESTAMP WITH TIME ZONE: all storage in UTC, conversion in the SPA
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_notes_owner_updated_at", owner_id, updated_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, owner_id={self.owner_id}, title='{self.title}')>"
