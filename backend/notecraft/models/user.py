"""
NoteCraft Backend: User SQLAlchemy Model
==========================================

What:  ORM model for the `users` table (accounts that own notes).
Why:   Login looks users up by email; notes reference users by id.

The password is stored only as a passlib hash string, which embeds the
scheme, salt and rounds, so the column never needs to change when the
hashing parameters do.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TIMESTAMP

from notecraft.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Stored lower-cased; unique index enforces one account per address
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
