"""
NoteCraft Backend: Note Service (Owner-Scoped Note Store)
===========================================================

What:  Create, read, replace, delete and list notes, plus applying a batch
       of grammar corrections to a stored note.
Why:   Keeps ownership rules and transaction handling out of the routes.
How:   Every query filters on owner_id, which the routes take from the
       verified bearer token. A note that exists but belongs to someone
       else is indistinguishable from one that does not exist (404).

Design Decision:
    NoteService is stateless; it receives the db session per call. The
    session dependency (get_db_session) commits after the route returns,
    so methods only flush.

Error Handling:
    SQLAlchemy failures are logged with details and re-raised as
    DatabaseError, whose message is generic. NotFoundError and the
    correction errors pass through untouched.
"""

import logging
from datetime import datetime, timezone
from typing import List, Sequence
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notecraft.exceptions import DatabaseError, NotFoundError, StaleSnapshotError
from notecraft.models.note import Note
from notecraft.services.corrections import Issue, apply_all, snapshot_token

logger = logging.getLogger(__name__)


class NoteService:
    """
    Business logic for notes.

    Ordering: list() returns the most recently edited note first. Ties on
    updated_at fall back to creation time so the order is deterministic.
    """

    async def create(
        self, db: AsyncSession, owner_id: UUID, title: str, content: str = ""
    ) -> Note:
        now = datetime.now(timezone.utc)
        note = Note(
            owner_id=owner_id,
            title=title,
            content=content,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(note)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create note for %s: %s", owner_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not save the note. Please try again.",
                context={"error_type": type(e).__name__},
            )
        logger.info("Note %s created by %s", note.id, owner_id)
        return note

    async def get(self, db: AsyncSession, owner_id: UUID, note_id: UUID) -> Note:
        """
        Fetch one of the owner's notes.

        Query plan:
            SELECT * FROM notes WHERE id = :id AND owner_id = :owner
            → primary key lookup; the owner predicate only filters

        Raises:
            NotFoundError: no such note for this owner (→ 404)
            DatabaseError: query failed (→ 500)
        """
        try:
            result = await db.execute(
                select(Note).where(Note.id == note_id, Note.owner_id == owner_id)
            )
            note = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s: %s", note_id, e)
            raise DatabaseError(
                message="Could not retrieve the note. Please try again.",
                context={"note_id": str(note_id)},
            )

        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def update(
        self,
        db: AsyncSession,
        owner_id: UUID,
        note_id: UUID,
        title: str,
        content: str,
    ) -> Note:
        """Full replace of title and content. Bumps updated_at."""
        note = await self.get(db, owner_id, note_id)
        note.title = title
        note.content = content
        await self._touch(db, note)
        logger.info("Note %s updated", note_id)
        return note

    async def delete(self, db: AsyncSession, owner_id: UUID, note_id: UUID) -> None:
        note = await self.get(db, owner_id, note_id)
        try:
            await db.delete(note)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete note %s: %s", note_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not delete the note. Please try again.",
                context={"note_id": str(note_id)},
            )
        logger.info("Note %s deleted", note_id)

    async def list(self, db: AsyncSession, owner_id: UUID) -> List[Note]:
        """
        All of the owner's notes, most recently edited first.

        Served by idx_notes_owner_updated_at (owner_id, updated_at DESC).
        """
        try:
            result = await db.execute(
                select(Note)
                .where(Note.owner_id == owner_id)
                .order_by(desc(Note.updated_at), desc(Note.created_at))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing notes for %s: %s", owner_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not retrieve notes. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def apply_corrections(
        self,
        db: AsyncSession,
        owner_id: UUID,
        note_id: UUID,
        snapshot: str,
        issues: Sequence[Issue],
    ) -> Note:
        """
        Apply a batch of issues to the stored content of a note.

        The issues were generated by a grammar check of some text; `snapshot`
        is the token that check returned. If the stored content is no longer
        that text (edited since, or checked from a different draft), the
        offsets are meaningless and the batch is refused.

        Raises:
            NotFoundError: no such note for this owner (→ 404)
            StaleSnapshotError: content changed since the check (→ 409)
            OutOfRangeError, OverlappingIssuesError: bad batch (→ 400)
        """
        note = await self.get(db, owner_id, note_id)

        if snapshot_token(note.content) != snapshot:
            logger.info("Stale snapshot for note %s; corrections refused", note_id)
            raise StaleSnapshotError(context={"note_id": str(note_id)})

        corrected = apply_all(note.content, issues, reject_overlaps=True)
        if corrected == note.content:
            return note

        note.content = corrected
        await self._touch(db, note)
        logger.info("Applied %d corrections to note %s", len(issues), note_id)
        return note

    async def _touch(self, db: AsyncSession, note: Note) -> None:
        note.updated_at = datetime.now(timezone.utc)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to save note %s: %s", note.id, e, exc_info=True)
            raise DatabaseError(
                message="Could not save the note. Please try again.",
                context={"note_id": str(note.id)},
            )


# Stateless, so one shared instance serves every request
note_service = NoteService()
