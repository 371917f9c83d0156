"""
NoteCraft Backend: Notes Route Handlers
=========================================

What:  CRUD for the caller's notes, plus server-side application of a
       grammar correction batch to a stored note.
How:   The owner always comes from the verified token (get_current_user_id).
       Handlers only translate between HTTP and NoteService.

Caching:
    Notes change on every edit, so responses are marked no-store.
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from notecraft.database import get_db_session
from notecraft.dependencies import get_current_user_id
from notecraft.schemas.common import ErrorResponse, MessageResponse
from notecraft.schemas.note import NoteCorrectionsRequest, NoteResponse, NoteWriteRequest
from notecraft.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["Notes"])

NOT_FOUND = {404: {"description": "Note not found", "model": ErrorResponse}}
UNAUTHORIZED = {401: {"description": "Missing, expired or invalid token", "model": ErrorResponse}}


@router.get(
    "",
    response_model=List[NoteResponse],
    responses={**UNAUTHORIZED},
    summary="List my notes, most recently edited first",
)
async def list_notes(
    response: Response,
    owner_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[NoteResponse]:
    notes = await note_service.list(db, owner_id)
    response.headers["X-Total-Count"] = str(len(notes))
    response.headers["Cache-Control"] = "no-store"
    return [NoteResponse.model_validate(note) for note in notes]


@router.get(
    "/{note_id}",
    response_model=NoteResponse,
    responses={**UNAUTHORIZED, **NOT_FOUND},
    summary="Get one of my notes",
)
async def get_note(
    note_id: uuid.UUID,
    response: Response,
    owner_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.get(db, owner_id, note_id)
    response.headers["Cache-Control"] = "no-store"
    return NoteResponse.model_validate(note)


@router.post(
    "",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**UNAUTHORIZED, 400: {"description": "Invalid title or content", "model": ErrorResponse}},
    summary="Create a note",
)
async def create_note(
    body: NoteWriteRequest,
    owner_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.create(db, owner_id, body.title, body.content)
    return NoteResponse.model_validate(note)


@router.put(
    "/{note_id}",
    response_model=NoteResponse,
    responses={**UNAUTHORIZED, **NOT_FOUND},
    summary="Replace a note's title and content",
)
async def update_note(
    note_id: uuid.UUID,
    body: NoteWriteRequest,
    owner_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.update(db, owner_id, note_id, body.title, body.content)
    return NoteResponse.model_validate(note)


@router.delete(
    "/{note_id}",
    response_model=MessageResponse,
    responses={**UNAUTHORIZED, **NOT_FOUND},
    summary="Delete a note",
)
async def delete_note(
    note_id: uuid.UUID,
    owner_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await note_service.delete(db, owner_id, note_id)
    return MessageResponse(message="Note deleted successfully")


@router.post(
    "/{note_id}/corrections",
    response_model=NoteResponse,
    responses={
        **UNAUTHORIZED,
        **NOT_FOUND,
        400: {"description": "Issue out of range or overlapping issues", "model": ErrorResponse},
        409: {"description": "Note changed since it was checked", "model": ErrorResponse},
    },
    summary="Apply grammar corrections to a stored note",
    description=(
        "Applies every issue's first replacement to the note's stored content. "
        "`snapshot` must be the token /api/ai/check returned for that content; "
        "if the note has changed since, nothing is applied and 409 is returned."
    ),
)
async def apply_corrections(
    note_id: uuid.UUID,
    body: NoteCorrectionsRequest,
    owner_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.apply_corrections(
        db,
        owner_id,
        note_id,
        body.snapshot,
        [issue.to_issue() for issue in body.issues],
    )
    return NoteResponse.model_validate(note)
