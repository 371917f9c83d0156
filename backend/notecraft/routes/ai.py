"""
NoteCraft Backend: AI Route Handlers
======================================

What:  Summaries, grammar checks, style rewrites, and applying grammar
       corrections to client-held text.
Why:   The SPA never talks to the AI providers directly; keys stay on the
       server and every answer is validated and cleaned here.
How:   Input rules run first and in a fixed order, so the client always
       gets the same message for the same bad input. Only then is an
       upstream service called, through the injected LLMService or
       GrammarService.

Routes:
    POST /api/ai/summarize        {content}        → {summary}
    POST /api/ai/check            {content}        → {matches, snapshot}
    POST /api/ai/style-transform  {content, style} → {transformedText}
    POST /api/ai/apply            one issue        → {content, snapshot, remaining}
    POST /api/ai/fix-all          issue batch      → {content, snapshot, applied, skipped}

Short content:
    Text with ai_min_words words or fewer is never sent to the model.
    Summarize returns it as is; style-transform rejects it.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends

from notecraft.config import settings
from notecraft.dependencies import get_current_user_id, get_grammar_service, get_llm_service
from notecraft.exceptions import StaleSnapshotError, UpstreamError, ValidationError
from notecraft.schemas.ai import (
    SUPPORTED_STYLES,
    ApplyCorrectionRequest,
    ApplyCorrectionResponse,
    CheckResponse,
    ContentRequest,
    FixAllRequest,
    FixAllResponse,
    GrammarIssue,
    StyleTransformRequest,
    StyleTransformResponse,
    SummaryResponse,
)
from notecraft.schemas.common import ErrorResponse
from notecraft.services.corrections import (
    apply_all,
    apply_one,
    check_bounds,
    rebase_issues,
    snapshot_token,
)
from notecraft.services.grammar_service import GrammarService
from notecraft.services.llm_base import LLMService
from notecraft.services.text_cleaning import (
    clean_summary,
    clean_transformed_text,
    count_words,
    strip_html,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])

UPSTREAM_ERRORS = {
    401: {"description": "Missing, expired or invalid token", "model": ErrorResponse},
    413: {"description": "Text too large for the provider", "model": ErrorResponse},
    429: {"description": "Provider rate limit", "model": ErrorResponse},
    502: {"description": "Provider failed", "model": ErrorResponse},
    503: {"description": "Provider circuit open", "model": ErrorResponse},
}
BAD_INPUT = {400: {"description": "Invalid input", "model": ErrorResponse}}
STALE = {409: {"description": "Snapshot does not match the content", "model": ErrorResponse}}


def _require_content(content: Optional[str]) -> str:
    """HTML-stripped content, or ValidationError when nothing is left."""
    stripped = strip_html(content or "")
    if not stripped:
        raise ValidationError("Content is required and cannot be empty", field="content")
    return stripped


def _check_snapshot(content: str, snapshot: Optional[str]) -> None:
    if snapshot is not None and snapshot != snapshot_token(content):
        raise StaleSnapshotError(context={"field": "snapshot"})


@router.post(
    "/summarize",
    response_model=SummaryResponse,
    responses={**BAD_INPUT, **UPSTREAM_ERRORS},
    summary="Summarize note content",
)
async def summarize(
    body: ContentRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    llm: LLMService = Depends(get_llm_service),
) -> SummaryResponse:
    stripped = _require_content(body.content)

    if len(stripped) < settings.summarize_min_chars:
        raise ValidationError(
            f"Content must be at least {settings.summarize_min_chars} characters long",
            field="content",
        )

    if count_words(stripped) <= settings.ai_min_words:
        return SummaryResponse(summary=stripped)

    summary = clean_summary(await llm.summarize(stripped))
    if not summary:
        raise UpstreamError("The AI service returned an empty summary. Please try again.")
    logger.info("Summarized %d chars into %d for user %s", len(stripped), len(summary), user_id)
    return SummaryResponse(summary=summary)


@router.post(
    "/check",
    response_model=CheckResponse,
    responses={**BAD_INPUT, **UPSTREAM_ERRORS},
    summary="Check grammar and spelling",
    description=(
        "Returns LanguageTool matches with offsets into `content` exactly as sent "
        "(HTML included), plus a snapshot token identifying that text."
    ),
)
async def check(
    body: ContentRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    grammar: GrammarService = Depends(get_grammar_service),
) -> CheckResponse:
    if not body.content or not body.content.strip():
        raise ValidationError("Content is required", field="content")

    issues = await grammar.check(body.content)
    return CheckResponse(
        matches=[GrammarIssue.from_issue(issue) for issue in issues],
        snapshot=snapshot_token(body.content),
    )


@router.post(
    "/style-transform",
    response_model=StyleTransformResponse,
    response_model_by_alias=True,
    responses={**BAD_INPUT, **UPSTREAM_ERRORS},
    summary="Rewrite note content in another style",
)
async def style_transform(
    body: StyleTransformRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    llm: LLMService = Depends(get_llm_service),
) -> StyleTransformResponse:
    stripped = _require_content(body.content)

    if count_words(stripped) <= settings.ai_min_words:
        raise ValidationError(
            f"Content must be more than {settings.ai_min_words} words to transform",
            field="content",
        )

    max_length = settings.style_max_content_length
    if len(stripped) > max_length:
        raise ValidationError(
            f"Content is too long. Maximum length is {max_length} characters.",
            field="content",
            context={"maxLength": max_length},
        )

    if not body.style or not body.style.strip():
        raise ValidationError("Style is required", field="style")

    style = body.style.strip().lower()
    if style not in SUPPORTED_STYLES:
        raise ValidationError(
            f"Style must be one of: {', '.join(SUPPORTED_STYLES)}",
            field="style",
        )

    raw = await llm.transform_style(stripped, style)
    transformed = clean_transformed_text(raw, settings.style_max_response_length)
    if not transformed:
        raise UpstreamError("The AI service returned an empty response. Please try again.")
    return StyleTransformResponse(transformed_text=transformed)


@router.post(
    "/apply",
    response_model=ApplyCorrectionResponse,
    responses={**BAD_INPUT, **STALE},
    summary="Apply one correction and rebase the rest",
    description=(
        "Replaces the issue's span in `content` (with `replacement`, or the issue's "
        "first candidate) and returns `remaining` moved onto the new text. Issues "
        "overlapping the edited span are dropped from `remaining`."
    ),
)
async def apply_correction(
    body: ApplyCorrectionRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> ApplyCorrectionResponse:
    _check_snapshot(body.content, body.snapshot)

    issue = body.issue.to_issue()
    replacement = body.replacement if body.replacement is not None else issue.best_replacement
    if replacement is None:
        raise ValidationError(
            "This issue has no suggested replacement; provide one explicitly",
            field="replacement",
        )

    remaining = [item.to_issue() for item in body.remaining]
    for other in remaining:
        check_bounds(body.content, other)

    content = apply_one(body.content, issue, replacement)
    rebased = rebase_issues(remaining, issue, replacement)
    return ApplyCorrectionResponse(
        content=content,
        snapshot=snapshot_token(content),
        remaining=[GrammarIssue.from_issue(item) for item in rebased],
    )


@router.post(
    "/fix-all",
    response_model=FixAllResponse,
    responses={**BAD_INPUT, **STALE},
    summary="Apply every correction with its first candidate",
)
async def fix_all(
    body: FixAllRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> FixAllResponse:
    _check_snapshot(body.content, body.snapshot)

    issues = [item.to_issue() for item in body.issues]
    content = apply_all(body.content, issues, reject_overlaps=True)
    applied = sum(1 for issue in issues if issue.replacements)
    return FixAllResponse(
        content=content,
        snapshot=snapshot_token(content),
        applied=applied,
        skipped=len(issues) - applied,
    )
