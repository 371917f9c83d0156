"""
NoteCraft Backend: AI Endpoint Schemas
========================================

What:  Request/response models for /api/ai/*.
Why:   Explicit schemas replace loosely shaped JSON bodies; every field the
       handlers read is declared and typed here.

Optional `content`/`style` fields:
    They are Optional on purpose. A missing value gets the same friendly
    400 message as an empty one ("Content is required ...") from the
    handler, instead of pydantic's generic "Field required".
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from notecraft.services.corrections import Issue

SUPPORTED_STYLES = ("casual", "professional", "creativity", "friendly")


class GrammarIssue(BaseModel):
    """
    One grammar/spelling issue. Offsets are character indices into the
    exact text that was checked.
    """
    offset: int = Field(ge=0, description="Character index where the issue starts")
    length: int = Field(ge=0, description="Number of characters covered")
    message: str = Field(default="", description="Explanation shown to the user")
    replacements: List[str] = Field(default_factory=list, description="Candidate fixes, best first")
    context: str = Field(default="", description="Surrounding text, informational only")

    def to_issue(self) -> Issue:
        return Issue(
            offset=self.offset,
            length=self.length,
            message=self.message,
            replacements=tuple(self.replacements),
            context=self.context,
        )

    @classmethod
    def from_issue(cls, issue: Issue) -> "GrammarIssue":
        return cls(
            offset=issue.offset,
            length=issue.length,
            message=issue.message,
            replacements=list(issue.replacements),
            context=issue.context,
        )


class ContentRequest(BaseModel):
    """Body of /summarize and /check."""
    content: Optional[str] = Field(default=None, description="Note content (HTML allowed)")


class StyleTransformRequest(BaseModel):
    content: Optional[str] = Field(default=None, description="Note content (HTML allowed)")
    style: Optional[str] = Field(
        default=None,
        description=f"One of: {', '.join(SUPPORTED_STYLES)}",
    )


class SummaryResponse(BaseModel):
    summary: str


class CheckResponse(BaseModel):
    matches: List[GrammarIssue]
    snapshot: str = Field(description="Token identifying the checked text; send it back when applying")


class StyleTransformResponse(BaseModel):
    transformed_text: str = Field(serialization_alias="transformedText")


class ApplyCorrectionRequest(BaseModel):
    """
    Apply a single issue to `content`.

    `replacement` defaults to the issue's first candidate. `remaining` is the
    rest of the client's batch; it comes back rebased onto the new text.
    """
    content: str
    issue: GrammarIssue
    replacement: Optional[str] = None
    remaining: List[GrammarIssue] = Field(default_factory=list)
    snapshot: Optional[str] = Field(default=None, description="Token from /check for `content`")


class ApplyCorrectionResponse(BaseModel):
    content: str
    snapshot: str
    remaining: List[GrammarIssue]


class FixAllRequest(BaseModel):
    content: str
    issues: List[GrammarIssue]
    snapshot: Optional[str] = Field(default=None, description="Token from /check for `content`")


class FixAllResponse(BaseModel):
    content: str
    snapshot: str
    applied: int = Field(description="Issues replaced with their first candidate")
    skipped: int = Field(description="Issues without any candidate")
