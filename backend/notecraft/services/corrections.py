"""
NoteCraft Backend: Correction Applier
=======================================

What:  Applies offset-addressed grammar corrections to note text, one at a
       time or a whole batch at once.
Why:   Issue offsets are only meaningful against the exact text that was
       checked. Every edit moves the text after it, so applying corrections
       naively corrupts the rest of the batch.
How:   Pure functions over immutable Issue values. No I/O, no shared state.
Who:   Called by the AI routes (client-supplied text) and by NoteService
       (stored note content guarded by a snapshot token).

Batch application:
    Issues are sorted by offset DESCENDING and applied against the buffer as
    it is rewritten. Editing from the end backward never moves the start of
    a lower-offset span, so no offset arithmetic is needed between steps.
    The sort is stable, so issues sharing an offset keep their batch order
    and repeated runs on the same batch give the same result.

    Every span is validated against the original text BEFORE the first
    edit, so an out-of-range issue rejects the whole batch.

Overlaps:
    Two issues overlap when their spans intersect or when they start at the
    same offset. apply_all() does not look for overlaps unless asked to
    (reject_overlaps=True); the HTTP endpoints always ask.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from notecraft.exceptions import OutOfRangeError, OverlappingIssuesError


@dataclass(frozen=True)
class Issue:
    """A reported problem in one text snapshot, with candidate fixes."""

    offset: int
    length: int
    message: str = ""
    replacements: Tuple[str, ...] = field(default_factory=tuple)
    context: str = ""

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def best_replacement(self) -> Optional[str]:
        """First candidate, the provider's highest-confidence suggestion."""
        return self.replacements[0] if self.replacements else None

    def shifted(self, delta: int) -> "Issue":
        return Issue(
            offset=self.offset + delta,
            length=self.length,
            message=self.message,
            replacements=self.replacements,
            context=self.context,
        )


def snapshot_token(text: str) -> str:
    """Identifies one exact version of a text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def check_bounds(text: str, issue: Issue) -> None:
    """Raise OutOfRangeError unless the issue's span lies inside ``text``."""
    if issue.offset < 0 or issue.length < 0 or issue.end > len(text):
        raise OutOfRangeError(
            offset=issue.offset,
            length=issue.length,
            text_length=len(text),
        )


def overlaps(a: Issue, b: Issue) -> bool:
    if a.offset == b.offset:
        return True
    return a.offset < b.end and b.offset < a.end


def find_overlaps(issues: Sequence[Issue]) -> List[Tuple[Issue, Issue]]:
    """
    Return every pair of overlapping issues, in ascending offset order.

    Sorting first lets the scan stop as soon as the next issue starts past
    the current one's end, so disjoint batches cost O(n log n).
    """
    ordered = sorted(issues, key=lambda issue: (issue.offset, issue.end))
    pairs: List[Tuple[Issue, Issue]] = []
    for i, current in enumerate(ordered):
        for other in ordered[i + 1:]:
            if other.offset > current.offset and other.offset >= current.end:
                break
            if overlaps(current, other):
                pairs.append((current, other))
    return pairs


def apply_one(text: str, issue: Issue, replacement: str) -> str:
    """
    Replace the issue's span with ``replacement``.

    The result has length ``len(text) - issue.length + len(replacement)``.
    Any other issue from the same batch is now suspect; use rebase_issues()
    to carry the rest of the batch forward.

    Raises:
        OutOfRangeError: the span does not fit inside ``text``.
    """
    check_bounds(text, issue)
    return text[:issue.offset] + replacement + text[issue.end:]


def rebase_issues(
    issues: Iterable[Issue],
    applied: Issue,
    replacement: str,
) -> List[Issue]:
    """
    Carry a batch forward after ``applied`` was replaced by ``replacement``.

    - the applied issue itself is removed
    - issues overlapping the edited span are dropped (their text is gone)
    - issues after the span move by the length difference
    - issues before the span are kept as they are
    """
    delta = len(replacement) - applied.length
    remaining: List[Issue] = []
    for issue in issues:
        if issue == applied:
            continue
        if overlaps(issue, applied):
            continue
        if issue.offset >= applied.end:
            remaining.append(issue.shifted(delta))
        else:
            remaining.append(issue)
    return remaining


def apply_all(
    text: str,
    issues: Sequence[Issue],
    reject_overlaps: bool = False,
) -> str:
    """
    Apply the first replacement of every issue in one batch.

    Issues without replacement candidates are skipped. For a batch without
    overlaps the result does not depend on the order of ``issues``.

    Raises:
        OutOfRangeError: any issue does not fit the original text. Nothing
            is applied.
        OverlappingIssuesError: ``reject_overlaps`` is set and at least two
            applicable issues overlap. Nothing is applied.
    """
    for issue in issues:
        check_bounds(text, issue)

    applicable = [issue for issue in issues if issue.replacements]

    if reject_overlaps:
        pairs = find_overlaps(applicable)
        if pairs:
            raise OverlappingIssuesError(
                pairs=len(pairs),
                context={"first_offsets": [pairs[0][0].offset, pairs[0][1].offset]},
            )

    result = text
    for issue in sorted(applicable, key=lambda issue: issue.offset, reverse=True):
        result = result[:issue.offset] + issue.replacements[0] + result[issue.end:]
    return result
