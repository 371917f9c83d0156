"""
NoteCraft Backend: Text Cleaning Helpers
==========================================

What:  Small string utilities shared by the AI routes.
Why:   Note content arrives from a rich-text editor (HTML), and model output
       sometimes comes back wrapped in markdown fences or backticks. Both
       must be stripped before counting words or returning text to the SPA.
"""

import re

_HTML_TAG = re.compile(r"<[^>]*>")
# Opening fence (with optional language tag) at the very start, closing fence at the very end
_CODE_FENCE = re.compile(r"^```\w*\n?|\n?```$")
_EDGE_BACKTICK = re.compile(r"^`|`$")
_WHITESPACE = re.compile(r"\s+")


def strip_html(text: str) -> str:
    """Remove HTML tags and surrounding whitespace."""
    return _HTML_TAG.sub("", text).strip()


def count_words(text: str) -> int:
    return len([word for word in _WHITESPACE.split(text) if word])


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text)


def clean_summary(text: str) -> str:
    """Summaries: drop tags and code fences."""
    return strip_code_fences(_HTML_TAG.sub("", text)).strip()


def clean_transformed_text(text: str, max_length: int) -> str:
    """
    Style rewrites: truncate, then drop tags, fences and backticks.

    Truncation happens first and appends "..." so the caller can tell the
    model's answer was cut. Backticks inside the text become single quotes.
    """
    cleaned = text.strip()
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length] + "..."
    cleaned = _HTML_TAG.sub("", cleaned)
    cleaned = strip_code_fences(cleaned)
    cleaned = _EDGE_BACKTICK.sub("", cleaned)
    return cleaned.replace("`", "'").strip()
