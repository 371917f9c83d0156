"""
NoteCraft Backend: Grammar Check Service (LanguageTool)
=========================================================

What:  Sends note text to a LanguageTool server and returns the reported
       issues as correction-ready Issue values.
Why:   LanguageTool's public HTTP API gives grammar and spelling matches with
       offsets and replacement candidates, which the correction applier
       consumes directly.
How:   One shared httpx.AsyncClient (connection pooling, explicit timeout),
       tenacity retries for transport errors and 5xx answers, and offset
       conversion from UTF-16 code units to Python string indices.
Who:   Created once by the app factory; routes reach it through the
       get_grammar_service dependency.

Offset units:
    LanguageTool is a Java service, so `offset` and `length` count UTF-16
    code units. Python strings index code points. The two agree for text in
    the Basic Multilingual Plane and drift by one for every astral
    character (most emoji) that precedes a match, so matches are converted
    before they leave this module.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from notecraft.config import settings
from notecraft.exceptions import UpstreamError
from notecraft.services.corrections import Issue

logger = logging.getLogger(__name__)

PASSTHROUGH_STATUS = {
    413: "The text is too large for the grammar checker. Please try with a shorter text.",
    429: "Too many grammar check requests. Please try again later.",
}


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def utf16_index_table(text: str) -> List[int]:
    """
    Map every UTF-16 code unit position in ``text`` to a code point index.

    table[u] is the Python index of the character containing code unit u;
    the final entry maps the end of the text.
    """
    table: List[int] = []
    for index, char in enumerate(text):
        table.append(index)
        if ord(char) > 0xFFFF:
            table.append(index)
    table.append(len(text))
    return table


class GrammarService:
    """Client for LanguageTool's /v2/check endpoint."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        url: Optional[str] = None,
        language: Optional[str] = None,
    ):
        self.url = url or settings.languagetool_url
        self.language = language or settings.languagetool_language
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.upstream_timeout),
            headers={"Accept": "application/json"},
        )

    async def check(self, text: str) -> List[Issue]:
        """
        Check ``text`` and return its issues in code-point offsets.

        Raises:
            UpstreamError: LanguageTool refused the request (413/429 are
                passed through) or failed after retries (502).
        """
        start_time = time.time()
        try:
            payload = await self._post_with_retry(text)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in PASSTHROUGH_STATUS:
                raise UpstreamError(
                    message=PASSTHROUGH_STATUS[status],
                    status_code=status,
                ) from e
            logger.error("LanguageTool answered %d: %s", status, e.response.text[:200])
            raise UpstreamError(
                message="Error checking grammar and spelling. Please try again later.",
                context={"upstream_status": status},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("LanguageTool request failed: %s", str(e))
            raise UpstreamError(
                message="Error checking grammar and spelling. Please try again later.",
                context={"error_type": type(e).__name__},
            ) from e

        issues = self._to_issues(text, payload.get("matches") or [])
        logger.info(
            "Grammar check of %d chars found %d issues in %.0fms",
            len(text),
            len(issues),
            (time.time() - start_time) * 1000,
        )
        return issues

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            multiplier=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post_with_retry(self, text: str) -> Dict[str, Any]:
        response = await self.client.post(
            self.url,
            data={"text": text, "language": self.language},
        )
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _to_issues(text: str, matches: List[Dict[str, Any]]) -> List[Issue]:
        table = utf16_index_table(text)
        last = len(table) - 1
        issues: List[Issue] = []
        for match in matches:
            start_u16 = int(match.get("offset", 0))
            end_u16 = start_u16 + int(match.get("length", 0))
            if start_u16 < 0 or end_u16 > last:
                logger.warning(
                    "Dropping LanguageTool match outside the text (offset=%s, length=%s)",
                    match.get("offset"),
                    match.get("length"),
                )
                continue
            start = table[start_u16]
            end = table[end_u16]
            context = match.get("context") or {}
            issues.append(
                Issue(
                    offset=start,
                    length=end - start,
                    message=match.get("message", ""),
                    replacements=tuple(
                        r["value"] for r in match.get("replacements") or [] if "value" in r
                    ),
                    context=context.get("text", "") if isinstance(context, dict) else str(context),
                )
            )
        return issues

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
