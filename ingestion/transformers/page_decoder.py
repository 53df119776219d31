"""
Decode upstream response bodies into typed follower pages.

Pure functions only: no I/O and no retries. Retrying a bad body means
re-fetching it, which is the fetcher's job.
"""

from typing import Optional

from pydantic import ValidationError

from core.exceptions import DecodeError
from schemas.follower import FollowersPage

# Tag signatures that identify an HTML document, matched case-insensitively
# at the start of the body and followed by a space or ">".
_HTML_SIGNATURES = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)

_SNIFF_LENGTH = 512
_WHITESPACE = b"\t\n\x0c\r "


def looks_like_markup(body: bytes, content_type: Optional[str] = None) -> bool:
    """
    Return True when a response is an HTML page instead of JSON.

    The declared Content-Type is trusted when it says text/html; otherwise
    the first bytes of the body are sniffed.
    """
    if content_type and content_type.split(";", 1)[0].strip().lower() == "text/html":
        return True

    head = body[:_SNIFF_LENGTH].lstrip(_WHITESPACE).upper()
    for signature in _HTML_SIGNATURES:
        if not head.startswith(signature):
            continue
        terminator = head[len(signature):len(signature) + 1]
        if terminator in (b" ", b">"):
            return True
    return False


def decode_page(body: bytes) -> FollowersPage:
    """
    Parse a response body into a FollowersPage.

    Raises:
        DecodeError: Invalid JSON, non-object top level or a type mismatch
    """
    try:
        return FollowersPage.model_validate_json(body)
    except ValidationError as e:
        raise DecodeError(
            "Response body is not a valid followers page",
            context={
                "error_count": e.error_count(),
                "response_body": _preview(body)
            },
            original_exception=e
        ) from e


def _preview(body: bytes, limit: int = 500) -> str:
    return body[:limit].decode("utf-8", errors="replace")
