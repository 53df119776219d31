"""
Page fetcher for the paginated followers API.

This module provides resilient page retrieval with:
- One HTTP GET per attempt, raced against the cancellation token
- Classification of every attempt into transport, status, content, decode
  failure or success
- Bounded linear backoff delegated to ingestion.retry
"""

import httpx
from typing import Any, Dict, Optional

from core.cancellation import CancellationToken
from core.config import settings
from core.exceptions import (
    DecodeError,
    TransportError,
    UpstreamContentError,
    UpstreamStatusError,
)
from core.logging import EventLogger, TextEventLogger
from ingestion.retry import RetryPolicy, RetryState, Wait, retry_call
from ingestion.transformers.page_decoder import decode_page, looks_like_markup
from schemas.follower import FollowersPage


class PageFetcher:
    """
    Fetch single pages of followers.

    Attributes:
        api_url: Endpoint, without query string
        actor: Account whose followers are collected
        page_limit: Records requested per page
        policy: Retry policy (default: settings.MAX_RETRIES attempts,
            settings.BACKOFF_UNIT_SECONDS per step)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        cancel_token: CancellationToken,
        event_logger: Optional[EventLogger] = None,
        client: Optional[httpx.AsyncClient] = None,
        api_url: Optional[str] = None,
        actor: Optional[str] = None,
        page_limit: Optional[int] = None,
        policy: Optional[RetryPolicy] = None,
        timeout: Optional[float] = None,
        wait: Optional[Wait] = None
    ):
        self.cancel_token = cancel_token
        self.log = event_logger or TextEventLogger()
        self.api_url = api_url or settings.API_URL
        self.actor = actor or settings.ACTOR
        self.page_limit = page_limit or settings.PAGE_LIMIT
        self.policy = policy or RetryPolicy(
            max_attempts=settings.MAX_RETRIES,
            backoff_unit=settings.BACKOFF_UNIT_SECONDS
        )
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self._wait = wait
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "PageFetcher":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_params(self, cursor: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {"actor": self.actor, "limit": self.page_limit}
        if cursor:
            params["cursor"] = cursor
        return params

    def build_url(self, cursor: str) -> str:
        return str(httpx.URL(self.api_url, params=self.build_params(cursor)))

    async def fetch(self, cursor: str = "") -> FollowersPage:
        """
        Fetch the page that starts at `cursor` ("" for the first page).

        Raises:
            CancellationError: Cancellation observed before, during or after a call
            ExhaustedRetriesError: Every attempt failed
        """
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        url = self.build_url(cursor)

        async def attempt(number: int) -> FollowersPage:
            return await self._attempt(url, number)

        def on_retry(state: RetryState, delay: float) -> None:
            self.log.error("Fetch attempt failed, backing off", {
                "cursor": cursor,
                "attempt": state.attempt,
                "max_attempts": self.policy.max_attempts,
                "error_type": type(state.last_error).__name__,
                "error": getattr(state.last_error, "message", str(state.last_error)),
                "backoff_seconds": delay,
            })

        page = await retry_call(
            attempt,
            self.policy,
            self.cancel_token,
            cursor=cursor,
            wait=self._wait,
            on_retry=on_retry
        )

        self.log.info("Parsed followers from response", {
            "count": len(page.followers),
            "cursor": cursor,
            "new_cursor": page.cursor,
        })
        return page

    async def _attempt(self, url: str, number: int) -> FollowersPage:
        """One request, classified; raises a RetryableError on any failure"""
        self.log.info("Making API request", {"attempt": number, "url": url})

        try:
            response = await self.cancel_token.guard(
                lambda: self._client.get(url, timeout=self.timeout),
                url=url,
                attempt=number
            )
        except httpx.DecodingError as e:
            # Content-Encoding did not match the body
            raise DecodeError(
                "Failed to read response body",
                context={"url": url, "attempt": number},
                original_exception=e
            ) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"Request to upstream failed: {type(e).__name__}",
                context={"url": url, "attempt": number},
                original_exception=e
            ) from e

        self.cancel_token.raise_if_cancelled(url=url, attempt=number)

        if not response.is_success:
            raise UpstreamStatusError(
                f"Upstream returned HTTP {response.status_code}",
                context={
                    "url": url,
                    "attempt": number,
                    "response_body": response.text[:500]
                },
                status_code=response.status_code
            )

        body = response.content
        if looks_like_markup(body, response.headers.get("content-type")):
            raise UpstreamContentError(
                "Received HTML instead of JSON (likely an error page)",
                context={
                    "url": url,
                    "attempt": number,
                    "content_type": response.headers.get("content-type", "")
                }
            )

        return decode_page(body)
