# ============================================================================
# File: ingestion/runner.py
# Description: Cursor-driven ingestion orchestrator
# ============================================================================
"""
Ingestion Runner - drives Fetch → Decode → Persist across every page.

This module provides the pagination state machine:
- Strictly sequential pages, following the cursor chain returned upstream
- The cursor only advances after a page is committed
- No page is ever skipped: any fatal error halts the run
- Cancellation is observed before each fetch and before each persist
- Repeated cursors and an optional page cap end the run instead of looping
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Sequence, Set

from core.cancellation import CancellationToken
from core.exceptions import (
    CancellationError,
    IngestException,
    PaginationLoopError,
)
from core.logging import EventLogger, TextEventLogger
from ingestion.checkpoint import CheckpointStore
from models.base import PipelineStatus
from schemas.follower import FollowerRecord, FollowersPage


class PageSource(Protocol):
    async def fetch(self, cursor: str = "") -> FollowersPage:
        ...


class RecordSink(Protocol):
    async def load(self, records: Sequence[FollowerRecord]) -> int:
        ...


@dataclass
class PipelineState:
    """
    Progress of one run.

    `cursor` is the cursor of the next page to fetch; on any terminal status
    other than DONE it is the value to pass back in to resume.
    """
    cursor: str = ""
    status: PipelineStatus = PipelineStatus.RUNNING
    records_written: int = 0
    pages_processed: int = 0
    error: Optional[BaseException] = None
    seen_cursors: Set[str] = field(default_factory=set, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "status": self.status.value,
            "cursor": self.cursor,
            "records_written": self.records_written,
            "pages_processed": self.pages_processed,
        }
        if self.error is not None:
            result["error"] = str(self.error)
        return result


class IngestionRunner:
    """
    Pagination orchestrator

    Responsibilities:
    - Carry the cursor from page to page until it is empty
    - Persist each page before advancing
    - Stop in DONE, CANCELLED or FAILED and never restart itself
    - Keep the checkpoint row (when configured) in step with the cursor
    """

    def __init__(
        self,
        fetcher: PageSource,
        loader: RecordSink,
        cancel_token: CancellationToken,
        event_logger: Optional[EventLogger] = None,
        checkpoints: Optional[CheckpointStore] = None,
        max_pages: Optional[int] = None
    ):
        self.fetcher = fetcher
        self.loader = loader
        self.cancel_token = cancel_token
        self.log = event_logger or TextEventLogger()
        self.checkpoints = checkpoints
        self.max_pages = max_pages

    async def run(self, start_cursor: str = "") -> PipelineState:
        """
        Ingest every page from `start_cursor` ("" = beginning of the collection).

        Returns:
            The terminal PipelineState. FAILED and CANCELLED are reported
            through the state, not raised.
        """
        state = PipelineState(cursor=start_cursor or "")

        try:
            if self.checkpoints is not None:
                await self.checkpoints.begin_run()

            while not state.is_terminal:
                await self._step(state)

        except CancellationError as e:
            state.status = PipelineStatus.CANCELLED
            state.error = e
            self.log.info("Cancelled, stopping fetch", {"last_cursor": state.cursor})

        except IngestException as e:
            state.status = PipelineStatus.FAILED
            state.error = e
            self.log.error("Ingestion failed", {
                "last_cursor": state.cursor,
                **e.to_dict(),
            })

        except Exception as e:
            state.status = PipelineStatus.FAILED
            state.error = IngestException(
                "Unexpected error in ingestion pipeline",
                context={"cursor": state.cursor, "pages_processed": state.pages_processed},
                original_exception=e
            )
            self.log.error("Unexpected error in ingestion pipeline", {
                "last_cursor": state.cursor,
                "error_type": type(e).__name__,
                "error": str(e),
            })

        await self._record_terminal(state)

        self.log.info("Ingestion finished", state.to_dict())
        return state

    async def _step(self, state: PipelineState) -> None:
        """One RUNNING iteration: fetch, persist, checkpoint, advance"""
        self.cancel_token.raise_if_cancelled(cursor=state.cursor)
        self._guard_pagination(state)

        self.log.info("Fetching followers", {"cursor": state.cursor})
        page = await self.fetcher.fetch(state.cursor)
        self.log.info("Fetched followers", {
            "count": len(page.followers),
            "cursor": state.cursor,
        })

        # The page is dropped here if cancelled; resuming re-fetches it.
        self.cancel_token.raise_if_cancelled(cursor=state.cursor)

        written = await self.loader.load(page.followers)
        state.records_written += written
        state.pages_processed += 1
        state.seen_cursors.add(state.cursor)

        if page.is_last:
            state.status = PipelineStatus.DONE
            self.log.info("No new cursor found, all followers processed", {
                "pages": state.pages_processed,
                "records": state.records_written,
            })
        else:
            self.log.info("Updating cursor", {"new_cursor": page.cursor})
            state.cursor = page.cursor

        if self.checkpoints is not None:
            await self.checkpoints.save(
                cursor=state.cursor,
                status=state.status,
                records_processed=written
            )

    def _guard_pagination(self, state: PipelineState) -> None:
        if state.cursor and state.cursor in state.seen_cursors:
            raise PaginationLoopError(
                "Upstream returned a cursor that was already processed",
                context={"cursor": state.cursor, "pages_processed": state.pages_processed}
            )
        if self.max_pages is not None and state.pages_processed >= self.max_pages:
            raise PaginationLoopError(
                f"Page limit of {self.max_pages} reached before the collection ended",
                context={"cursor": state.cursor, "max_pages": self.max_pages}
            )

    async def _record_terminal(self, state: PipelineState) -> None:
        """Write CANCELLED/FAILED outcomes to the checkpoint; DONE was saved with the last page"""
        if self.checkpoints is None or state.status == PipelineStatus.DONE:
            return
        try:
            await self.checkpoints.save(
                cursor=state.cursor,
                status=state.status,
                error_message=str(state.error) if state.error else None
            )
        except IngestException as e:
            self.log.error("Failed to record final checkpoint", e.to_dict())
