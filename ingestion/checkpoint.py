"""
Persisted pagination checkpoints for resume-on-failure
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from core.exceptions import CheckpointError
from models.base import PipelineStatus
from models.checkpoint import IngestCheckpoint


class CheckpointStore:
    """
    Read and write the checkpoint row of one source.

    The stored cursor is always the next cursor to fetch, so a resumed run
    re-fetches at most the page that was in flight when the last run stopped.
    """

    def __init__(self, db_session: AsyncSession, source_name: str):
        self.db = db_session
        self.source_name = source_name

    async def get(self) -> Optional[IngestCheckpoint]:
        """Retrieve checkpoint for this source"""
        try:
            result = await self.db.execute(
                select(IngestCheckpoint).where(
                    IngestCheckpoint.source_name == self.source_name
                )
            )
        except Exception as e:
            raise CheckpointError(
                "Failed to read checkpoint",
                context={"source_name": self.source_name, "operation": "read"},
                original_exception=e
            ) from e
        return result.scalar_one_or_none()

    async def resume_cursor(self) -> str:
        """
        Cursor a new run should start from.

        A finished collection restarts from the beginning; anything else
        resumes where it stopped.
        """
        checkpoint = await self.get()
        if checkpoint is None or checkpoint.status == PipelineStatus.DONE:
            return ""
        return checkpoint.cursor or ""

    async def begin_run(self) -> IngestCheckpoint:
        """Count a new run against the checkpoint, creating it if needed"""
        return await self._write(new_run=True)

    async def save(
        self,
        cursor: str,
        status: PipelineStatus,
        records_processed: int = 0,
        error_message: Optional[str] = None
    ) -> IngestCheckpoint:
        """Create or update checkpoint"""
        return await self._write(
            cursor=cursor,
            status=status,
            records_processed=records_processed,
            error_message=error_message
        )

    async def _write(
        self,
        cursor: Optional[str] = None,
        status: PipelineStatus = PipelineStatus.RUNNING,
        records_processed: int = 0,
        error_message: Optional[str] = None,
        new_run: bool = False
    ) -> IngestCheckpoint:
        checkpoint = await self.get()
        now = datetime.utcnow()

        try:
            if checkpoint is None:
                checkpoint = IngestCheckpoint(
                    source_name=self.source_name,
                    cursor=cursor or "",
                    total_runs=0,
                    total_records_processed=0,
                    last_records_processed=0
                )
                self.db.add(checkpoint)

            if cursor is not None:
                checkpoint.cursor = cursor
            if new_run:
                checkpoint.total_runs = (checkpoint.total_runs or 0) + 1
                checkpoint.last_records_processed = 0
                checkpoint.last_run_at = now
            else:
                checkpoint.total_records_processed = (
                    (checkpoint.total_records_processed or 0) + records_processed
                )
                checkpoint.last_records_processed = (
                    (checkpoint.last_records_processed or 0) + records_processed
                )

            checkpoint.status = status
            checkpoint.error_message = error_message
            checkpoint.updated_at = now

            if status == PipelineStatus.DONE:
                checkpoint.last_success_at = now
            elif status == PipelineStatus.FAILED:
                checkpoint.last_failure_at = now

            await self.db.commit()

        except Exception as e:
            await self.db.rollback()
            raise CheckpointError(
                "Failed to write checkpoint",
                context={
                    "source_name": self.source_name,
                    "cursor": cursor,
                    "operation": "write"
                },
                original_exception=e
            ) from e

        return checkpoint
