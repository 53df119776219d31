"""
Load follower batches into the store with upsert logic (idempotency)
"""

from typing import Any, Callable, Dict, Optional, Sequence
from sqlalchemy import Table
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from core.exceptions import PersistenceError
from core.logging import EventLogger, TextEventLogger
from schemas.follower import FollowerRecord, Label

LABEL_DELIMITER = ","

_UPSERT_DIALECTS: Dict[str, Callable] = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


def serialize_labels(labels: Sequence[Label]) -> str:
    """Join labels as "type:value" pairs, keeping their order ("" when empty)"""
    return LABEL_DELIMITER.join(label.serialize() for label in labels)


def follower_row(record: FollowerRecord) -> Dict[str, Any]:
    """Flatten a record into column values for the extended table"""
    return {
        "did": record.did,
        "handle": record.handle,
        "display_name": record.display_name,
        "avatar": record.avatar,
        "viewer_muted": record.viewer.muted,
        "viewer_blocked_by": record.viewer.blocked_by,
        "viewer_following": record.viewer.following,
        "labels": serialize_labels(record.labels),
        "description": record.description,
        "created_at": record.created_at,
        "indexed_at": record.indexed_at,
    }


class FollowerLoader:
    """
    Load followers with idempotent upsert operations.

    Ensures:
    - No duplicate rows on repeated runs (upsert keyed by did)
    - Every non-key column is replaced when a did is seen again
    - One transaction per batch: either every record commits or none does
    """

    def __init__(
        self,
        db_session: AsyncSession,
        table: Table,
        event_logger: Optional[EventLogger] = None
    ):
        self.db = db_session
        self.table = table
        self.log = event_logger or TextEventLogger()
        self._columns = set(table.columns.keys())

    def _insert(self) -> Callable:
        dialect = self.db.get_bind().dialect.name
        try:
            return _UPSERT_DIALECTS[dialect]
        except KeyError:
            raise PersistenceError(
                f"Upsert is not supported for dialect {dialect}",
                context={"table_name": self.table.name, "dialect": dialect}
            )

    def _upsert_statement(self, insert: Callable, record: FollowerRecord):
        row = {k: v for k, v in follower_row(record).items() if k in self._columns}

        # INSERT ... ON CONFLICT (did) DO UPDATE, replacing every other column
        stmt = insert(self.table).values(**row)
        return stmt.on_conflict_do_update(
            index_elements=["did"],
            set_={
                column: stmt.excluded[column]
                for column in row
                if column != "did"
            }
        )

    async def load(self, records: Sequence[FollowerRecord]) -> int:
        """
        Upsert a batch in a single transaction.

        Args:
            records: Followers in page order

        Returns:
            Number of records written

        Raises:
            PersistenceError: Any record or the commit failed; nothing from
                the batch is kept
        """
        if not records:
            return 0

        insert = self._insert()
        failed_index: Optional[int] = None
        failed_did: Optional[str] = None

        self.log.info("Starting database transaction to save followers", {
            "table": self.table.name,
            "batch_size": len(records),
        })

        try:
            for index, record in enumerate(records):
                failed_index, failed_did = index, record.did
                await self.db.execute(self._upsert_statement(insert, record))
            failed_index, failed_did = None, None
            await self.db.commit()

        except Exception as e:
            await self.db.rollback()
            context = {
                "table_name": self.table.name,
                "batch_size": len(records),
                "operation": "UPSERT" if failed_index is not None else "COMMIT",
            }
            if failed_index is not None:
                context["record_index"] = failed_index
                context["did"] = failed_did
            self.log.error("Failed to save followers batch, rolled back", {
                **context,
                "error": str(e),
            })
            raise PersistenceError(
                "Failed to persist followers batch",
                context=context,
                original_exception=e
            ) from e

        self.log.info("Transaction committed successfully", {
            "table": self.table.name,
            "records": len(records),
        })
        return len(records)
