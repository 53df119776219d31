"""
Unit tests for data loaders
"""

from datetime import datetime

import pytest
from sqlalchemy import func, select

from core.database import init_database
from core.exceptions import PersistenceError
from ingestion.loaders.follower_loader import FollowerLoader, follower_row, serialize_labels
from models.base import RecordShape
from schemas.follower import FollowerRecord, Label, Viewer


def make_follower(did: str, **overrides) -> FollowerRecord:
    fields = dict(
        did=did,
        handle=f"{did}.bsky.social",
        display_name=f"User {did}",
        avatar=f"https://cdn.example.com/{did}.jpg",
        description="Test description",
        viewer=Viewer(muted=False, blocked_by=False, following=f"at://{did}/follow"),
        labels=[Label(type="label", value="test")],
        created_at=datetime(2024, 1, 15, 10, 0, 0),
        indexed_at=datetime(2024, 1, 16, 11, 30, 0),
    )
    fields.update(overrides)
    return FollowerRecord(**fields)


async def fetch_rows(session, table):
    result = await session.execute(select(table).order_by(table.c.did))
    return [dict(row._mapping) for row in result]


async def count_rows(session, table):
    result = await session.execute(select(func.count()).select_from(table))
    return result.scalar_one()


class TestSerializeLabels:

    def test_pairs_joined_in_order(self):
        labels = [Label(type="type1", value="value1"), Label(type="type2", value="value2")]

        assert serialize_labels(labels) == "type1:value1,type2:value2"

    def test_empty_list(self):
        assert serialize_labels([]) == ""

    def test_row_carries_serialized_labels(self):
        row = follower_row(make_follower("did:plc:a", labels=[]))

        assert row["labels"] == ""
        assert row["viewer_following"] == "at://did:plc:a/follow"


class TestFollowerLoader:
    """Test follower loader functionality"""

    @pytest.mark.asyncio
    async def test_load_batch(self, db_session, followers_table):
        loader = FollowerLoader(db_session, followers_table)

        result = await loader.load([make_follower("did:plc:a"), make_follower("did:plc:b")])

        assert result == 2
        rows = await fetch_rows(db_session, followers_table)
        assert [r["did"] for r in rows] == ["did:plc:a", "did:plc:b"]
        assert rows[0]["display_name"] == "User did:plc:a"
        assert rows[0]["labels"] == "label:test"
        assert rows[0]["viewer_muted"] is False
        assert rows[0]["created_at"] == datetime(2024, 1, 15, 10, 0, 0)

    @pytest.mark.asyncio
    async def test_load_empty_list(self, db_session, followers_table):
        loader = FollowerLoader(db_session, followers_table)

        assert await loader.load([]) == 0
        assert await count_rows(db_session, followers_table) == 0

    @pytest.mark.asyncio
    async def test_load_is_idempotent(self, db_session, followers_table):
        loader = FollowerLoader(db_session, followers_table)
        batch = [make_follower("did:plc:a"), make_follower("did:plc:b")]

        await loader.load(batch)
        first = await fetch_rows(db_session, followers_table)
        await loader.load(batch)
        second = await fetch_rows(db_session, followers_table)

        assert len(second) == 2
        assert first == second

    @pytest.mark.asyncio
    async def test_upsert_overwrites_every_field(self, db_session, followers_table):
        loader = FollowerLoader(db_session, followers_table)
        await loader.load([make_follower("did:plc:a")])

        await loader.load([make_follower(
            "did:plc:a",
            handle="renamed.bsky.social",
            display_name="",
            viewer=Viewer(muted=True, blocked_by=True, following=""),
            labels=[],
            description="",
            indexed_at=datetime(2024, 2, 1, 0, 0, 0),
        )])

        rows = await fetch_rows(db_session, followers_table)
        assert len(rows) == 1
        row = rows[0]
        assert row["handle"] == "renamed.bsky.social"
        assert row["display_name"] == ""
        assert row["viewer_muted"] is True
        assert row["viewer_blocked_by"] is True
        assert row["viewer_following"] == ""
        assert row["labels"] == ""
        assert row["description"] == ""
        assert row["indexed_at"] == datetime(2024, 2, 1, 0, 0, 0)

    @pytest.mark.asyncio
    async def test_failed_record_rolls_back_whole_batch(self, db_session, followers_table):
        loader = FollowerLoader(db_session, followers_table)
        batch = [
            make_follower("did:plc:a"),
            FollowerRecord.model_construct(did=None),  # violates NOT NULL on did
            make_follower("did:plc:c"),
        ]

        with pytest.raises(PersistenceError) as exc_info:
            await loader.load(batch)

        assert await count_rows(db_session, followers_table) == 0
        context = exc_info.value.context
        assert context["record_index"] == 1
        assert context["batch_size"] == 3
        assert context["table_name"] == "followers"
        assert exc_info.value.original_exception is not None

    @pytest.mark.asyncio
    async def test_failed_batch_leaves_previous_rows_untouched(self, db_session, followers_table):
        loader = FollowerLoader(db_session, followers_table)
        await loader.load([make_follower("did:plc:a")])
        before = await fetch_rows(db_session, followers_table)

        with pytest.raises(PersistenceError):
            await loader.load([
                make_follower("did:plc:a", handle="changed"),
                FollowerRecord.model_construct(did=None),
            ])

        assert await fetch_rows(db_session, followers_table) == before

    @pytest.mark.asyncio
    async def test_minimal_shape_skips_extended_columns(self, test_engine, session_maker):
        table = await init_database(test_engine, RecordShape.MINIMAL, table_name="followers_minimal")

        async with session_maker() as session:
            loader = FollowerLoader(session, table)
            await loader.load([make_follower("did:plc:a")])
            rows = await fetch_rows(session, table)

        assert set(rows[0]) == {
            "did", "handle", "display_name", "avatar", "created_at", "indexed_at"
        }
        assert rows[0]["handle"] == "did:plc:a.bsky.social"
