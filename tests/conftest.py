"""
Pytest configuration and fixtures
"""

import json
from typing import AsyncGenerator, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.cancellation import CancellationToken
from core.logging import EventLogger
from core.database import build_engine, build_session_maker, init_database
from models.base import RecordShape

API_URL = "https://api.example.com/xrpc/app.bsky.graph.getFollowers"


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create test database engine backed by a temporary SQLite file"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'followers_test.db'}")
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def followers_table(test_engine):
    """Extended followers table plus the checkpoint table"""
    return await init_database(test_engine, RecordShape.EXTENDED)


@pytest_asyncio.fixture(scope="function")
async def session_maker(test_engine, followers_table) -> async_sessionmaker:
    return build_session_maker(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def cancel_token() -> CancellationToken:
    return CancellationToken()


@pytest.fixture
def follower_payload() -> Callable[..., Dict]:
    """Build one follower as the upstream API serializes it"""

    def build(did: str, **overrides) -> Dict:
        payload = {
            "did": did,
            "handle": f"{did.split(':')[-1]}.bsky.social",
            "displayName": f"User {did}",
            "avatar": f"https://cdn.example.com/{did}.jpg",
            "description": "Test description",
            "viewer": {
                "muted": False,
                "blockedBy": False,
                "following": f"at://{did}/app.bsky.graph.follow/abc"
            },
            "labels": [{"type": "label", "value": "test"}],
            "createdAt": "2024-01-15T10:00:00.000Z",
            "indexedAt": "2024-01-16T11:30:00.000Z",
        }
        payload.update(overrides)
        return payload

    return build


class ScriptedUpstream:
    """
    Fake followers endpoint for httpx.MockTransport.

    `pages` maps the requested cursor ("" for the first page) to either a
    page body dict, an httpx.Response, or an exception to raise. A list of
    those is consumed one per request.
    """

    def __init__(self, pages: Dict[str, object]):
        self.pages = {
            cursor: list(script) if isinstance(script, list) else script
            for cursor, script in pages.items()
        }
        self.requests: List[httpx.Request] = []

    def requested_cursors(self) -> List[str]:
        return [r.url.params.get("cursor", "") for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        cursor = request.url.params.get("cursor", "")
        script = self.pages[cursor]
        if isinstance(script, list):
            script = script.pop(0) if len(script) > 1 else script[0]

        if isinstance(script, Exception):
            raise script
        if isinstance(script, httpx.Response):
            return httpx.Response(
                script.status_code, headers=script.headers, content=script.content
            )
        return httpx.Response(200, content=json.dumps(script).encode(), headers={
            "content-type": "application/json; charset=utf-8"
        })


@pytest.fixture
def scripted_upstream() -> Callable[[Dict[str, object]], ScriptedUpstream]:
    return ScriptedUpstream


@pytest_asyncio.fixture
async def mock_client_factory():
    """httpx.AsyncClient wired to a handler instead of the network"""
    clients = []

    def build(handler) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield build

    for client in clients:
        await client.aclose()


class RecordingEventLogger(EventLogger):
    """Keeps every event in memory"""

    def __init__(self):
        self.infos: List[Tuple[str, Dict]] = []
        self.errors: List[Tuple[str, Dict]] = []

    def info(self, event: str, fields: Optional[Dict] = None) -> None:
        self.infos.append((event, dict(fields or {})))

    def error(self, event: str, fields: Optional[Dict] = None) -> None:
        self.errors.append((event, dict(fields or {})))


@pytest.fixture
def event_log() -> RecordingEventLogger:
    return RecordingEventLogger()
