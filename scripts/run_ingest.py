"""
Script to ingest every follower page into the local store
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import httpx

from core.cancellation import CancellationToken, install_signal_handlers
from core.config import settings
from core.database import build_engine, build_session_maker, init_database
from core.logging import build_event_logger, setup_logging
from ingestion.checkpoint import CheckpointStore
from ingestion.extractors.page_fetcher import PageFetcher
from ingestion.loaders.follower_loader import FollowerLoader
from ingestion.runner import IngestionRunner, PipelineState
from models.base import PipelineStatus, RecordShape

logger = logging.getLogger(__name__)

EXIT_CODES = {
    PipelineStatus.DONE: 0,
    PipelineStatus.FAILED: 1,
    PipelineStatus.CANCELLED: 130,
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest followers into the local store")
    start = parser.add_mutually_exclusive_group()
    start.add_argument(
        "--cursor",
        default="",
        help="The starting cursor for fetching followers. If empty, starts from scratch."
    )
    start.add_argument(
        "--resume",
        action="store_true",
        help="Start from the cursor saved by the previous run"
    )
    parser.add_argument("--json", action="store_true", help="Enable JSON logging format")
    parser.add_argument(
        "--shape",
        choices=[shape.value for shape in RecordShape],
        default=settings.RECORD_SHAPE,
        help="Followers table layout"
    )
    parser.add_argument("--database-url", default=settings.DATABASE_URL)
    parser.add_argument("--max-pages", type=int, default=settings.MAX_PAGES)
    return parser.parse_args(argv)


async def run_ingest(
    args: argparse.Namespace,
    client: Optional[httpx.AsyncClient] = None
) -> PipelineState:
    """Run the pipeline once with the given arguments (`client` overrides the HTTP client)"""
    event_logger = build_event_logger("json" if args.json else settings.LOG_FORMAT)
    token = CancellationToken()
    install_signal_handlers(token)

    engine = build_engine(args.database_url)
    session_maker = build_session_maker(engine)

    try:
        event_logger.info("Initializing the database...", {"shape": args.shape})
        table = await init_database(engine, RecordShape(args.shape))

        async with session_maker() as session:
            checkpoints = CheckpointStore(session, settings.SOURCE_NAME)
            start_cursor = args.cursor
            if args.resume:
                start_cursor = await checkpoints.resume_cursor()
                event_logger.info("Resuming from checkpoint", {"cursor": start_cursor})

            async with PageFetcher(token, event_logger=event_logger, client=client) as fetcher:
                runner = IngestionRunner(
                    fetcher=fetcher,
                    loader=FollowerLoader(session, table, event_logger=event_logger),
                    cancel_token=token,
                    event_logger=event_logger,
                    checkpoints=checkpoints,
                    max_pages=args.max_pages
                )
                return await runner.run(start_cursor)
    finally:
        await engine.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(log_format="json" if args.json else settings.LOG_FORMAT)

    try:
        state = asyncio.run(run_ingest(args))
    except Exception as e:
        logger.error(f"Ingestion pipeline error: {str(e)}")
        return 1

    if state.status != PipelineStatus.DONE:
        # Print the cursor so the run can be resumed by hand
        print(f"Resume with: --cursor {state.cursor!r}", file=sys.stderr)
    return EXIT_CODES[state.status]


if __name__ == "__main__":
    sys.exit(main())
