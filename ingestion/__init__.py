"""
Ingestion pipeline components for paginated follower collection.

Modules:
    retry: Bounded linear backoff policy and retry loop
    checkpoint: Persisted resume cursor per source
    runner: Pagination state machine (RUNNING → DONE / CANCELLED / FAILED)

Subpackages:
    extractors: Page fetcher for the upstream HTTP API
    transformers: Response decoding and markup sniffing
    loaders: Idempotent batch upserts into the followers table

Architecture:
    Pages are processed strictly one after another:

    1. Fetch - GET one page, classify the response, retry with backoff
    2. Decode - Parse the body into typed records plus the next cursor
    3. Load - Upsert the batch in one transaction
    4. Advance - Move the cursor only after the commit

    A run either fully completes a page or leaves no trace of it, so a
    stopped run can always be resumed from the cursor it reports.

Usage:
    from ingestion.extractors.page_fetcher import PageFetcher
    from ingestion.loaders.follower_loader import FollowerLoader
    from ingestion.runner import IngestionRunner

Example:
    token = CancellationToken()
    async with PageFetcher(token) as fetcher:
        runner = IngestionRunner(fetcher, FollowerLoader(session, table), token)
        state = await runner.run(start_cursor="")

    print(f"{state.status.value}: {state.records_written} records")

Error Handling:
    Retryable fetch errors never leave the fetcher except as
    ExhaustedRetriesError. The runner turns fatal errors into a FAILED state
    that reports the last committed cursor.
"""

__all__ = [
    "PageFetcher",
    "FollowerLoader",
    "CheckpointStore",
    "IngestionRunner",
    "PipelineState",
    "RetryPolicy",
    "decode_page",
]
