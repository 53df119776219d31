"""
SQLAlchemy models for database tables.

Models:
    base: Base declarative class and shared enums (PipelineStatus, RecordShape)
    follower: Followers table in its minimal and extended shapes
    checkpoint: Pagination checkpoint for resume-on-failure

Database Schema:
    The followers table is built per deployment with build_followers_table()
    because its column set depends on the configured RecordShape. The
    checkpoint table is a regular declarative model on Base.metadata.

Usage:
    from models.base import Base, PipelineStatus, RecordShape
    from models.follower import build_followers_table
    from models.checkpoint import IngestCheckpoint

Example:
    followers = build_followers_table(RecordShape.EXTENDED)
    async with engine.begin() as conn:
        await conn.run_sync(followers.metadata.create_all)
"""

__all__ = [
    "Base",
    "PipelineStatus",
    "RecordShape",
    "build_followers_table",
    "IngestCheckpoint",
]
