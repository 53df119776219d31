from sqlalchemy import Column, Integer, String, Enum, DateTime, Text, Index, BigInteger
from datetime import datetime
from models.base import Base, PipelineStatus


class IngestCheckpoint(Base):
    """
    Tracks pagination progress per source.

    Purpose:
    - Resume ingestion from the last committed cursor
    - Record how the latest run ended

    Design:
    - One row per source
    - cursor is the next cursor to fetch; it only moves after a page commits
    """
    __tablename__ = "ingest_checkpoints"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Source identification
    source_name = Column(String(100), nullable=False)

    # Checkpoint data
    cursor = Column(String(1024), nullable=False, default="")

    # Statistics
    last_run_at = Column(DateTime, nullable=True, index=True)
    last_success_at = Column(DateTime, nullable=True)
    last_failure_at = Column(DateTime, nullable=True)

    total_runs = Column(Integer, default=0)
    total_records_processed = Column(BigInteger, default=0)
    last_records_processed = Column(Integer, default=0)

    # Status
    status = Column(Enum(PipelineStatus), default=PipelineStatus.RUNNING, nullable=False)
    error_message = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Constraints
    __table_args__ = (
        Index("idx_checkpoint_source", "source_name", unique=True),
    )
