from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class PipelineStatus(str, enum.Enum):
    """Ingestion run status"""
    RUNNING = "running"
    CANCELLED = "cancelled"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not PipelineStatus.RUNNING


class RecordShape(str, enum.Enum):
    """Column layout of the followers table"""
    MINIMAL = "minimal"
    EXTENDED = "extended"
