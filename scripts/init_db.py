import asyncio
import logging
import sys

from core.config import settings
from core.database import build_engine, init_database
from models.base import RecordShape

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def create_tables(shape: RecordShape):
    logger.info("Connecting to database...")
    engine = build_engine(echo=True)

    try:
        logger.info("Creating tables...")
        table = await init_database(engine, shape)
        logger.info(f"Tables created successfully ({table.name}, {shape.value}).")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    shape = RecordShape(sys.argv[1] if len(sys.argv) > 1 else settings.RECORD_SHAPE)
    asyncio.run(create_tables(shape))
