import asyncio
import logging

from app.core.database import init_db, DOCUMENT_MODELS
from app.core.log_config import configure_logging

logger = logging.getLogger("reset_db")


async def reset_all():
    await init_db()

    # Wipes every collection, ledger included. Development databases only.
    for model in DOCUMENT_MODELS:
        result = await model.delete_all()
        logger.info("Cleared %s (%s documents)", model.Settings.name,
                    result.deleted_count if result else 0)

    logger.info("Database is clean. You can now run 'python seed.py'.")

if __name__ == "__main__":
    configure_logging()
    asyncio.run(reset_all())
