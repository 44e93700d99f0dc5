import logging

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie
from app.core.config import settings
from app.models.user import User
from app.models.business import Business
from app.models.product import Product
from app.models.stock_movement import StockMovement
from app.models.sale import Sale
from app.models.expense import Expense

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [User, Business, Product, StockMovement, Sale, Expense]


async def init_db(client=None):
    """Connect to MongoDB and initialize Beanie.

    Every operation on the client is bounded by ``DB_TIMEOUT_MS``; a timeout
    surfaces as a ``pymongo.errors.PyMongoError``.
    """
    if client is None:
        client = AsyncIOMotorClient(
            settings.MONGODB_URL,
            serverSelectionTimeoutMS=settings.DB_TIMEOUT_MS,
            timeoutMS=settings.DB_TIMEOUT_MS,
        )

    await init_beanie(
        database=client[settings.DATABASE_NAME],
        document_models=DOCUMENT_MODELS,
    )

    logger.info("Beanie initialized with database: %s", settings.DATABASE_NAME)
    return client
