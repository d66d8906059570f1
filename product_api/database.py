# ============================================
# product_api/database.py: Async MongoDB Connection
# ============================================
# Motor is PyMongo wrapped with asyncio support, so store calls never
# block the event loop. One client per process; the driver pools connections.

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection

from .config import Settings
from .logger import get_logger

logger = get_logger("db")


def get_collection(client, settings: Settings) -> AsyncIOMotorCollection:
    """Return the products collection handle for a connected client."""
    return client[settings.MONGO_DB][settings.MONGO_COLLECTION]


async def ensure_indexes(collection) -> None:
    """Create the lookup indexes used by the listing filters."""
    await collection.create_index("category")
    await collection.create_index("price")


async def connect_to_mongo(settings: Settings) -> AsyncIOMotorClient:
    """Called at app startup to initialise the Motor client."""
    client = AsyncIOMotorClient(settings.MONGO_URI)
    await ensure_indexes(get_collection(client, settings))
    logger.info("Connected to MongoDB: %s/%s", settings.MONGO_URI, settings.MONGO_DB)
    return client


async def close_mongo_connection(client) -> None:
    """Called at app shutdown to release the connection pool."""
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")


def get_products_collection(request: Request):
    """FastAPI dependency: the products collection bound at startup."""
    return request.app.state.collection
