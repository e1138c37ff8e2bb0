from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.exceptions import StorageError, StorageUnavailableError
from app.core.logging_config import logger
from app.storage import MemoryStorage, MongoStorage, Storage

STORAGE_MODES = ("auto", "mongo", "memory")

# Selected once at startup, never switched afterwards
_storage: Optional[Storage] = None


async def _connect_mongo() -> MongoStorage:
    """Connect to MongoDB and make sure it answers a ping"""
    client = AsyncIOMotorClient(
        settings.MONGODB_URI,
        serverSelectionTimeoutMS=settings.MONGODB_CONNECT_TIMEOUT_MS,
    )
    try:
        await client.admin.command("ping")
        storage = MongoStorage(client, settings.MONGODB_DB_NAME)
        await storage.ensure_indexes()
    except PyMongoError:
        client.close()
        raise
    return storage


async def connect_storage(mode: Optional[str] = None) -> Storage:
    """
    Select the storage backend.

    Modes:
    - mongo: MongoDB only, startup fails when it can't be reached
    - memory: in-memory demo store, MongoDB is never contacted
    - auto: try MongoDB, fall back to memory with a warning
    """
    global _storage
    mode = (mode or settings.STORAGE_MODE).lower()
    if mode not in STORAGE_MODES:
        raise StorageError(f"Unknown STORAGE_MODE '{mode}', expected one of {', '.join(STORAGE_MODES)}")

    if mode == "memory":
        _storage = MemoryStorage()
        logger.info("Using in-memory storage (demo mode)")
        return _storage

    try:
        _storage = await _connect_mongo()
        logger.info(f"Connected to MongoDB database '{settings.MONGODB_DB_NAME}'")
    except PyMongoError as e:
        if mode == "mongo":
            logger.log_error_with_context(e, "MongoDB connection")
            raise StorageError("Could not connect to MongoDB")
        logger.warning(f"MongoDB unavailable ({type(e).__name__}), running in demo mode with in-memory storage")
        _storage = MemoryStorage()

    return _storage


def get_storage() -> Storage:
    """FastAPI dependency returning the active storage"""
    if _storage is None:
        raise StorageUnavailableError()
    return _storage


def set_storage(storage: Optional[Storage]) -> None:
    """Install a storage directly, used by tests"""
    global _storage
    _storage = storage


async def close_storage() -> None:
    global _storage
    if _storage is not None:
        await _storage.close()
        _storage = None
