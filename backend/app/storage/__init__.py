from app.storage.base import AnalysisRepository, Storage, UserRepository
from app.storage.memory import MemoryStorage
from app.storage.mongo import MongoStorage

__all__ = [
    "AnalysisRepository",
    "MemoryStorage",
    "MongoStorage",
    "Storage",
    "UserRepository",
]
