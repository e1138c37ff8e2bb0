"""
Health check endpoint

Reports whether MongoDB is reachable and which storage mode the
process is running in ("production" on MongoDB, "demo" in memory).
"""

from fastapi import APIRouter, Depends

from app.core.database import get_storage
from app.storage import Storage

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(storage: Storage = Depends(get_storage)):
    mongodb_connected = await storage.ping()
    return {
        "status": "ok",
        "mongodb": "connected" if mongodb_connected else "disconnected",
        "mode": "production" if storage.is_mongo else "demo",
    }
