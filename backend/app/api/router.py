from fastapi import APIRouter
from app.api.endpoints import auth, files, admin, health

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(files.router, prefix="/files", tags=["Files"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
