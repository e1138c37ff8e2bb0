from fastapi import Depends, HTTPException, status, Path
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from app.core.database import get_storage
from app.core.logging_config import set_analysis_id, set_user_id
from app.core.security import decode_token
from app.models.analysis import Analysis
from app.models.user import User, UserRole
from app.storage import Storage

# auto_error off so a missing header gets our own 401 message
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    storage: Storage = Depends(get_storage)
) -> User:
    """Get current authenticated user"""

    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = decode_token(credentials.credentials)

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid"
        )

    user = await storage.users.get(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    set_user_id(user.id)
    return user


async def get_current_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """Get current admin user"""
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


# ==================== Analysis Ownership Dependencies ====================

async def get_user_analysis(
    analysis_id: str = Path(..., description="Analysis ID"),
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
) -> Analysis:
    """
    Get analysis with ownership verification.
    Raises 404 if the analysis doesn't exist or belongs to someone else.

    Usage:
        @router.get("/{analysis_id}")
        async def get_analysis(analysis: Analysis = Depends(get_user_analysis)):
            return analysis
    """
    analysis = await storage.analyses.get_for_user(analysis_id, current_user.id)

    if not analysis:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Analysis not found"
        )

    set_analysis_id(analysis.id)
    return analysis
