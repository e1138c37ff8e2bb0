"""
Admin endpoints: user management, platform stats and all analyses.
All endpoints require the admin role.
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import List

from app.core.database import get_storage
from app.core.exceptions import InvalidRoleError, UserNotFoundError
from app.core.logging_config import logger
from app.models.user import User, UserRole
from app.modules.auth.dependencies import get_current_admin
from app.schemas.admin import (
    AdminAnalysisResponse,
    AdminStatsResponse,
    MessageResponse,
    RecentAnalysis,
    RoleUpdateRequest,
    RoleUpdateResponse,
    UserStats,
)
from app.schemas.auth import UserDetailResponse, UserResponse
from app.storage import Storage

router = APIRouter()

RECENT_ANALYSES_LIMIT = 5


def log_admin_action(admin: User, action: str, target_id: str, **details) -> None:
    logger.info(
        f"[Admin] {admin.email} {action} {target_id}",
        extra={"event_type": "admin_action", "admin_id": admin.id, "admin_action": action,
               "target_id": target_id, **details}
    )


# ==================== Users ====================

@router.get("/users", response_model=List[UserDetailResponse])
async def list_users(
    storage: Storage = Depends(get_storage),
    current_admin: User = Depends(get_current_admin)
):
    """All users, newest first"""
    users = await storage.users.list()
    return [UserDetailResponse(**user.public_dict()) for user in users]


@router.patch("/users/{user_id}/role", response_model=RoleUpdateResponse)
async def update_user_role(
    user_id: str,
    role_update: RoleUpdateRequest,
    storage: Storage = Depends(get_storage),
    current_admin: User = Depends(get_current_admin)
):
    """Change a user's role to user or admin"""
    try:
        role = UserRole(role_update.role)
    except ValueError:
        raise InvalidRoleError(role_update.role)

    user = await storage.users.update_role(user_id, role)
    if not user:
        raise UserNotFoundError(user_id)

    log_admin_action(current_admin, "role_updated", user_id, new_role=role.value)

    return RoleUpdateResponse(
        user=UserResponse(id=user.id, name=user.name, email=user.email, role=user.role.value)
    )


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    storage: Storage = Depends(get_storage),
    current_admin: User = Depends(get_current_admin)
):
    """Delete a user together with all of their analyses"""
    if user_id == current_admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")

    user = await storage.users.delete(user_id)
    if not user:
        raise UserNotFoundError(user_id)

    deleted_analyses = await storage.analyses.delete_for_user(user.id)

    log_admin_action(current_admin, "user_deleted", user_id, email=user.email,
                     deleted_analyses=deleted_analyses)

    return MessageResponse(message="User deleted successfully")


# ==================== Dashboard ====================

@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(
    storage: Storage = Depends(get_storage),
    current_admin: User = Depends(get_current_admin)
):
    """Platform totals plus the latest analyses"""
    total_users = await storage.users.count()
    total_analyses = await storage.analyses.count()
    recent = await storage.analyses.recent(RECENT_ANALYSES_LIMIT)
    roles = await storage.users.count_by_role()

    return AdminStatsResponse(
        total_users=total_users,
        total_analyses=total_analyses,
        recent_analyses=[RecentAnalysis.model_validate(a.model_dump()) for a in recent],
        user_stats=UserStats(
            total_users=total_users,
            admin_users=roles.get(UserRole.ADMIN.value, 0),
            regular_users=roles.get(UserRole.USER.value, 0),
        )
    )


# ==================== Analyses ====================

@router.get("/analyses", response_model=List[AdminAnalysisResponse])
async def list_analyses(
    storage: Storage = Depends(get_storage),
    current_admin: User = Depends(get_current_admin)
):
    """Every analysis, newest first, with its owner"""
    analyses = await storage.analyses.list_all()
    return [AdminAnalysisResponse.model_validate(a.model_dump()) for a in analyses]
