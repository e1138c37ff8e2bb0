from pydantic import BaseModel
from typing import Any, List, Optional

from app.models.analysis import OwnerInfo
from app.schemas.analysis import AnalysisResponse, AnalysisSummary
from app.schemas.auth import UserDetailResponse, UserResponse


# ==================== Dashboard Schemas ====================

class UserStats(BaseModel):
    total_users: int
    admin_users: int
    regular_users: int


class RecentAnalysis(AnalysisSummary):
    user_id: str
    owner: Optional[OwnerInfo] = None


class AdminStatsResponse(BaseModel):
    """Admin dashboard numbers"""
    total_users: int
    total_analyses: int
    recent_analyses: List[RecentAnalysis]
    user_stats: UserStats


# ==================== User Management Schemas ====================

class RoleUpdateRequest(BaseModel):
    # Checked in the route so unknown roles get a 400 "Invalid role"
    role: Any = None


class RoleUpdateResponse(BaseModel):
    message: str = "User role updated successfully"
    user: UserResponse


# ==================== Analysis Management Schemas ====================

class AdminAnalysisResponse(AnalysisResponse):
    owner: Optional[OwnerInfo] = None


class MessageResponse(BaseModel):
    message: str
