# Pydantic schemas
from app.schemas.auth import (
    UserRegister,
    UserLogin,
    UserResponse,
    UserDetailResponse,
    LoginResponse,
    RegisterResponse,
)
from app.schemas.analysis import (
    UploadedAnalysis,
    UploadResponse,
    AnalysisSummary,
    AnalysisResponse,
    ChartRequest,
    ChartResponse,
    AISummaryResponse,
)
from app.schemas.admin import (
    UserStats,
    RecentAnalysis,
    AdminStatsResponse,
    RoleUpdateRequest,
    RoleUpdateResponse,
    AdminAnalysisResponse,
    MessageResponse,
)
