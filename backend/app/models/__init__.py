# Re-export all models for convenient imports
from app.models.user import User, UserRole
from app.models.analysis import Analysis, ChartConfig, ChartType, OwnerInfo

__all__ = [
    # User
    "User",
    "UserRole",
    # Analysis
    "Analysis",
    "ChartConfig",
    "ChartType",
    "OwnerInfo",
]
