from pydantic_settings import BaseSettings
from typing import List, Any
import json
from pathlib import Path


def parse_list_setting(v: Any) -> List[str]:
    """Parse a list setting from JSON array string, comma-separated string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [item.strip() for item in v.split(',') if item.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "Excel Analytics Platform"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    SECRET_KEY: str = "CHANGE_ME"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 5000

    # ==========================================
    # Storage
    # ==========================================
    # "auto": try MongoDB, fall back to in-memory storage (demo mode)
    # "mongo": MongoDB only, fail at startup if unreachable
    # "memory": in-memory storage only
    STORAGE_MODE: str = "auto"
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "excel_analytics"
    MONGODB_CONNECT_TIMEOUT_MS: int = 3000

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str = "CHANGE_ME"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    BCRYPT_ROUNDS: int = 12  # 4 for dev (fast), 12 for prod (secure)

    # Users registering with these e-mails get the admin role
    ADMIN_EMAILS_STR: str = ""

    @property
    def ADMIN_EMAILS(self) -> List[str]:
        return [email.lower() for email in parse_list_setting(self.ADMIN_EMAILS_STR)]

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_list_setting(self.CORS_ORIGINS_STR)

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # ==========================================
    # File Upload
    # ==========================================
    MAX_UPLOAD_SIZE: int = 10485760  # 10MB
    ALLOWED_EXCEL_TYPES_STR: str = (
        "application/vnd.ms-excel,"
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    ALLOWED_EXCEL_EXTENSIONS_STR: str = ".xls,.xlsx"

    @property
    def ALLOWED_EXCEL_TYPES(self) -> List[str]:
        return parse_list_setting(self.ALLOWED_EXCEL_TYPES_STR)

    @property
    def ALLOWED_EXCEL_EXTENSIONS(self) -> List[str]:
        return [ext.lower() for ext in parse_list_setting(self.ALLOWED_EXCEL_EXTENSIONS_STR)]

    # ==========================================
    # Charts
    # ==========================================
    CHART_EXPORT_DPI: int = 100

    # ==========================================
    # AI Summary (Claude)
    # ==========================================
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_BASE_URL: str = ""  # Empty means use default Anthropic URL
    CLAUDE_MODEL: str = "claude-3-5-haiku-20241022"
    CLAUDE_MAX_TOKENS: int = 1024
    CLAUDE_TEMPERATURE: float = 0.3
    CLAUDE_REQUEST_TIMEOUT: int = 60  # seconds
    AI_SUMMARY_PREVIEW_ROWS: int = 10

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    @property
    def BASE_DIR(self) -> Path:
        return Path(__file__).resolve().parent.parent.parent

    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG

    def ai_enabled(self) -> bool:
        """Remote AI summaries are only requested when an API key is configured"""
        return bool(self.ANTHROPIC_API_KEY and self.ANTHROPIC_API_KEY.strip())


# Create settings instance
settings = Settings()
