"""
Custom Exceptions for Excel Analytics
=====================================

Service and storage code raises these instead of generic Exception.
The API layer turns them into JSON responses (see app.main).

Usage:
    from app.core.exceptions import AnalysisNotFoundError

    if not analysis:
        raise AnalysisNotFoundError(analysis_id)
"""

from typing import Optional, Any, Dict, List


class AnalyticsError(Exception):
    """Base exception for all Excel Analytics errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(AnalyticsError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(AnalyticsError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(AnalyticsError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class UserNotFoundError(ResourceNotFoundError):
    """User not found"""

    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class AnalysisNotFoundError(ResourceNotFoundError):
    """Analysis not found, or not owned by the caller"""

    def __init__(self, analysis_id: str):
        super().__init__("Analysis", analysis_id)


class ChartNotFoundError(ResourceNotFoundError):
    """Analysis has no saved chart"""

    def __init__(self, analysis_id: str):
        super().__init__("Chart", analysis_id, message="No chart saved for this analysis")


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(AnalyticsError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class DuplicateEmailError(ValidationError):
    """E-mail is already registered"""

    def __init__(self, email: str):
        super().__init__("User already exists", field="email")
        self.code = "USER_EXISTS"
        self.details["email"] = email


class InvalidRoleError(ValidationError):
    """Role is not one of the known roles"""

    def __init__(self, role: Any):
        super().__init__("Invalid role", field="role")
        self.code = "INVALID_ROLE"
        self.details["role"] = role


class InvalidFileTypeError(ValidationError):
    """Uploaded file is not an Excel workbook"""

    def __init__(self, file_type: Optional[str], allowed_types: List[str]):
        super().__init__("Only Excel files are allowed", field="excel")
        self.code = "INVALID_FILE_TYPE"
        self.details = {"file_type": file_type, "allowed_types": allowed_types}


class FileTooLargeError(ValidationError):
    """Upload exceeds MAX_UPLOAD_SIZE"""

    status_code = 413

    def __init__(self, size: int, max_size: int):
        super().__init__(
            f"File too large. Maximum size is {max_size // (1024 * 1024)}MB",
            field="excel"
        )
        self.code = "FILE_TOO_LARGE"
        self.details = {"size_bytes": size, "max_size_bytes": max_size}


class EmptyWorkbookError(ValidationError):
    """First sheet has no data rows"""

    def __init__(self):
        super().__init__("Excel file is empty")
        self.code = "EMPTY_WORKBOOK"


class WorkbookParseError(ValidationError):
    """Bytes could not be read as a workbook"""

    def __init__(self, reason: str = ""):
        super().__init__("Error processing file")
        self.code = "WORKBOOK_PARSE_FAILED"
        if reason:
            self.details["reason"] = reason[:500]


class ColumnNotFoundError(ValidationError):
    """Chart axis references a column the analysis doesn't have"""

    def __init__(self, column: str, available: List[str]):
        super().__init__(f"Column '{column}' not found in analysis", field="column")
        self.code = "COLUMN_NOT_FOUND"
        self.details.update({"column": column, "available_columns": available})


class UnsupportedFormatError(ValidationError):
    """Chart download format not supported"""

    def __init__(self, fmt: str, supported: List[str]):
        super().__init__(
            f"Unsupported format '{fmt}'. Supported: {', '.join(supported)}",
            field="format"
        )
        self.code = "UNSUPPORTED_FORMAT"


# ============================================
# AI Errors
# ============================================

class AIServiceError(AnalyticsError):
    """AI summary provider failed"""

    status_code = 502

    def __init__(self, message: str = "Error generating AI summary"):
        super().__init__(message, code="AI_SERVICE_ERROR")


# ============================================
# Storage Errors
# ============================================

class StorageError(AnalyticsError):
    """Storage operation failed"""

    status_code = 503

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")


class StorageUnavailableError(StorageError):
    """Storage was used before connect_storage() ran"""

    def __init__(self):
        super().__init__("Storage is not initialized")
        self.code = "STORAGE_UNAVAILABLE"


def error_response(error: AnalyticsError) -> Dict[str, Any]:
    """Convert exception to API error response body"""
    return {
        "detail": error.message,
        "code": error.code,
        "details": error.details
    }
