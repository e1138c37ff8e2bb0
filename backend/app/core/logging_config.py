"""
Excel Analytics - Logging

One "excel_analytics" logger for the whole app. Every line carries the
request, user and analysis ids of the HTTP call that produced it, taken
from context variables the middleware and auth dependencies fill in.

Production writes one JSON object per line; other environments get a
short text format.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from app.core.config import settings

LOGGER_NAME = "excel_analytics"

_request_id: ContextVar[str] = ContextVar("request_id", default="")
_user_id: ContextVar[str] = ContextVar("user_id", default="")
_analysis_id: ContextVar[str] = ContextVar("analysis_id", default="")

# Attributes every LogRecord has; anything else came in through `extra`
_RECORD_FIELDS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_user_id() -> str:
    return _user_id.get()


def set_user_id(user_id: str) -> None:
    _user_id.set(user_id)


def set_analysis_id(analysis_id: str) -> None:
    _analysis_id.set(analysis_id)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


def log_context() -> Dict[str, str]:
    """Ids of the current request that are set"""
    context = {
        "request_id": _request_id.get(),
        "user_id": _user_id.get(),
        "analysis_id": _analysis_id.get(),
    }
    return {key: value for key, value in context.items() if value}


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
            **log_context(),
        }
        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RECORD_FIELDS and key not in entry
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """`LEVEL | req=.. user=.. | message`, ids shown only when set"""

    def format(self, record: logging.LogRecord) -> str:
        context = " ".join(f"{key.split('_')[0]}={value}" for key, value in log_context().items())
        record.context = f" | {context}" if context else ""
        return super().format(record)


class AnalyticsLogger(logging.Logger):
    """Logger with one helper per kind of event the app records"""

    def log_request(self, method: str, path: str, status_code: int, duration_ms: float) -> None:
        level = logging.WARNING if status_code >= 500 else logging.INFO
        self.log(
            level,
            f"{method} {path} -> {status_code} ({duration_ms:.1f}ms)",
            extra={"event_type": "http_request", "http_status": status_code, "duration_ms": round(duration_ms, 2)},
        )

    def log_storage_event(self, operation: str, collection: str, mode: str, **fields) -> None:
        self.debug(
            f"[Storage:{mode}] {operation} {collection}",
            extra={"event_type": "storage", "storage_mode": mode, "collection": collection, **fields},
        )

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, **fields) -> None:
        outcome = "ok" if success else f"failed ({reason})" if reason else "failed"
        self.log(
            logging.INFO if success else logging.WARNING,
            f"[Auth] {event} {outcome}" + (f" for {user_email}" if user_email else ""),
            extra={"event_type": "auth", "auth_event": event, "auth_success": success, **fields},
        )

    def log_error_with_context(self, error: Exception, context: str) -> None:
        self.error(
            f"{context} failed: {type(error).__name__}: {error}",
            exc_info=error,
            extra={"event_type": "error", "error_type": type(error).__name__},
        )


def setup_logging() -> AnalyticsLogger:
    """Configure the app logger from LOG_LEVEL, LOG_FILE and ENVIRONMENT"""
    logging.setLoggerClass(AnalyticsLogger)
    logger = logging.getLogger(LOGGER_NAME)
    logger.__class__ = AnalyticsLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.propagate = False
    logger.handlers.clear()

    if settings.ENVIRONMENT == "production":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = TextFormatter("%(asctime)s %(levelname)-7s%(context)s | %(message)s", "%H:%M:%S")

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if settings.LOG_FILE:
        path = Path(settings.LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Libraries that chatter at INFO/DEBUG
    for name in ("httpx", "httpcore", "anthropic", "pymongo", "matplotlib", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


logger: AnalyticsLogger = setup_logging()
