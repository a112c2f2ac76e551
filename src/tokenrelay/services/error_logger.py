"""Centralized error logging service.

Every failure the bot absorbs instead of raising (storage hiccups, corrupt
files, reclaimed locks, feed and Telegram errors) is reported here with a
categorized error code so operators can spot systemic problems from the
logs alone.
"""

from datetime import datetime, timezone
from typing import Any

import structlog

from tokenrelay.logging import redact_secrets, sanitize_url

logger = structlog.get_logger()

# Module-level singleton instance
_error_logger_instance: "ErrorLogger | None" = None


class ErrorLogger:
    """Centralized error logging with context binding."""

    def __init__(self) -> None:
        """Initialize error logger with service context binding."""
        self._log = logger.bind(service="error_logger")

    def log_storage_error(
        self,
        error_type: str,
        error_message: str,
        *,
        user_id: str | None = None,
        path: str | None = None,
        exception: Exception | None = None,
        attempts: int | None = None,
        level: str = "warning",
    ) -> None:
        """Log a sent-token storage problem.

        Storage problems are WARNING level by default: the store degrades to
        "nothing remembered" and keeps serving callers.

        Args:
            error_type: Categorized error code (e.g., STORAGE_WRITE_FAILED)
            error_message: Human-readable error description
            user_id: Owner of the record set
            path: File involved
            exception: Underlying exception, if any
            attempts: Number of write attempts made
            level: "warning" or "error"
        """
        log = self._log.bind(
            error_type=error_type,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

        if user_id:
            log = log.bind(user_id=user_id)

        context: dict[str, Any] = {"error_message": error_message}

        if path:
            context["path"] = path
        if attempts is not None:
            context["attempts"] = attempts
        if exception:
            context["exception_type"] = type(exception).__name__
            context["exception_message"] = str(exception)

        if level == "error":
            log.error("Storage error", **context)
        else:
            log.warning("Storage error", **context)

    def log_feed_error(
        self,
        error_type: str,
        error_message: str,
        *,
        request_url: str | None = None,
        response_status: int | None = None,
        exception: Exception | None = None,
    ) -> None:
        """Log a market data API failure.

        Args:
            error_type: Categorized error code
            error_message: Human-readable error description
            request_url: Request URL (secrets redacted)
            response_status: HTTP status, when a response was received
            exception: Underlying exception, if any
        """
        log = self._log.bind(
            error_type=error_type,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

        context: dict[str, Any] = {"error_message": error_message}
        if request_url:
            context["request_url"] = sanitize_url(request_url)
        if response_status is not None:
            context["response_status"] = response_status
        if exception:
            context["exception_type"] = type(exception).__name__

        log.warning("Feed error", **context)

    def log_system_error(
        self,
        error_type: str,
        error_message: str,
        *,
        component: str | None = None,
        exception: Exception | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Log general system error.

        Args:
            error_type: Categorized error code
            error_message: Human-readable error description
            component: System component name
            exception: Exception object
            context: Additional context dictionary
        """
        log = self._log.bind(
            error_type=error_type,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

        if component:
            log = log.bind(component=component)

        log_context: dict[str, Any] = {"error_message": redact_secrets(error_message)}

        if exception:
            log_context["exception_type"] = type(exception).__name__
            log_context["exception_message"] = redact_secrets(str(exception))

        if context:
            for key, value in context.items():
                if isinstance(value, str):
                    log_context[key] = redact_secrets(value)
                else:
                    log_context[key] = value

        log.error("System error", **log_context)


def get_error_logger() -> ErrorLogger:
    """Get ErrorLogger singleton instance.

    Returns:
        ErrorLogger: Singleton instance for centralized error logging
    """
    global _error_logger_instance
    if _error_logger_instance is None:
        _error_logger_instance = ErrorLogger()
    return _error_logger_instance
