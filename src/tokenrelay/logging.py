"""Centralized logging utilities.

Provides:
- Secret redaction for bot tokens and API keys
- URL sanitization for secret query params
- Structlog JSON/console configuration
- Standardized error type constants
"""

import logging
import re
import sys
from typing import Any

import structlog


class ErrorType:
    """Standardized error type codes for structured logging.

    Categories:
    - Storage errors: sent-token file reads, writes and locks
    - Feed errors: market data API failures
    - Bot errors: Telegram delivery and admin command failures
    """

    # Storage errors
    STORAGE_READ_FAILED = "STORAGE_READ_FAILED"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"
    STORAGE_CORRUPT = "STORAGE_CORRUPT"
    STORAGE_DELETE_FAILED = "STORAGE_DELETE_FAILED"
    LOCK_RECLAIMED = "LOCK_RECLAIMED"

    # Feed errors
    FEED_ERROR = "FEED_ERROR"

    # Bot errors
    ALERT_SEND_FAILED = "ALERT_SEND_FAILED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


def redact_secrets(value: str) -> str:
    """Redact secrets from a string value.

    Redaction rules:
    - API keys: Show as "***"
    - Tokens/secrets/passwords: Show first 4 chars + "..."
    - Telegram bot tokens embedded in URLs: Show "bot" + first 4 chars + "..."
    - Token addresses: NOT redacted (needed for debugging)

    Args:
        value: String that may contain secrets

    Returns:
        String with secrets redacted
    """
    result = value

    # Matches: api_key=xxx, api-key: "xxx", API_KEY="xxx"
    result = re.sub(
        r"(api[_-]?key[s]?[\"']?\s*[:=]\s*[\"']?)([a-zA-Z0-9_-]{20,})",
        r"\1***",
        result,
        flags=re.IGNORECASE,
    )

    # Matches: token=xxx, secret: xxx, password="xxx", bot_token=xxx
    result = re.sub(
        r"(token|secret|password|bot_token)([\"']?\s*[:=]\s*[\"']?)([a-zA-Z0-9_:-]{8,})",
        lambda m: f"{m.group(1)}{m.group(2)}{m.group(3)[:4]}...",
        result,
        flags=re.IGNORECASE,
    )

    # Matches: https://api.telegram.org/bot123456:ABC.../sendMessage
    result = re.sub(
        r"(/bot)(\d+:[a-zA-Z0-9_-]+)",
        lambda m: f"{m.group(1)}{m.group(2)[:4]}...",
        result,
    )

    return result


def sanitize_url(url: str) -> str:
    """Remove query parameters that might contain secrets.

    Args:
        url: URL that may contain secret query params

    Returns:
        URL with secret query params redacted
    """
    return re.sub(
        r"(\?|&)(token|api_key|secret)=([^&]+)",
        r"\1\2=***",
        url,
        flags=re.IGNORECASE,
    )


def configure_logging(json_output: bool = True) -> None:
    """Configure structlog for structured logging.

    Sets up structlog with:
    - JSON output (production) or console output (development)
    - ISO timestamp format
    - Log level and stack trace formatting
    - Stdout output (container-friendly)

    Args:
        json_output: Use JSON format (True) or console format (False)
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors = shared_processors + [structlog.processors.JSONRenderer()]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # python-telegram-bot, httpx and tenacity log through the stdlib
    logging.basicConfig(level=logging.INFO, stream=sys.stdout, format="%(name)s %(levelname)s %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
