"""Telegram token alert relay with per-user sent-token deduplication."""

__version__ = "0.1.0"
