"""Sent-token store exception hierarchy.

Ordinary store reads and writes never raise; these exceptions only reach
callers of administrative operations.
"""


class SentTokenStoreError(Exception):
    """Base exception for sent-token storage errors."""

    pass


class InvalidUserIdError(SentTokenStoreError, ValueError):
    """User id cannot be mapped to a file name.

    Use case: Admin passed a target id containing path separators or other
    characters outside ``[A-Za-z0-9_-]``.
    """

    pass
