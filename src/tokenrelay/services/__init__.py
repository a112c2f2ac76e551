"""Business logic services."""

from tokenrelay.services.error_logger import ErrorLogger, get_error_logger
from tokenrelay.services.file_lock import SentTokenLock
from tokenrelay.services.fingerprint import hash_token_address
from tokenrelay.services.notifier import TokenNotifier
from tokenrelay.services.sent_tokens import SentTokenStore
from tokenrelay.services.subscribers import SubscriberRegistry
from tokenrelay.services.token_feed import TokenCache, TokenFeed

__all__ = [
    "ErrorLogger",
    "get_error_logger",
    "SentTokenLock",
    "hash_token_address",
    "TokenNotifier",
    "SentTokenStore",
    "SubscriberRegistry",
    "TokenCache",
    "TokenFeed",
]
