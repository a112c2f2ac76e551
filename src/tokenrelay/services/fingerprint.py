"""Token address fingerprinting."""

import hashlib


def hash_token_address(address: str) -> str:
    """Return the SHA-256 hex digest of a normalized token address.

    The address is stripped of surrounding whitespace and lowercased first,
    so ``" ABC "`` and ``"abc"`` share a fingerprint. No validation is done
    on the address itself.

    Args:
        address: Raw token address

    Returns:
        64-character lowercase hex digest
    """
    normalized = address.strip().lower()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
