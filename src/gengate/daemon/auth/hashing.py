"""Token hashing utilities for gengate authentication."""

import hashlib
import secrets

# Minimum token length (hex chars): 16 bytes = 32 hex chars
MIN_TOKEN_HEX_LEN = 32


def hash_token(raw_token: str) -> str:
    """SHA-256 hash a raw token for storage/lookup."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def issue_token() -> tuple[str, str]:
    """Return (raw_token, token_hash). Only the hash is persisted."""
    token = secrets.token_hex(16)
    return token, hash_token(token)
