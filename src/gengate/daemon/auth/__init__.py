"""gengate authentication package: hashing and caller resolution.

Re-exports public API so consumers can use:
    from .auth import hash_token, get_caller
"""

from .hashing import hash_token, issue_token
from .middleware import get_caller, require_privileged

__all__ = [
    "hash_token",
    "issue_token",
    "get_caller",
    "require_privileged",
]
