"""FastAPI dependencies resolving a bearer token to a verified caller."""

from fastapi import Depends, HTTPException, Security
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..errors import Forbidden
from ..ledger import Caller, find_account_by_token_hash
from ..utils.logging_config import StructuredLogger
from .hashing import hash_token, MIN_TOKEN_HEX_LEN

logger = StructuredLogger(__name__)
security = HTTPBearer(auto_error=False)


async def get_caller(credentials: HTTPAuthorizationCredentials | None = Security(security)) -> Caller:
    """Authenticate by bearer token and return (identity, role)."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="no token")

    token = credentials.credentials
    if len(token) < MIN_TOKEN_HEX_LEN:
        logger.warning("Authentication failed: Token too short", length=len(token))
        raise HTTPException(status_code=401, detail="invalid token")

    account = await run_in_threadpool(find_account_by_token_hash, hash_token(token))
    if account is None:
        logger.warning("Authentication failed: Invalid token")
        raise HTTPException(status_code=401, detail="invalid token")

    return Caller(identity=account.identity, role=account.role)


async def require_privileged(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.privileged:
        logger.warning("Privileged route refused", identity=caller.identity)
        raise Forbidden(identity=caller.identity)
    return caller
