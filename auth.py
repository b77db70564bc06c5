import logging
import secrets
import string
from typing import Optional, Set

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import ADMIN_PASSWORD

TOKEN_LENGTH = 32
TOKEN_ALPHABET = string.ascii_letters + string.digits

logger = logging.getLogger("url_shortener")


class AdminTokens:
    """In-memory bearer tokens for the admin API.

    Tokens live for the lifetime of the process: they are never persisted,
    expired or revoked.
    """

    def __init__(self, password: str):
        self._password = password
        self._tokens: Set[str] = set()

    def login(self, password: Optional[str]) -> Optional[str]:
        if not password or not secrets.compare_digest(
            password.encode("utf-8"), self._password.encode("utf-8")
        ):
            return None
        token = ''.join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))
        self._tokens.add(token)
        return token

    def is_valid(self, token: Optional[str]) -> bool:
        return bool(token) and token in self._tokens

    def clear(self) -> None:
        self._tokens.clear()


admin_tokens = AdminTokens(ADMIN_PASSWORD)
bearer_scheme = HTTPBearer(auto_error=False)


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    token = credentials.credentials if credentials else None
    if not admin_tokens.is_valid(token):
        logger.warning("Rejected admin request: missing or invalid bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token
