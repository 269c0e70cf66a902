"""
Credentials and identity resolution.

Tokens are JWTs signed with the server-held APP_SECRET. Identity resolution
never raises for a missing or bad credential: the caller is treated as
anonymous and the access rules decide what that caller may do.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Protocol
import logging

from jose import ExpiredSignatureError, JWTError, jwt

from app.models.user import User
from .constants import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from .exceptions import InvalidCredentialError

# Initialize logging
logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class CredentialClaims:
    """Identity claims carried by a verified token."""

    id: int
    nickname: Optional[str] = None


class CredentialSource(Protocol):
    """Case-insensitive key/value lookup (HTTP headers or connection params)."""

    def get(self, key: str, default: Any = None) -> Any: ...


class ConnectionParams:
    """Case-insensitive view over a WebSocket ``connection_init`` payload."""

    def __init__(self, params: Mapping[str, Any] | None = None) -> None:
        self._params = {str(key).lower(): value for key, value in (params or {}).items()}

    def get(self, key: str, default: Any = None) -> Any:
        return self._params.get(key.lower(), default)

    def __repr__(self) -> str:
        return f"ConnectionParams(keys={sorted(self._params)})"


# Function to create an access token for a signed-in user
def create_access_token(user_id: int, nickname: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    to_encode: dict[str, Any] = {"sub": str(user_id), "nickname": nickname, "iat": now}

    if expires_delta is None and ACCESS_TOKEN_EXPIRE_MINUTES > 0:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    if expires_delta is not None:
        to_encode["exp"] = now + expires_delta

    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


# Function to verify a token and decode its identity claims
def verify_credential(token: str, secret: str = SECRET_KEY) -> CredentialClaims:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except ExpiredSignatureError as e:
        logger.info("Credential expired")
        raise InvalidCredentialError("Credential has expired") from e
    except JWTError as e:
        logger.info(f"Credential verification failed: {e}")
        raise InvalidCredentialError() from e

    subject = payload.get("sub")
    if subject is None:
        logger.warning("Credential is missing 'sub' claim")
        raise InvalidCredentialError("Credential does not contain a subject")

    try:
        user_id = int(subject)
    except (TypeError, ValueError) as e:
        raise InvalidCredentialError("Credential subject is not a user id") from e

    return CredentialClaims(id=user_id, nickname=payload.get("nickname"))


def extract_bearer_token(credentials: CredentialSource) -> Optional[str]:
    """Return the raw token from the Authorization value, or None if absent."""
    authorization = credentials.get(AUTHORIZATION_HEADER)
    if not authorization or not isinstance(authorization, str):
        return None
    if authorization.startswith(BEARER_PREFIX):
        authorization = authorization[len(BEARER_PREFIX):]
    return authorization.strip() or None


async def resolve_identity(credentials: CredentialSource, store) -> Optional[User]:
    """
    Turn a per-connection credential into the signed-in user.

    Args:
        credentials: HTTP headers or ConnectionParams
        store: ChatStore used for the existence check and fetch

    Returns:
        The user, or None when unauthenticated for any reason.
    """
    token = extract_bearer_token(credentials)
    if token is None:
        return None

    try:
        claims = verify_credential(token)
    except InvalidCredentialError as e:
        logger.info(f"Treating request as anonymous: {e.message}")
        return None

    if not await store.user_exists(user_id=claims.id):
        logger.info(f"Credential refers to missing user {claims.id}; treating as anonymous")
        return None

    return await store.get_user(user_id=claims.id)
