"""Constants package for the chat backend."""

from .auth import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY

__all__ = [
    "SECRET_KEY",
    "ALGORITHM",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
]
