"""
Authentication Constants

Configuration constants for signing and verifying chat credentials.
"""

import logging

from decouple import config

logger = logging.getLogger(__name__)

# JWT Configuration
SECRET_KEY = config("APP_SECRET", default="your_secret_key")
if SECRET_KEY == "your_secret_key":
    logger.warning("Using default APP_SECRET. This is insecure and should be changed in production!")

ALGORITHM = "HS256"

# 0 issues non-expiring tokens
ACCESS_TOKEN_EXPIRE_MINUTES = config("ACCESS_TOKEN_EXPIRE_MINUTES", default=60 * 24 * 7, cast=int)

logger.info(f"ACCESS_TOKEN_EXPIRE_MINUTES: {ACCESS_TOKEN_EXPIRE_MINUTES}")
