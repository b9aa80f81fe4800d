"""
Authentication service for verifying identity-provider access tokens.

Tokens are HS256 JWTs signed with a secret shared with the identity
provider. The ``user_id`` claim carries the application user id.
"""

import os
import logging
from datetime import timedelta
from typing import Dict, Optional

from dotenv import load_dotenv
from jose import JWTError, jwt

from scoutlete.utils.datetime_utils import utcnow

load_dotenv()

logger = logging.getLogger(__name__)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token.

    Used by local tooling and tests; production tokens are minted by the
    identity provider with the same secret.

    Args:
        data: Claims to encode (must include ``user_id``)
        expires_delta: Optional lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Optional[Dict]:
    """
    Decode and validate an access token.

    Returns:
        Token claims, or None if the token is malformed, badly signed or expired
    """
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.debug(f"Token verification failed: {e}")
        return None
