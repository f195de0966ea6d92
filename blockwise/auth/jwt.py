"""Bearer tokens for the blockwise API.

Tokens are HS256 JWTs whose subject is the user ID. Every token carries the
service issuer so tokens minted for another service sharing the secret are
not accepted here.
"""

import os
import jwt
from datetime import datetime, timedelta
from typing import Optional, Dict
from dotenv import load_dotenv

load_dotenv()

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))
JWT_ISSUER = os.getenv("JWT_ISSUER", "blockwise")

# Claims a token must carry to be accepted.
REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss"]


def create_access_token(user_id: str, expires_in: Optional[timedelta] = None) -> str:
    """Create a signed access token for a calendar owner.

    Args:
        user_id: Owner of the calendar blocks the token grants access to
        expires_in: Token lifetime (defaults to JWT_EXPIRATION_HOURS)
    """
    if not user_id:
        raise ValueError("Cannot issue a token without a user ID")
    now = datetime.utcnow()
    payload = {
        "sub": user_id,
        "iss": JWT_ISSUER,
        "iat": now,
        "exp": now + (expires_in or timedelta(hours=JWT_EXPIRATION_HOURS)),
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict]:
    """Decode an access token.

    Returns:
        Token payload, or None if the token is expired, malformed, badly signed,
        missing a required claim or issued by someone else
    """
    try:
        return jwt.decode(
            token,
            JWT_SECRET_KEY,
            algorithms=[JWT_ALGORITHM],
            issuer=JWT_ISSUER,
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def get_user_id_from_token(token: str) -> Optional[str]:
    payload = decode_access_token(token)
    if payload:
        return payload.get("sub")
    return None
