"""
Core security module — verification of auth-provider access tokens.

Tokens are issued by Supabase Auth; this service never mints them. They
are HS256 JWTs signed with the project's JWT secret, carrying the user id
in ``sub`` and the ``authenticated`` audience.
"""

import logging

import jwt
from fastapi import HTTPException, status

from app.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------

_secret: str = settings.SUPABASE_JWT_SECRET
_audience: str = settings.SUPABASE_JWT_AUDIENCE
_algorithm: str = settings.JWT_ALGORITHM


def configure_secret(secret: str, *, audience: str | None = None, algorithm: str = "HS256") -> None:
    """Override the verification secret at runtime (used in tests)."""
    global _secret, _audience, _algorithm
    _secret = secret
    if audience is not None:
        _audience = audience
    _algorithm = algorithm


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------


def decode_token(token: str) -> dict:
    """
    Decode and return the JWT payload.

    Raises HTTP 401 on expiry or any other invalid-token error.
    """
    try:
        return jwt.decode(token, _secret, algorithms=[_algorithm], audience=_audience)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected access token: %s", type(exc).__name__)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )


def get_user_id(token: str) -> str:
    """Verify *token* and return the user id it was issued for."""
    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
        )
    return str(user_id)
