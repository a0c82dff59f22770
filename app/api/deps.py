"""
Reusable FastAPI dependencies for authentication.

Dependencies:
  - get_current_user   — verifies the bearer token and loads the profile (401/404)
  - get_optional_user  — same, but anonymous callers get None
  - get_swap_gateway   — binds the caller's Quidax sub-account to the services
"""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_user_id
from app.database import get_db
from app.models.profile import UserProfile
from app.redis_client import get_redis
from app.swap.gateway import ServiceGateway


def _bearer_token(authorization: str) -> str:
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )
    return authorization[len("Bearer "):]


async def _load_profile(db: AsyncSession, user_id: str) -> UserProfile | None:
    result = await db.execute(select(UserProfile).where(UserProfile.user_id == user_id))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Core: extract user from JWT
# ---------------------------------------------------------------------------


async def get_current_user(
    authorization: str = Header(..., description="Bearer <access_token>"),
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    """
    Parse the ``Authorization: Bearer <token>`` header, verify the JWT,
    and return the caller's profile.

    Raises 401 for a missing or bad token, 404 if the user has no profile
    or no exchange sub-account yet.
    """
    user_id = get_user_id(_bearer_token(authorization))
    profile = await _load_profile(db, user_id)

    if profile is None or not profile.quidax_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found",
        )
    return profile


async def get_optional_user(
    authorization: str | None = Header(None, description="Bearer <access_token>"),
    db: AsyncSession = Depends(get_db),
) -> UserProfile | None:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    if not authorization:
        return None
    user_id = get_user_id(_bearer_token(authorization))
    return await _load_profile(db, user_id)


async def get_swap_gateway(
    profile: UserProfile = Depends(get_current_user),
    redis=Depends(get_redis),
) -> ServiceGateway:
    return ServiceGateway(profile.quidax_id, redis)
