"""SQLAlchemy ORM models for trustBank."""

from app.models.profile import UserProfile
from app.models.swap import SwapStatus, SwapTransaction

__all__ = [
    "UserProfile",
    "SwapTransaction", "SwapStatus",
]
