"""
Test data seeder — populates user_profiles for development.

Usage:
    python scripts/seed_data.py

Creates one profile per fee tier (by trading volume), two of them
referred, each mapped to a mock Quidax sub-account.

Idempotent: checks for existing user ids before inserting.
"""

import asyncio
from decimal import Decimal

from sqlalchemy import select

from app.database import async_session
from app.models.profile import UserProfile
from app.services.fee_service import select_tier

# ---------------------------------------------------------------------------
# Profiles: trading volumes chosen to land in each volume tier
# ---------------------------------------------------------------------------

SAMPLE_PROFILES: list[dict] = [
    {
        "user_id": "5f0c7d1e-0000-4000-8000-000000000001",
        "quidax_id": "qdx-dev-0001",
        "trading_volume": Decimal("250.00"),
        "kyc_tier": 1,
    },
    {
        "user_id": "5f0c7d1e-0000-4000-8000-000000000002",
        "quidax_id": "qdx-dev-0002",
        "trading_volume": Decimal("3200.00"),
        "kyc_tier": 1,
        "referred_by": "5f0c7d1e-0000-4000-8000-000000000001",
    },
    {
        "user_id": "5f0c7d1e-0000-4000-8000-000000000003",
        "quidax_id": "qdx-dev-0003",
        "trading_volume": Decimal("12500.00"),
        "kyc_tier": 2,
    },
    {
        "user_id": "5f0c7d1e-0000-4000-8000-000000000004",
        "quidax_id": "qdx-dev-0004",
        "trading_volume": Decimal("48000.00"),
        "kyc_tier": 2,
        "referred_by": "5f0c7d1e-0000-4000-8000-000000000003",
    },
    {
        "user_id": "5f0c7d1e-0000-4000-8000-000000000005",
        "quidax_id": "qdx-dev-0005",
        "trading_volume": Decimal("150000.00"),
        "kyc_tier": 3,
    },
]


async def seed() -> None:
    print("Seeding user profiles...")

    async with async_session() as session:
        existing = set(
            (await session.execute(select(UserProfile.user_id))).scalars().all()
        )

        new_count = 0
        for data in SAMPLE_PROFILES:
            if data["user_id"] in existing:
                continue
            session.add(UserProfile(**data))
            new_count += 1

        await session.commit()
        print(f"  Profiles: {new_count} new, {len(SAMPLE_PROFILES) - new_count} existing")

    print("\n=== Seed Summary ===")
    for data in SAMPLE_PROFILES:
        tier = select_tier(data["trading_volume"])
        referred = "referred" if data.get("referred_by") else ""
        print(f"  {data['quidax_id']:<14} {tier.name:<7} {tier.fee_percentage}% {referred}")


if __name__ == "__main__":
    asyncio.run(seed())
