#!/usr/bin/env python
"""
Seed plans and demo accounts for development.
"""

import argparse
import asyncio
import sys
from decimal import Decimal
from typing import Any

from sqlalchemy import select


# Add src to path for imports
sys.path.insert(0, "src")

from tenantforge.core.auth.backend import hash_password
from tenantforge.core.database import async_session_factory
from tenantforge.modules.plans.models import Plan
from tenantforge.modules.users.models import User


PLANS: list[dict[str, Any]] = [
    {
        "name": "Free",
        "slug": "free",
        "price": Decimal("0"),
        "cpu_percent": 10,
        "memory_mb": 64,
        "storage_mb": 100,
        "bandwidth_mb": 1000,
        "page_views": 1000,
        "has_backups": False,
    },
    {
        "name": "Starter",
        "slug": "starter",
        "price": Decimal("9.00"),
        "cpu_percent": 25,
        "memory_mb": 256,
        "storage_mb": 1000,
        "bandwidth_mb": 10000,
        "page_views": 50000,
        "has_backups": True,
        "backup_frequency_hours": 168,
        "backup_retention_days": 14,
    },
    {
        "name": "Pro",
        "slug": "pro",
        "price": Decimal("29.00"),
        "cpu_percent": 50,
        "memory_mb": 512,
        "storage_mb": 5000,
        "bandwidth_mb": 50000,
        "page_views": 250000,
        "has_backups": True,
        "backup_frequency_hours": 24,
        "backup_retention_days": 30,
    },
    {
        "name": "Business",
        "slug": "business",
        "price": Decimal("99.00"),
        "cpu_percent": 100,
        "memory_mb": 2048,
        "storage_mb": 20000,
        "bandwidth_mb": 200000,
        "page_views": 1000000,
        "has_backups": True,
        "backup_frequency_hours": 6,
        "backup_retention_days": 90,
    },
]


async def seed_plans() -> None:
    """Create the standard plans, leaving existing ones untouched."""
    async with async_session_factory() as session:
        for data in PLANS:
            result = await session.execute(select(Plan).where(Plan.slug == data["slug"]))
            if result.scalar_one_or_none():
                print(f"Plan already exists: {data['slug']}")
                continue
            session.add(Plan(**data))
            print(f"Created plan: {data['slug']}")
        await session.commit()


async def seed_demo() -> None:
    """Create plans plus an operator and a paying owner."""
    await seed_plans()

    async with async_session_factory() as session:
        pro = (await session.execute(select(Plan).where(Plan.slug == "pro"))).scalar_one()
        accounts = [
            {"email": "ops@example.com", "full_name": "Operator", "is_admin": True},
            {"email": "owner@example.com", "full_name": "Demo Owner", "plan_id": pro.id},
        ]
        for data in accounts:
            result = await session.execute(select(User).where(User.email == data["email"]))
            if result.scalar_one_or_none():
                print(f"User already exists: {data['email']}")
                continue
            session.add(User(password_hash=hash_password("changeme123"), **data))
            print(f"Created user: {data['email']}")
        await session.commit()


async def main(scenario: str) -> None:
    """Run the seeding based on scenario."""
    if scenario == "default":
        await seed_plans()
    elif scenario == "demo":
        await seed_demo()
    else:
        print(f"Unknown scenario: {scenario}")
        print("Available scenarios: default, demo")
        sys.exit(1)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed database with plans and demo data")
    parser.add_argument(
        "--scenario",
        "-s",
        default="default",
        help="Seed scenario to run (default, demo)",
    )
    args = parser.parse_args()

    asyncio.run(main(args.scenario))
