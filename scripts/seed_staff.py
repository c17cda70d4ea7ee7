#!/usr/bin/env python3
"""
Seed Staff Users Script
Creates one active user per staff role for local development
"""

import asyncio
import os

from sqlalchemy import select

from schoolguard.core.security import get_password_hash
from schoolguard.db.models import User
from schoolguard.db.session import close_db, init_db
from schoolguard.permissions.catalog import Role, SchoolLevel

EMAIL_DOMAIN = os.getenv("SEED_EMAIL_DOMAIN", "school.example.com")
DEFAULT_PASSWORD = os.getenv("SEED_PASSWORD", "changeme123")

SEED_LEVELS = {
    Role.DIRECTEUR: SchoolLevel.ELEMENTARY,
    Role.CENSEUR: SchoolLevel.HIGH_SCHOOL,
    Role.SURVEILLANT_GENERAL: SchoolLevel.MIDDLE,
}


async def seed_staff() -> None:
    """Create or refresh one user per role"""
    await init_db()

    from schoolguard.db.session import async_session_maker

    async with async_session_maker() as session:
        for role in Role:
            email = f"{role.value}@{EMAIL_DOMAIN}"
            result = await session.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()

            if user is None:
                user = User(email=email, full_name=role.value.replace("_", " ").title())
                session.add(user)
                print(f"Created {role.value}: {email}")
            else:
                print(f"Updated {role.value}: {email}")

            user.hashed_password = get_password_hash(DEFAULT_PASSWORD)
            user.staff_role = role
            user.school_level = SEED_LEVELS.get(role)
            user.is_active = True

        await session.commit()

    await close_db()
    print(f"Password for all seeded users: {DEFAULT_PASSWORD}")


if __name__ == "__main__":
    asyncio.run(seed_staff())
