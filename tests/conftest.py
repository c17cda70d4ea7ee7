"""
Pytest Configuration and Fixtures
Shared fixtures and configuration for all tests
"""

import os
import uuid

# Settings are read at import time; test defaults must be in place first
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only_32chars")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("VERIFY_WALL_ON_STARTUP", "True")

import pytest
import pytest_asyncio

from schoolguard.core.security import get_password_hash
from schoolguard.db.models import ClassAssignment, User
from schoolguard.permissions.catalog import Role

TEST_PASSWORD = "test_password_123"


# ============================================
# PYTEST CONFIGURATION
# ============================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (medium speed)")


def pytest_collection_modifyitems(config, items):
    """Add default markers based on test file path"""
    for item in items:
        if "/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# ============================================
# DATABASE FIXTURES
# ============================================

@pytest.fixture(scope="session")
def test_password() -> str:
    return TEST_PASSWORD


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt hash of TEST_PASSWORD, computed once"""
    return get_password_hash(TEST_PASSWORD)


@pytest_asyncio.fixture
async def database(tmp_path):
    """
    Fresh SQLite database per test
    Initializes the module-level engine so request handlers share it
    """
    from schoolguard.db import session as db

    await db.init_db(f"sqlite+aiosqlite:///{tmp_path / 'schoolguard.db'}")
    yield db
    await db.close_db()


@pytest_asyncio.fixture
async def db_session(database):
    """Session on the per-test database"""
    async with database.async_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(db_session, password_hash):
    """
    Factory creating persisted users
    Returns an async function(role, school_level=None, is_active=True, class_ids=())
    """

    async def _make(
        role=None,
        school_level=None,
        is_active=True,
        class_ids=(),
        email=None,
    ) -> User:
        label = Role(role).value if role else "norole"
        user = User(
            email=email or f"{label}_{uuid.uuid4().hex[:8]}@example.com",
            full_name=f"Test {label}",
            hashed_password=password_hash,
            staff_role=role,
            school_level=school_level,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.flush()
        for class_id in class_ids:
            db_session.add(ClassAssignment(user_id=user.id, class_id=class_id))
        await db_session.commit()
        return user

    return _make
