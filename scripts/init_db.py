#!/usr/bin/env python3
"""
Database Initialization Script
Verify the role catalog and create the authorization tables
"""

import asyncio
import sys

from schoolguard.core.exceptions import CatalogError
from schoolguard.core.logging import get_logger, setup_logging
from schoolguard.db.session import close_db, init_db
from schoolguard.permissions.catalog import verify_wall

setup_logging()
logger = get_logger(__name__)


async def main():
    """Main initialization function"""
    try:
        verify_wall()
    except CatalogError as e:
        logger.error(f"Role catalog is invalid: {e.message} {e.details}")
        return 1

    logger.info("Initializing database...")

    try:
        await init_db()
        logger.info("Database initialized successfully!")
        return 0
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1
    finally:
        await close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
