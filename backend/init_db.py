#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script.

Creates every table for the configured DATABASE_URL. Run from any directory:
    python backend/init_db.py
    cd backend && python init_db.py
"""
import logging
import sys
from pathlib import Path

# Make 'portfolio_aggregator' importable without installing the package
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from portfolio_aggregator.database import create_tables
from portfolio_aggregator.utils import setup_logging

logger = logging.getLogger("init_db")


def init_db() -> None:
    """Create all database tables defined in models."""
    setup_logging()
    logger.info("Creating database tables...")
    create_tables()
    logger.info("Tables created successfully")


if __name__ == "__main__":
    init_db()
