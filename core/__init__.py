#!/usr/bin/env python3
"""
Core Module for the Fleet Dispatch Platform

Shared infrastructure for the trip service.

COMPONENTS:
    - config/: dataclass configuration loaded from environment and .env files
    - logger.py: per-service logger setup
    - document_store.py: PostgreSQL (asyncpg) document store keyed by company

USAGE:
    from core.config import get_settings
    from core.logger import setup_service_logger
    from core.document_store import PostgresDocumentStore

    settings = get_settings()
    logger = setup_service_logger("trip_service")
"""

__version__ = "1.0.0"
