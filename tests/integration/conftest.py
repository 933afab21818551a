#!/usr/bin/env python3
"""
Integration Test Configuration and Fixtures

Runs the PostgreSQL document store against a real database. Every test in
this layer is skipped when the database cannot be reached.
"""

import os
import sys
import uuid
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

from core.config import InfraConfig
from core.document_store import DocumentStoreError, PostgresDocumentStore


def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (real PostgreSQL)"
    )


@pytest_asyncio.fixture(scope="function")
async def document_store() -> AsyncGenerator[Optional[PostgresDocumentStore], None]:
    """
    Document store on a throwaway schema

    Yields None when PostgreSQL is unreachable; tests skip in that case.
    The schema is dropped afterwards.
    """
    infra = InfraConfig.from_env()
    schema = f"fleet_test_{uuid.uuid4().hex[:8]}"
    store = PostgresDocumentStore(
        dsn=infra.postgres_dsn,
        schema=schema,
        min_size=1,
        max_size=4,
        command_timeout=10,
    )
    try:
        await store.connect()
    except DocumentStoreError as e:
        print(f"Warning: Could not connect to PostgreSQL: {e}")
        yield None
        return

    try:
        yield store
    finally:
        async with store._acquire() as conn:
            await conn.execute(f'DROP SCHEMA IF EXISTS "{schema}" CASCADE')
        await store.close()


@pytest.fixture
def store(document_store):
    """Connected store, or skip"""
    if document_store is None:
        pytest.skip("PostgreSQL not available")
    return document_store
