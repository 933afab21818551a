"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - integration/: Document store against a real PostgreSQL (skips when unreachable)
    - component/  : Service and API tests (in-memory document store)
    - unit/       : Unit tests (pure functions, no I/O)
"""
import os
import sys

import pytest

# Set testing environment BEFORE any project imports
os.environ.setdefault("ENV", "testing")

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from core.config import FleetConfig

# Import shared fixtures from tests/fixtures
from tests.fixtures import (
    DEFAULT_COMPANY_ID,
    make_company_id,
    make_user_id,
)


@pytest.fixture
def fleet_config() -> FleetConfig:
    """Default fleet thresholds, independent of the environment"""
    return FleetConfig()


@pytest.fixture
def company_id() -> str:
    return DEFAULT_COMPANY_ID


@pytest.fixture
def new_company_id() -> str:
    return make_company_id()


@pytest.fixture
def dispatcher_id() -> str:
    return make_user_id()
