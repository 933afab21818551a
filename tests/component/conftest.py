"""
Component Test Layer Configuration

Structure:
    tests/component/
    └── trip_service/   TripService, repositories and HTTP API
                        over an in-memory document store

Usage:
    pytest tests/component -v
    pytest tests/component/trip_service -v
"""
import os
import sys

import pytest

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "component: marks tests as component tests (mocked store)"
    )
    config.addinivalue_line(
        "markers", "api: marks tests that go through the FastAPI app"
    )
