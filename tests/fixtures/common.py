"""
Common/Shared Fixtures

Base factories and generators used across multiple test layers.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional


def make_company_id() -> str:
    """Generate a unique company ID"""
    return f"cmp_test_{uuid.uuid4().hex[:12]}"


def make_user_id() -> str:
    """Generate a unique user ID"""
    return f"usr_test_{uuid.uuid4().hex[:12]}"


def make_document_id() -> str:
    """Generate a store-style document ID"""
    return uuid.uuid4().hex[:20]


def make_timestamp(days_ago: float = 0, base: Optional[datetime] = None) -> datetime:
    """Aware UTC datetime `days_ago` days before `base` (default now)"""
    base = base or datetime.now(timezone.utc)
    return base - timedelta(days=days_ago)
