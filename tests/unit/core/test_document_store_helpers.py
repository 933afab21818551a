"""
Document Store Helper Unit Tests

Timestamp parsing and normalization applied to documents before they reach
the models. No database required.
"""
import pytest
from datetime import datetime, timedelta, timezone

from core.document_store import format_timestamp, normalize_timestamps, parse_timestamp

pytestmark = [pytest.mark.unit]

NOON = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestParseTimestamp:
    """parse_timestamp"""

    @pytest.mark.parametrize("value", [
        NOON,
        datetime(2024, 6, 1, 12, 0),
        "2024-06-01T12:00:00Z",
        "2024-06-01T12:00:00+00:00",
        "2024-06-01T17:30:00+05:30",
        1717243200,
        1717243200.0,
        {"seconds": 1717243200, "nanoseconds": 0},
        {"_seconds": 1717243200, "_nanoseconds": 0},
    ])
    def test_supported_forms(self, value):
        assert parse_timestamp(value) == NOON

    def test_result_is_utc(self):
        parsed = parse_timestamp("2024-06-01T17:30:00+05:30")
        assert parsed.utcoffset() == timedelta(0)

    def test_nanoseconds(self):
        parsed = parse_timestamp({"seconds": 1717243200, "nanoseconds": 500_000_000})
        assert parsed == NOON + timedelta(milliseconds=500)

    @pytest.mark.parametrize("value", [None, "", "yesterday", True, {"nanoseconds": 5}, ["2024"]])
    def test_unusable_values(self, value):
        assert parse_timestamp(value) is None

    def test_format_timestamp(self):
        assert format_timestamp(NOON) == "2024-06-01T12:00:00+00:00"
        assert format_timestamp(None) is None


class TestNormalizeTimestamps:
    """normalize_timestamps"""

    def test_walks_nested_structures(self):
        document = {
            "createdAt": "2024-06-01T12:00:00Z",
            "tracking": [{"status": "confirmed", "timestamp": 1717243200}],
            "pickupLocation": {"address": "Mumbai"},
            "orderNumber": "TRP-001",
        }

        result = normalize_timestamps(document, ("createdAt", "timestamp"))

        assert result["createdAt"] == NOON
        assert result["tracking"][0]["timestamp"] == NOON
        assert result["tracking"][0]["status"] == "confirmed"
        assert result["pickupLocation"] == {"address": "Mumbai"}
        assert result["orderNumber"] == "TRP-001"

    def test_leaves_input_untouched(self):
        document = {"createdAt": "2024-06-01T12:00:00Z", "tracking": [{"timestamp": 0}]}
        normalize_timestamps(document, ("createdAt", "timestamp"))
        assert document == {"createdAt": "2024-06-01T12:00:00Z", "tracking": [{"timestamp": 0}]}

    def test_other_keys_are_not_parsed(self):
        document = {"notes": "2024-06-01T12:00:00Z"}
        assert normalize_timestamps(document, ("createdAt",)) == document
