"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest

from models.feedback import FeedbackRecord

BASE_TIME = datetime(2026, 1, 20, 8, 0, 0, tzinfo=UTC)


def make_record(
    index: int = 1,
    user_name: str | None = None,
    user_email: str | None = None,
    feedback_text: str | None = None,
    created_at: datetime | None = None,
    ts: int | None = None,
) -> FeedbackRecord:
    """Build a FeedbackRecord whose sequence grows with ``index``."""
    created = created_at or BASE_TIME + timedelta(minutes=index)
    return FeedbackRecord(
        id=f"fb-{index}",
        user_id=f"user-{index}",
        user_name=user_name or f"User {index}",
        user_email=user_email or f"user{index}@example.com",
        feedback_text=feedback_text or f"Feedback number {index}",
        created_at=created.isoformat(),
        ts=ts if ts is not None else int(created.timestamp() * 1000),
    )


def newest_first(*indexes: int) -> list[FeedbackRecord]:
    """Records for the given indexes, ordered newest first."""
    return [make_record(i) for i in sorted(indexes, reverse=True)]


@pytest.fixture
def sample_record():
    """Create a sample feedback record for testing."""
    return FeedbackRecord.model_validate(
        {
            "id": "3f6c1d2e-0001",
            "userId": "29:1abc",
            "userName": "Ada Lovelace",
            "userEmail": "ada@example.com",
            "feedbackText": "The answer about expense policies was spot on.",
            "createdAt": "2026-01-20T10:15:30.000Z",
            "_rid": "abc==",
            "_self": "dbs/abc==/colls/def==/docs/abc==/",
            "_etag": '"0000d-0000"',
            "_attachments": "attachments/",
            "_ts": 1768904130000,
        }
    )


@pytest.fixture
def mock_feedback_table():
    """Create a mock DynamoDB feedback table."""
    mock_table = Mock()
    mock_table.put_item.return_value = {}
    mock_table.scan.return_value = {"Items": []}
    return mock_table
