#!/usr/bin/env python3
"""
Command-line script for seeding the feedback table.

Usage:
    python scripts/seed_feedback.py [--create-table] [--count N] [--follow SECONDS]

Options:
    --create-table    Create the feedback table if it does not exist
    --count N         Number of sample records to write (default 10)
    --follow SECONDS  Keep writing one record every SECONDS, to watch the
                      dashboard update live
    --dry-run         Show what would be written without writing
"""

import argparse
import logging
import os
import random
import sys
import time
import uuid
from datetime import UTC, datetime

import boto3
from botocore.exceptions import ClientError

# Add the src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.feedback import FeedbackRecord  # noqa: E402
from services.feedback_service import FeedbackService  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    ("u-100", "Ada Lovelace", "ada@example.com"),
    ("u-101", "Grace Hopper", "grace@example.com"),
    ("u-102", "Alan Turing", "alan@example.com"),
    ("u-103", "Katherine Johnson", "katherine@example.com"),
]

SAMPLE_TEXTS = [
    "The answer about expense policies was spot on.",
    "It took too long to respond this morning.",
    "Could you link the source document next time?",
    "Great summary of the meeting notes, thanks!",
    "The bot misunderstood my question about holidays.",
]


def get_dynamodb():
    return boto3.resource(
        "dynamodb",
        region_name=os.environ.get("AWS_DEFAULT_REGION", "us-west-2"),
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT_URL") or None,
    )


def create_table(dynamodb, table_name: str) -> None:
    """Create the feedback table keyed on the record id."""
    try:
        table = dynamodb.create_table(
            TableName=table_name,
            KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        table.wait_until_exists()
        logger.info("Created table %s", table_name)
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceInUseException":
            logger.info("Table %s already exists", table_name)
        else:
            raise


def make_record() -> FeedbackRecord:
    user_id, name, email = random.choice(SAMPLE_USERS)
    return FeedbackRecord(
        id=str(uuid.uuid4()),
        user_id=user_id,
        user_name=name,
        user_email=email,
        feedback_text=random.choice(SAMPLE_TEXTS),
        created_at=datetime.now(UTC).isoformat(),
    )


def main():
    parser = argparse.ArgumentParser(description="Seed the feedback table")
    parser.add_argument("--create-table", action="store_true")
    parser.add_argument("--count", type=int, default=10)
    parser.add_argument("--follow", type=float, default=None)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    table_name = os.environ.get("FEEDBACK_TABLE")
    if not table_name:
        logger.error("FEEDBACK_TABLE is not set")
        return 1

    if args.dry_run:
        logger.info("DRY RUN: Would write %d records to %s", args.count, table_name)
        for _ in range(args.count):
            record = make_record()
            print(f"  - {record.user_name}: {record.feedback_text}")
        return 0

    dynamodb = get_dynamodb()
    try:
        if args.create_table:
            create_table(dynamodb, table_name)

        service = FeedbackService(dynamodb.Table(table_name))
        for _ in range(args.count):
            record = service.add_feedback(make_record())
            logger.info("Wrote %s (%s)", record.id, record.user_name)
            # Keep sequence numbers distinct
            time.sleep(0.01)

        while args.follow:
            time.sleep(args.follow)
            record = service.add_feedback(make_record())
            logger.info("Wrote %s (%s)", record.id, record.user_name)
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.error("Failed to seed feedback: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
