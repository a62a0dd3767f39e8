"""Feedback store access backed by DynamoDB."""

import logging
import os

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from models.feedback import FeedbackRecord, epoch_millis
from utils.dynamodb_utils import parse_items_from_dynamodb, prepare_for_dynamodb

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_LIMIT = 50


class ConfigurationError(Exception):
    """Feedback store configuration is missing."""

    pass


class UpstreamQueryError(Exception):
    """A query against the feedback store failed."""

    pass


class FeedbackService:
    """Query access to the feedback collection.

    Every read returns records newest first, ordered by the ``_ts`` sequence
    number.
    """

    def __init__(self, table):
        """Initialize the service with a DynamoDB table."""
        self.table = table

    @classmethod
    def from_environment(cls, dynamodb=None) -> "FeedbackService":
        """Build the service from ``FEEDBACK_TABLE`` and the AWS environment.

        Raises:
            ConfigurationError: If FEEDBACK_TABLE is not set
        """
        table_name = os.environ.get("FEEDBACK_TABLE")
        if not table_name:
            raise ConfigurationError(
                "Feedback store configuration is missing. Please set FEEDBACK_TABLE"
            )
        if dynamodb is None:
            dynamodb = boto3.resource(
                "dynamodb",
                region_name=os.environ.get("AWS_DEFAULT_REGION", "us-west-2"),
                endpoint_url=os.environ.get("DYNAMODB_ENDPOINT_URL") or None,
            )
        return cls(dynamodb.Table(table_name))

    def fetch_recent(self, limit: int = DEFAULT_SNAPSHOT_LIMIT) -> list[FeedbackRecord]:
        """Get the most recent feedback records, newest first."""
        if limit <= 0:
            return []
        return self._scan()[:limit]

    def fetch_since(self, watermark: int | None = None) -> list[FeedbackRecord]:
        """Get records with a sequence number strictly greater than the watermark.

        A missing watermark returns the whole collection.
        """
        if watermark is None:
            return self._scan()
        # Items without _ts pass the store filter and are checked on createdAt below
        records = self._scan(
            FilterExpression=Attr("_ts").gt(watermark) | Attr("_ts").not_exists()
        )
        return [r for r in records if r.sequence is not None and r.sequence > watermark]

    def add_feedback(self, record: FeedbackRecord) -> FeedbackRecord:
        """Store a feedback record, stamping a sequence number when missing."""
        if record.ts is None:
            record = record.model_copy(update={"ts": epoch_millis()})
        try:
            self.table.put_item(
                Item=prepare_for_dynamodb(record.to_wire()),
                ConditionExpression="attribute_not_exists(id)",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ValueError(f"Feedback {record.id} already exists") from e
            raise UpstreamQueryError(f"Failed to store feedback: {str(e)}") from e
        return record

    def _scan(self, **kwargs) -> list[FeedbackRecord]:
        try:
            response = self.table.scan(**kwargs)
            items = list(response.get("Items", []))
            while "LastEvaluatedKey" in response:
                response = self.table.scan(
                    ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs
                )
                items.extend(response.get("Items", []))
        except (ClientError, BotoCoreError) as e:
            raise UpstreamQueryError(f"Failed to query feedback store: {str(e)}") from e

        records = []
        for item in parse_items_from_dynamodb(items):
            try:
                records.append(FeedbackRecord.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping malformed feedback item %s: %s", item.get("id"), e)

        return sorted(records, key=lambda r: r.sequence or 0, reverse=True)
