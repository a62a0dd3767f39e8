"""DynamoDB type conversion utilities.

DynamoDB hands every number back as a Decimal, which pydantic will not accept
for ``int`` fields such as the ``_ts`` sequence number. These helpers convert
items on the way in and out of the feedback table.
"""

from decimal import Decimal
from typing import Any


def decimal_to_python(obj: Any) -> Any:
    """Recursively convert Decimal values to int (whole numbers) or float."""
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    if isinstance(obj, dict):
        return {key: decimal_to_python(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [decimal_to_python(item) for item in obj]
    return obj


def python_to_decimal(obj: Any) -> Any:
    """Recursively convert int and float values to Decimal.

    Booleans are left alone even though they subclass int.
    """
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, float):
        # Go through str to avoid binary float artifacts
        return Decimal(str(obj))
    if isinstance(obj, int):
        return Decimal(obj)
    if isinstance(obj, dict):
        return {key: python_to_decimal(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [python_to_decimal(item) for item in obj]
    return obj


def prepare_for_dynamodb(item: dict[str, Any]) -> dict[str, Any]:
    """Prepare an item for ``put_item``, dropping None values."""
    return python_to_decimal({k: v for k, v in item.items() if v is not None})


def parse_items_from_dynamodb(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert a page of scanned items to Python-native types."""
    return [decimal_to_python(item) for item in items]
