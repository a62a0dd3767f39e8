"""Client-side filtering of the feedback list."""

from dataclasses import dataclass, replace
from datetime import UTC, date

from models.feedback import FeedbackRecord


@dataclass(frozen=True)
class FilterState:
    """Filter predicates, combined with AND.

    Empty text predicates and unset dates match everything. Edits produce a
    new instance via ``with_changes``.
    """

    name: str = ""
    email: str = ""
    text: str = ""
    date_from: date | None = None
    date_to: date | None = None

    def with_changes(self, **changes) -> "FilterState":
        for key in ("date_from", "date_to"):
            if isinstance(changes.get(key), str):
                changes[key] = parse_date(changes[key])
        return replace(self, **changes)

    @property
    def is_empty(self) -> bool:
        return self == FilterState()


def clear_filters() -> FilterState:
    """All predicates reset to match-all."""
    return FilterState()


def parse_date(value: str | None) -> date | None:
    """Parse a ``YYYY-MM-DD`` calendar date; blank means unset.

    Raises:
        ValueError: If the value is not a calendar date
    """
    if value is None or not value.strip():
        return None
    return date.fromisoformat(value.strip())


def _contains(haystack: str, needle: str) -> bool:
    return not needle or needle.casefold() in (haystack or "").casefold()


def matches(record: FeedbackRecord, filters: FilterState) -> bool:
    """Whether a single record passes every predicate."""
    if not _contains(record.user_name, filters.name):
        return False
    if not _contains(record.user_email, filters.email):
        return False
    if not _contains(record.feedback_text, filters.text):
        return False

    if filters.date_from is None and filters.date_to is None:
        return True

    created = record.created_datetime
    if created is None:
        return False
    created_day = created.astimezone(UTC).date()
    if filters.date_from is not None and created_day < filters.date_from:
        return False
    if filters.date_to is not None and created_day > filters.date_to:
        return False
    return True


def apply_filters(
    records: list[FeedbackRecord], filters: FilterState
) -> list[FeedbackRecord]:
    """Records passing the filters, in their original relative order."""
    if filters.is_empty:
        return list(records)
    return [record for record in records if matches(record, filters)]
