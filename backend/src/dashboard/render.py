"""Plain-text rendering of the dashboard view."""

from dashboard.filters import FilterState, apply_filters
from dashboard.reconciler import FeedbackReconciler
from models.feedback import FeedbackRecord

TITLE = "Live Feedback Stream"
RULE = "-" * 60


def format_created_at(record: FeedbackRecord) -> str:
    """Human readable creation time, e.g. ``Jan 05, 2026, 10:00:00 AM``."""
    created = record.created_datetime
    if created is None:
        return record.created_at
    return created.strftime("%b %d, %Y, %I:%M:%S %p")


def describe_filters(filters: FilterState) -> str:
    parts = []
    for label, value in (
        ("name", filters.name),
        ("email", filters.email),
        ("text", filters.text),
        ("from", filters.date_from),
        ("to", filters.date_to),
    ):
        if value:
            parts.append(f"{label}={value}")
    return ", ".join(parts)


def render_card(record: FeedbackRecord, is_new: bool = False) -> str:
    marker = "[NEW] " if is_new else ""
    lines = [
        f"{marker}{record.user_name} <{record.user_email}>",
        f"  {record.feedback_text}",
        f"  {format_created_at(record)}",
    ]
    return "\n".join(lines)


def render_view(reconciler: FeedbackReconciler, filters: FilterState) -> str:
    """Render the header, banners and filtered feedback list."""
    if reconciler.is_loading:
        return "Loading feedback..."

    indicator = "Live" if reconciler.is_connected else "Disconnected"
    lines = [f"{TITLE}  [{indicator}]"]

    unread = reconciler.unread_count
    if unread > 0:
        lines.append(
            f"{unread} new feedback item{'s' if unread > 1 else ''} received"
        )
    if reconciler.error:
        lines.append(f"! {reconciler.error}")

    records = reconciler.records
    visible = apply_filters(records, filters)
    if not filters.is_empty:
        lines.append(
            f"Filters: {describe_filters(filters)} "
            f"(showing {len(visible)} of {len(records)})"
        )

    lines.append(RULE)
    if not visible:
        lines.append("No feedback items found")
        return "\n".join(lines)

    for record in visible:
        lines.append(render_card(record, is_new=reconciler.is_new(record)))
        lines.append("")
    return "\n".join(lines).rstrip()
