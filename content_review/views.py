"""
Dashboard view filters over the content items a principal can see.
"""
from collections import OrderedDict
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .lifecycle import ContentStatus, ContentType, is_archived


class ViewMode(str, Enum):
    LIST = "list"
    TYPE = "type"
    CALENDAR = "calendar"
    ARCHIVE = "archive"


# The list view is the review queue: undecided or sent-back items only.
LIST_STATUSES = (ContentStatus.PENDING.value, ContentStatus.REJECTED.value)


def _assignee_email(item) -> Optional[str]:
    assignee = getattr(item, "assignee", None)
    return assignee.email if assignee is not None else None


def filter_items(
    items: Iterable,
    view: ViewMode,
    today: date,
    content_type: Optional[str] = None,
    status: Optional[str] = None,
    client_email: Optional[str] = None,
    month: Optional[date] = None,
) -> List:
    """Apply a dashboard view's filters, keeping the input order."""
    view = ViewMode(view)
    result = []
    for item in items:
        archived = is_archived(item.schedule_date, today)

        if view is ViewMode.CALENDAR:
            if month and (item.schedule_date.year, item.schedule_date.month) != (month.year, month.month):
                continue
            result.append(item)
            continue

        if view is ViewMode.ARCHIVE:
            if archived:
                result.append(item)
            continue

        if archived:
            continue
        if content_type and item.content_type != content_type:
            continue
        if client_email and _assignee_email(item) != client_email:
            continue
        if view is ViewMode.LIST:
            if item.status not in LIST_STATUSES:
                continue
        elif status and item.status != status:
            continue
        result.append(item)
    return result


def group_by_type(items: Iterable) -> Dict[str, List]:
    """Group items under every content type, including empty ones."""
    groups = OrderedDict((content_type.value, []) for content_type in ContentType)
    for item in items:
        groups.setdefault(item.content_type, []).append(item)
    return groups


def group_archive(items: Iterable) -> Dict[str, Dict[str, List]]:
    """Group archived items by year (newest first), then by month name."""
    by_year: Dict[str, Dict[str, List]] = {}
    for item in items:
        year = item.schedule_date.strftime("%Y")
        month = item.schedule_date.strftime("%B")
        by_year.setdefault(year, {}).setdefault(month, []).append(item)
    return OrderedDict(sorted(by_year.items(), key=lambda entry: int(entry[0]), reverse=True))
