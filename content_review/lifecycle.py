"""
Content lifecycle: statuses, review transitions and the archived/current split.

A content item is created ``Pending`` and moves exactly once, to either
``Approved`` or ``Rejected``. Both outcomes are terminal. Rejection carries
mandatory notes and the time the decision was made; the two are always
written together.
"""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional, Tuple, TYPE_CHECKING
from zoneinfo import ZoneInfo

from .config import get_settings

if TYPE_CHECKING:
    from .models.content_item import ContentItem


class ContentStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ContentType(str, Enum):
    POST = "Post"
    STORY = "Story"
    REEL = "Reel"
    TIKTOK = "TikTok"


# Columns a review decision writes; everything else is editorial.
REVIEW_COLUMNS = frozenset({"status", "rejection_notes", "rejected_at"})

TRANSITIONS = {
    ContentStatus.PENDING: frozenset({ContentStatus.APPROVED, ContentStatus.REJECTED}),
    ContentStatus.APPROVED: frozenset(),
    ContentStatus.REJECTED: frozenset(),
}


class LifecycleError(Exception):
    """Base class for review workflow errors."""


class InvalidTransition(LifecycleError):
    def __init__(self, current: ContentStatus, target: ContentStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move content from {current.value} to {target.value}")


class MissingRejectionNotes(LifecycleError):
    def __init__(self):
        super().__init__("Rejection notes are required")


def can_transition(current: ContentStatus, target: ContentStatus) -> bool:
    return target in TRANSITIONS[ContentStatus(current)]


def _check_transition(item: "ContentItem", target: ContentStatus) -> ContentStatus:
    current = ContentStatus(item.status)
    if not can_transition(current, target):
        raise InvalidTransition(current, target)
    return current


def approve(item: "ContentItem") -> dict:
    """Move a pending item to Approved and return the changed columns."""
    _check_transition(item, ContentStatus.APPROVED)
    return {"status": ContentStatus.APPROVED.value}


def reject(item: "ContentItem", notes: Optional[str], now: Optional[datetime] = None) -> dict:
    """Move a pending item to Rejected with notes and a decision timestamp.

    Notes are validated before the transition is checked so that an empty
    submission is always reported as a missing field.
    """
    if notes is None or not notes.strip():
        raise MissingRejectionNotes()
    _check_transition(item, ContentStatus.REJECTED)
    return {
        "status": ContentStatus.REJECTED.value,
        "rejection_notes": notes,
        "rejected_at": now or datetime.now(timezone.utc),
    }


def apply_changes(item: "ContentItem", changes: dict) -> None:
    for column, value in changes.items():
        setattr(item, column, value)


# ============================================================
# ARCHIVE CLASSIFICATION
# ============================================================

def local_today(tz_name: Optional[str] = None) -> date:
    """Start of the current day on the configured local calendar."""
    tz_name = get_settings().local_timezone if tz_name is None else tz_name
    if tz_name:
        return datetime.now(ZoneInfo(tz_name)).date()
    return date.today()


def is_archived(schedule_date, today: Optional[date] = None) -> bool:
    """True iff the item was scheduled strictly before today.

    Timestamps are reduced to their calendar date first, so anything
    scheduled earlier today is still current.
    """
    if schedule_date is None:
        return False
    if isinstance(schedule_date, datetime):
        schedule_date = schedule_date.date()
    return schedule_date < (today or local_today())


def partition(items: Iterable["ContentItem"], today: Optional[date] = None) -> Tuple[List["ContentItem"], List["ContentItem"]]:
    """Split items into (current, archived), preserving order."""
    today = today or local_today()
    current, archived = [], []
    for item in items:
        (archived if is_archived(item.schedule_date, today) else current).append(item)
    return current, archived
