"""
Content item routes: the review queue, dashboard views and review decisions.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import joinedload
from typing import Optional
from datetime import date

from ..auth import get_policy_context, require_admin
from ..lifecycle import ContentStatus, ContentType, approve, reject, apply_changes, is_archived, local_today, partition
from ..logging_config import api_logger, get_logger
from ..models.content_item import ContentItem
from ..models.profile import Profile
from ..policies import PolicyContext, PolicyEngine, get_policy_engine
from ..responses import not_found, validation_error
from ..schemas.content_item import (
    ArchiveResponse,
    ContentItemCreate,
    ContentItemList,
    ContentItemResponse,
    ContentItemUpdate,
    ContentTypeGroups,
    RejectRequest,
)
from ..views import ViewMode, filter_items, group_archive, group_by_type

router = APIRouter(prefix="/api/content-items", tags=["content-items"])

lifecycle_logger = get_logger("lifecycle")


def item_to_response(item: ContentItem, today: date) -> ContentItemResponse:
    response = ContentItemResponse.model_validate(item)
    response.archived = is_archived(item.schedule_date, today)
    return response


def _visible_items(ctx: PolicyContext, engine: PolicyEngine, order: str = "schedule_date"):
    query = engine.query(ctx, ContentItem).options(joinedload(ContentItem.assignee))
    if order == "created_at":
        query = query.order_by(ContentItem.created_at.desc())
    else:
        query = query.order_by(ContentItem.schedule_date.asc(), ContentItem.created_at.asc())
    return query.all()


def _get_visible_item(ctx: PolicyContext, engine: PolicyEngine, item_id: str) -> ContentItem:
    item = engine.get(ctx, ContentItem, item_id)
    if not item:
        not_found("Content item")
    return item


def _check_assignee(ctx: PolicyContext, engine: PolicyEngine, profile_id: str) -> None:
    if not engine.get(ctx, Profile, profile_id):
        validation_error("Assignee not found", {"field": "assigned_to"})


def _save(ctx: PolicyContext, engine: PolicyEngine, item: ContentItem, changes: dict) -> ContentItem:
    engine.authorize_update(ctx, item, changes)
    apply_changes(item, changes)
    ctx.db.commit()
    ctx.db.refresh(item)
    if "status" in changes:
        lifecycle_logger.info(
            f"Content {item.status.lower()}",
            content_item_id=item.id,
            principal_id=ctx.principal_id,
        )
    return item


@router.get("", response_model=ContentItemList)
def list_content_items(
    view: Optional[ViewMode] = None,
    content_type: Optional[ContentType] = None,
    status: Optional[ContentStatus] = None,
    client_email: Optional[str] = None,
    month: Optional[date] = None,
    order: str = Query("schedule_date", pattern="^(schedule_date|created_at)$"),
    ctx: PolicyContext = Depends(get_policy_context),
    engine: PolicyEngine = Depends(get_policy_engine),
):
    """Content items visible to the caller, optionally narrowed to a dashboard view."""
    today = local_today()
    items = _visible_items(ctx, engine, order)
    current, archived = partition(items, today)

    if view is not None:
        items = filter_items(
            items,
            view,
            today,
            content_type=content_type.value if content_type else None,
            status=status.value if status else None,
            client_email=client_email,
            month=month,
        )

    return ContentItemList(
        view=view.value if view else "all",
        items=[item_to_response(item, today) for item in items],
        current_count=len(current),
        archived_count=len(archived),
    )


@router.get("/by-type", response_model=ContentTypeGroups)
def content_items_by_type(
    status: Optional[ContentStatus] = None,
    client_email: Optional[str] = None,
    ctx: PolicyContext = Depends(get_policy_context),
    engine: PolicyEngine = Depends(get_policy_engine),
):
    """Current items grouped under each content type."""
    today = local_today()
    items = filter_items(
        _visible_items(ctx, engine),
        ViewMode.TYPE,
        today,
        status=status.value if status else None,
        client_email=client_email,
    )
    groups = group_by_type(items)
    return ContentTypeGroups(
        groups={
            content_type: [item_to_response(item, today) for item in group]
            for content_type, group in groups.items()
        }
    )


@router.get("/archive", response_model=ArchiveResponse)
def archived_content_items(
    ctx: PolicyContext = Depends(get_policy_context),
    engine: PolicyEngine = Depends(get_policy_engine),
):
    """Items scheduled before today, grouped by year and month."""
    today = local_today()
    _, archived = partition(_visible_items(ctx, engine), today)
    years = group_archive(archived)
    return ArchiveResponse(
        years={
            year: {
                month: [item_to_response(item, today) for item in items]
                for month, items in months.items()
            }
            for year, months in years.items()
        }
    )


@router.get("/{item_id}", response_model=ContentItemResponse)
def get_content_item(
    item_id: str,
    ctx: PolicyContext = Depends(get_policy_context),
    engine: PolicyEngine = Depends(get_policy_engine),
):
    return item_to_response(_get_visible_item(ctx, engine, item_id), local_today())


@router.post("", response_model=ContentItemResponse, status_code=201)
def create_content_item(
    payload: ContentItemCreate,
    ctx: PolicyContext = Depends(require_admin),
    engine: PolicyEngine = Depends(get_policy_engine),
):
    """Create a content item for review. It always starts as Pending."""
    _check_assignee(ctx, engine, payload.assigned_to)

    values = {
        "title": payload.title,
        "caption": payload.caption,
        "content_type": payload.content_type.value,
        "media_url": str(payload.media_url),
        "schedule_date": payload.schedule_date,
        "assigned_to": payload.assigned_to,
        "created_by": ctx.principal_id,
        "status": ContentStatus.PENDING.value,
    }
    engine.authorize_insert(ctx, ContentItem, values)

    if payload.status and payload.status is not ContentStatus.PENDING:
        api_logger.info("Ignoring requested status on create", requested=payload.status.value)

    item = ContentItem(**values)
    ctx.db.add(item)
    ctx.db.commit()
    ctx.db.refresh(item)
    api_logger.info("Content item created", content_item_id=item.id, assigned_to=item.assigned_to)
    return item_to_response(item, local_today())


@router.patch("/{item_id}", response_model=ContentItemResponse)
def update_content_item(
    item_id: str,
    payload: ContentItemUpdate,
    ctx: PolicyContext = Depends(get_policy_context),
    engine: PolicyEngine = Depends(get_policy_engine),
):
    """Edit a content item's editorial fields. Review fields change only via approve/reject."""
    item = _get_visible_item(ctx, engine, item_id)

    changes = {}
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is None and key != "title":
            continue
        if key == "content_type":
            value = ContentType(value).value
        elif key == "media_url":
            value = str(value)
        changes[key] = value

    if not changes:
        return item_to_response(item, local_today())
    if "assigned_to" in changes:
        _check_assignee(ctx, engine, changes["assigned_to"])

    _save(ctx, engine, item, changes)
    return item_to_response(item, local_today())


@router.post("/{item_id}/approve", response_model=ContentItemResponse)
def approve_content_item(
    item_id: str,
    ctx: PolicyContext = Depends(get_policy_context),
    engine: PolicyEngine = Depends(get_policy_engine),
):
    """Approve a pending item. Allowed for its assignee and for admins."""
    item = _get_visible_item(ctx, engine, item_id)
    _save(ctx, engine, item, approve(item))
    return item_to_response(item, local_today())


@router.post("/{item_id}/reject", response_model=ContentItemResponse)
def reject_content_item(
    item_id: str,
    payload: RejectRequest,
    ctx: PolicyContext = Depends(get_policy_context),
    engine: PolicyEngine = Depends(get_policy_engine),
):
    """Reject a pending item with notes. Allowed for its assignee and for admins."""
    item = _get_visible_item(ctx, engine, item_id)
    _save(ctx, engine, item, reject(item, payload.rejection_notes))
    return item_to_response(item, local_today())
