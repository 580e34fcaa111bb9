"""Service layer for saved item persistence."""
import logging
from typing import Any, Literal
from urllib.parse import urlparse
from uuid import UUID

from sqlalchemy import String, case, cast, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import utc_now
from models.saved_item import SavedItem
from schemas.enrichment import MAX_TITLE_LENGTH, ContentKind, Enrichment
from schemas.saved_item import UserStats
from services.exceptions import InvalidInputError, ItemNotFoundError, PersistenceError

logger = logging.getLogger(__name__)


def extract_domain(url: str) -> str | None:
    """Hostname of a URL, or None if it cannot be parsed."""
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def build_preview_metadata(url: str, enrichment: Enrichment) -> dict[str, Any]:
    """
    Lightweight preview of a url item.

    Only the URL, domain and the enrichment's title/summary are kept; the
    scraped page body is never stored.
    """
    return {
        "url": url,
        "title": enrichment.title,
        "description": enrichment.summary,
        "domain": extract_domain(url),
    }


async def _flush_and_refresh(db: AsyncSession, item: SavedItem, error_message: str) -> None:
    try:
        await db.flush()
        await db.refresh(item)
    except SQLAlchemyError as e:
        logger.exception("Database error: %s", error_message)
        raise PersistenceError(error_message) from e


async def create_saved_item(
    db: AsyncSession,
    user_id: str,
    content_type: ContentKind,
    enrichment: Enrichment,
    source_url: str | None = None,
) -> SavedItem:
    """
    Insert one saved item and return it with its generated id.

    preview_metadata is only built for url items. completed always starts False.

    Note: Does not commit. Caller (session generator) handles commit at request end.

    Raises:
        PersistenceError: If the insert fails.
    """
    preview = None
    if content_type == ContentKind.URL and source_url:
        preview = build_preview_metadata(source_url, enrichment)

    item = SavedItem(
        user_id=user_id,
        title=enrichment.title,
        content_type=str(content_type),
        preview_metadata=preview,
        summary=enrichment.summary,
        category=enrichment.category,
        tags=list(enrichment.tags),
        completed=False,
    )
    db.add(item)
    await _flush_and_refresh(db, item, "Failed to save item")
    return item


async def get_saved_item(
    db: AsyncSession,
    user_id: str,
    item_id: UUID,
) -> SavedItem | None:
    """Get an item by id, scoped to its owner. Returns None if not found or wrong user."""
    try:
        result = await db.execute(
            select(SavedItem).where(
                SavedItem.id == item_id,
                SavedItem.user_id == user_id,
            ),
        )
    except SQLAlchemyError as e:
        logger.exception("Database error fetching item %s", item_id)
        raise PersistenceError("Failed to fetch item") from e
    return result.scalar_one_or_none()


async def _get_owned_item(db: AsyncSession, user_id: str, item_id: UUID) -> SavedItem:
    item = await get_saved_item(db, user_id, item_id)
    if item is None:
        raise ItemNotFoundError()
    return item


def escape_ilike(value: str) -> str:
    r"""
    Escape special LIKE/ILIKE characters so they match literally.

    % and _ are wildcards and \\ is the escape character.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def list_saved_items(
    db: AsyncSession,
    user_id: str,
    query: str | None = None,
    category: str | None = None,
    status: Literal["all", "completed", "pending"] = "all",
    sort_by: Literal["newest", "oldest", "title", "category"] = "newest",
) -> list[SavedItem]:
    """
    Items owned by a user, newest first unless sort_by says otherwise.

    Args:
        db: Database session.
        user_id: Owner of the items.
        query: Case-insensitive substring matched against title, summary and tags.
        category: Exact category name.
        status: 'completed', 'pending', or 'all'.
        sort_by: 'newest', 'oldest', 'title' (A-Z) or 'category' (A-Z).
    """
    stmt = select(SavedItem).where(SavedItem.user_id == user_id)

    if query and query.strip():
        pattern = f"%{escape_ilike(query.strip())}%"
        stmt = stmt.where(
            or_(
                SavedItem.title.ilike(pattern, escape="\\"),
                SavedItem.summary.ilike(pattern, escape="\\"),
                cast(SavedItem.tags, String).ilike(pattern, escape="\\"),
            ),
        )

    if category:
        stmt = stmt.where(SavedItem.category == category)

    if status == "completed":
        stmt = stmt.where(SavedItem.completed.is_(True))
    elif status == "pending":
        stmt = stmt.where(SavedItem.completed.is_(False))

    newest_first = (SavedItem.created_at.desc(), SavedItem.id.desc())
    if sort_by == "oldest":
        stmt = stmt.order_by(SavedItem.created_at.asc(), SavedItem.id.asc())
    elif sort_by == "title":
        stmt = stmt.order_by(func.lower(SavedItem.title).asc(), *newest_first)
    elif sort_by == "category":
        stmt = stmt.order_by(SavedItem.category.asc(), *newest_first)
    else:
        stmt = stmt.order_by(*newest_first)

    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.exception("Database error listing items for user %s", user_id)
        raise PersistenceError("Failed to fetch saved items") from e
    return list(result.scalars().all())


async def set_completed(
    db: AsyncSession,
    user_id: str,
    item_id: UUID,
    completed: bool,
) -> SavedItem:
    """
    Mark an item completed or pending.

    Re-applying the same value leaves the item unchanged apart from a fresh
    updated_at.

    Raises:
        ItemNotFoundError: If no item matches both id and owner.
        PersistenceError: If the update fails.
    """
    item = await _get_owned_item(db, user_id, item_id)
    item.completed = completed
    item.updated_at = utc_now()
    await _flush_and_refresh(db, item, "Failed to update item completion status")
    return item


async def update_title(
    db: AsyncSession,
    user_id: str,
    item_id: UUID,
    title: str,
    max_length: int = MAX_TITLE_LENGTH,
) -> SavedItem:
    """
    Rename an item.

    The title is stripped and truncated to max_length rather than rejected.

    Raises:
        InvalidInputError: If the title is blank.
        ItemNotFoundError: If no item matches both id and owner.
        PersistenceError: If the update fails.
    """
    cleaned = title.strip()
    if not cleaned:
        raise InvalidInputError("Title must not be empty")

    item = await _get_owned_item(db, user_id, item_id)
    item.title = cleaned[:min(max_length, MAX_TITLE_LENGTH)]
    item.updated_at = utc_now()
    await _flush_and_refresh(db, item, "Failed to update title")
    return item


async def update_notification_settings(
    db: AsyncSession,
    user_id: str,
    item_id: UUID,
    notifications: dict[str, Any],
) -> SavedItem:
    """
    Replace an item's notification settings.

    The settings object is stored as given; its shape belongs to the client.

    Raises:
        ItemNotFoundError: If no item matches both id and owner.
        PersistenceError: If the update fails.
    """
    item = await _get_owned_item(db, user_id, item_id)
    item.notifications = notifications
    item.updated_at = utc_now()
    await _flush_and_refresh(db, item, "Failed to update notification settings")
    return item


async def get_user_stats(db: AsyncSession, user_id: str) -> UserStats:
    """Count a user's items in total, by completion and by category."""
    query = (
        select(
            SavedItem.category,
            func.count(),
            func.sum(case((SavedItem.completed.is_(True), 1), else_=0)),
        )
        .where(SavedItem.user_id == user_id)
        .group_by(SavedItem.category)
    )
    try:
        rows = (await db.execute(query)).all()
    except SQLAlchemyError as e:
        logger.exception("Database error computing stats for user %s", user_id)
        raise PersistenceError("Failed to fetch user stats") from e

    categories = {category: count for category, count, _ in rows}
    total = sum(categories.values())
    completed = sum(int(done or 0) for _, _, done in rows)
    return UserStats(
        total=total,
        completed=completed,
        pending=total - completed,
        categories=categories,
    )
