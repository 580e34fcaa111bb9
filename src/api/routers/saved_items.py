"""Saved item endpoints: ingestion, listing and field updates."""
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_authenticated_user_id,
    get_content_analyzer,
    get_settings,
)
from core.auth import resolve_owner
from core.config import Settings
from schemas.saved_item import (
    NotificationSettingsRequest,
    ProcessContentRequest,
    ProcessContentResponse,
    SavedItemListResponse,
    SavedItemMutationResponse,
    SavedItemResponse,
    ToggleCompletionRequest,
    UpdateTitleRequest,
    UserStatsResponse,
)
from services import ingestion_service, saved_item_service
from services.enrichment_service import Analyzer
from services.exceptions import InvalidInputError

router = APIRouter(tags=["saved-items"])


def _require_user_id(user_id: str | None, settings: Settings) -> str:
    """Reject a missing userId or the anonymous placeholder."""
    if not user_id or user_id == settings.anonymous_user_id:
        raise InvalidInputError("Valid userId is required")
    return user_id


@router.post("/process-content", response_model=ProcessContentResponse)
async def process_content(
    data: ProcessContentRequest,
    authenticated_user_id: str | None = Depends(get_authenticated_user_id),
    analyzer: Analyzer = Depends(get_content_analyzer),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_async_session),
) -> ProcessContentResponse:
    """
    Save a link, image or note.

    url content is scraped and analyzed, image and text content is analyzed
    directly. The request blocks until the row is written and returns it.
    """
    user_id = resolve_owner(
        _require_user_id(data.user_id, settings), authenticated_user_id,
    )
    item = await ingestion_service.process_content(
        db,
        user_id,
        data.content,
        data.content_type,
        analyzer,
        settings,
    )
    return ProcessContentResponse(data=SavedItemResponse.model_validate(item))


@router.get("/saved-items", response_model=SavedItemListResponse)
async def list_saved_items(
    user_id: str | None = Query(default=None, alias="userId", description="Owner of the items"),
    q: str | None = Query(default=None, description="Search query (matches title, summary, tags)"),  # noqa: E501
    category: str | None = Query(default=None, description="Filter by category"),
    status: Literal["all", "completed", "pending"] = Query(default="all", description="Filter by completion"),  # noqa: E501
    sort_by: Literal["newest", "oldest", "title", "category"] = Query(default="newest", alias="sortBy", description="Sort order"),  # noqa: E501
    authenticated_user_id: str | None = Depends(get_authenticated_user_id),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_async_session),
) -> SavedItemListResponse:
    """
    List the user's items, newest first.

    Optional filters narrow the list for browsing and search; they never
    widen it beyond the owner's own items.
    """
    owner = resolve_owner(_require_user_id(user_id, settings), authenticated_user_id)
    items = await saved_item_service.list_saved_items(
        db, owner, query=q, category=category, status=status, sort_by=sort_by,
    )
    return SavedItemListResponse(
        data=[SavedItemResponse.model_validate(item) for item in items],
        count=len(items),
    )


@router.patch("/toggle-completion", response_model=SavedItemMutationResponse)
async def toggle_completion(
    data: ToggleCompletionRequest,
    authenticated_user_id: str | None = Depends(get_authenticated_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> SavedItemMutationResponse:
    """Mark an item completed or pending."""
    owner = resolve_owner(data.user_id, authenticated_user_id)
    item = await saved_item_service.set_completed(db, owner, data.item_id, data.completed)
    return SavedItemMutationResponse(
        data=SavedItemResponse.model_validate(item),
        message="Item completed" if data.completed else "Item marked as pending",
    )


@router.patch("/update-title", response_model=SavedItemMutationResponse)
async def update_title(
    data: UpdateTitleRequest,
    authenticated_user_id: str | None = Depends(get_authenticated_user_id),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_async_session),
) -> SavedItemMutationResponse:
    """Rename an item. Titles longer than the configured limit are truncated."""
    owner = resolve_owner(data.user_id, authenticated_user_id)
    item = await saved_item_service.update_title(
        db, owner, data.item_id, data.title, max_length=settings.max_title_length,
    )
    return SavedItemMutationResponse(
        data=SavedItemResponse.model_validate(item),
        message="Title updated successfully",
    )


@router.patch("/notification-settings", response_model=SavedItemMutationResponse)
async def update_notification_settings(
    data: NotificationSettingsRequest,
    authenticated_user_id: str | None = Depends(get_authenticated_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> SavedItemMutationResponse:
    """Save an item's reminder settings (free-form JSON object)."""
    owner = resolve_owner(data.user_id, authenticated_user_id)
    item = await saved_item_service.update_notification_settings(
        db, owner, data.item_id, data.notifications,
    )
    return SavedItemMutationResponse(
        data=SavedItemResponse.model_validate(item),
        message="Notification settings saved successfully",
    )


@router.get("/user-stats", response_model=UserStatsResponse)
async def get_user_stats(
    user_id: str | None = Query(default=None, alias="userId", description="Owner of the items"),
    authenticated_user_id: str | None = Depends(get_authenticated_user_id),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_async_session),
) -> UserStatsResponse:
    """Totals for the profile screen: all, completed, pending and per category."""
    owner = resolve_owner(_require_user_id(user_id, settings), authenticated_user_id)
    stats = await saved_item_service.get_user_stats(db, owner)
    return UserStatsResponse(data=stats)
