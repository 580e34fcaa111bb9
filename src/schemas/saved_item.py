"""Pydantic schemas for saved item endpoints."""
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model using camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProcessContentRequest(CamelModel):
    """
    Schema for saving new content.

    content is a URL string (or an object with a "url" key) for url items, a
    data URI for images, and free text otherwise.
    """

    content: str | dict[str, Any]
    content_type: str = "text"
    user_id: str = Field(min_length=1)


class ToggleCompletionRequest(CamelModel):
    """Schema for marking an item completed or pending."""

    item_id: UUID
    completed: StrictBool
    user_id: str = Field(min_length=1)


class UpdateTitleRequest(CamelModel):
    """Schema for renaming an item."""

    item_id: UUID
    title: str
    user_id: str = Field(min_length=1)


class NotificationSettingsRequest(CamelModel):
    """
    Schema for saving per-item reminder settings.

    notifications is stored as-is; the client defines its shape, e.g.
    {"enabled": true, "frequency": "daily", "time": "09:00", "customMessage": "..."}.
    """

    item_id: UUID
    notifications: dict[str, Any]
    user_id: str = Field(min_length=1)


class PreviewMetadata(CamelModel):
    """Lightweight preview of a url item's source page."""

    url: str
    title: str | None = None
    description: str | None = None
    domain: str | None = None


class SavedItemResponse(CamelModel):
    """Schema for saved item responses."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True,
    )

    id: UUID
    user_id: str
    title: str
    content_type: str
    preview_metadata: PreviewMetadata | None
    summary: str | None
    category: str
    tags: list[str]
    completed: bool
    notifications: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime


class ProcessContentResponse(BaseModel):
    """Response envelope for a newly saved item."""

    success: bool = True
    data: SavedItemResponse


class SavedItemMutationResponse(BaseModel):
    """Response envelope for an updated item."""

    success: bool = True
    data: SavedItemResponse
    message: str


class SavedItemListResponse(BaseModel):
    """Response envelope for a user's items, newest first."""

    success: bool = True
    data: list[SavedItemResponse]
    count: int


class UserStats(BaseModel):
    """Counts of a user's items."""

    total: int
    completed: int
    pending: int
    categories: dict[str, int]


class UserStatsResponse(BaseModel):
    """Response envelope for user statistics."""

    success: bool = True
    data: UserStats
