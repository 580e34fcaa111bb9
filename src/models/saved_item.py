"""SavedItem model for storing a user's saved links, images and notes."""
from typing import Any

from sqlalchemy import Boolean, Index, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType, TimestampMixin, UUIDv7Mixin
from schemas.enrichment import MAX_CATEGORY_LENGTH, MAX_TITLE_LENGTH


class SavedItem(Base, UUIDv7Mixin, TimestampMixin):
    """
    SavedItem model - one row per successful ingestion.

    preview_metadata (column preview_data) is only set for url items and holds
    lightweight metadata:

    {
        "url": "https://example.com/a",
        "title": "Example A",
        "description": "<AI summary>",
        "domain": "example.com"
    }

    The scraped page body is never stored. notifications is an opaque,
    client-defined JSON object (reminder frequency, time, message, ...).
    """

    __tablename__ = "saved_items"
    __table_args__ = (
        Index("ix_saved_items_user_id_created_at", "user_id", "created_at"),
    )

    # id provided by UUIDv7Mixin
    user_id: Mapped[str] = mapped_column(
        String(255),
        index=True,
        comment="Owner id issued by the auth provider; never changed after insert",
    )
    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), nullable=False)
    content_type: Mapped[str] = mapped_column(String(20), nullable=False)
    preview_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "preview_data", JSONType, nullable=True,
    )
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(
        String(MAX_CATEGORY_LENGTH), nullable=False, default="Other",
    )
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(),
    )
    notifications: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
