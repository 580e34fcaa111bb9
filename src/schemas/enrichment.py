"""Pydantic schemas for content kinds and AI enrichment results."""
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, field_validator


class ContentKind(StrEnum):
    """Kind of content a user saved."""

    URL = "url"
    IMAGE = "image"
    TEXT = "text"


# Categories the analyzer is asked to choose from
CATEGORIES = (
    "Work",
    "Personal",
    "Ideas",
    "Research",
    "Learning",
    "Shopping",
    "Travel",
    "Health & Fitness",
    "Food & Dining",
    "Finance",
    "Entertainment",
    "Productivity",
    "AI Tools",
    "Coupons & Deals",
    "Other",
)

DEFAULT_CATEGORY = "Other"
DEFAULT_SUMMARY = "No summary generated"

# Width of the saved_items.title column
MAX_TITLE_LENGTH = 500
MAX_TAGS = 10
MAX_TAG_LENGTH = 50
MAX_CATEGORY_LENGTH = 100

_CATEGORY_LOOKUP = {category.casefold(): category for category in CATEGORIES}


def normalize_category(value: str | None) -> str:
    """
    Map a category onto the canonical spelling.

    Known categories match case-insensitively. Unknown categories are kept as
    free strings; blank values fall back to "Other".
    """
    if value is None:
        return DEFAULT_CATEGORY
    stripped = str(value).strip()
    if not stripped:
        return DEFAULT_CATEGORY
    return _CATEGORY_LOOKUP.get(stripped.casefold(), stripped[:MAX_CATEGORY_LENGTH])


def normalize_tags(value: Any) -> list[str]:
    """
    Clean up AI-produced tags while keeping their relevance order.

    Accepts a list or a comma-separated string. Blank tags are dropped,
    duplicates are removed case-insensitively (first occurrence wins), and
    the result is capped at MAX_TAGS.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")

    tags: list[str] = []
    seen: set[str] = set()
    for raw in value:
        if raw is None:
            continue
        tag = str(raw).strip()[:MAX_TAG_LENGTH]
        if not tag or tag.casefold() in seen:
            continue
        seen.add(tag.casefold())
        tags.append(tag)
        if len(tags) == MAX_TAGS:
            break
    return tags


class Enrichment(BaseModel):
    """Title, summary, category and tags produced by the analysis step."""

    title: str
    summary: str = DEFAULT_SUMMARY
    category: str = DEFAULT_CATEGORY
    tags: list[str] = []

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Any) -> str:
        """Require a non-blank title; overlong titles are truncated."""
        if v is None or not str(v).strip():
            raise ValueError("title must not be empty")
        return str(v).strip()[:MAX_TITLE_LENGTH]

    @field_validator("summary", mode="before")
    @classmethod
    def default_summary(cls, v: Any) -> str:
        """Fall back to a placeholder when no summary was produced."""
        if v is None or not str(v).strip():
            return DEFAULT_SUMMARY
        return str(v).strip()

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> str:
        """Normalize the category."""
        return normalize_category(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> list[str]:
        """Normalize tags."""
        return normalize_tags(v)
