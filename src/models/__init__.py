"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.saved_item import SavedItem

__all__ = ["Base", "SavedItem", "TimestampMixin", "UUIDv7Mixin"]
