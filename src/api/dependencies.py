"""FastAPI dependencies for injection."""
from fastapi import Depends

from core.auth import get_authenticated_user_id
from core.config import Settings, get_settings
from db.session import get_async_session
from services.content_analyzer import ContentAnalyzer
from services.enrichment_service import Analyzer


def get_content_analyzer(settings: Settings = Depends(get_settings)) -> Analyzer:
    """Analyzer used by the ingestion endpoint (overridden in tests)."""
    return ContentAnalyzer.from_settings(settings)


__all__ = [
    "get_async_session",
    "get_authenticated_user_id",
    "get_content_analyzer",
    "get_settings",
]
