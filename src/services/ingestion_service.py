"""Ingestion pipeline: normalize, enrich, persist."""
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from models.saved_item import SavedItem
from services import saved_item_service
from services.content_normalizer import normalize_content
from services.enrichment_service import Analyzer, enrich

logger = logging.getLogger(__name__)


async def process_content(
    db: AsyncSession,
    user_id: str,
    content: Any,
    content_type: str | None,
    analyzer: Analyzer,
    settings: Settings,
) -> SavedItem:
    """
    Turn raw user input into exactly one persisted saved item.

    Flow:
    1. Normalize the input (url / image / text)
    2. Enrich it: scrape (url only), then AI analysis
    3. Insert the row

    Nothing is written until enrichment has succeeded, so a failure at any
    step leaves no row behind. No retries.

    Note: Does not commit. Caller (session generator) handles commit at request end.

    Raises:
        InvalidInputError: If the content is missing or malformed.
        ScrapeError / AnalysisError: If an external call fails.
        PersistenceError: If the insert fails.
    """
    normalized = normalize_content(
        content,
        content_type,
        max_text_length=settings.max_text_length,
        max_image_bytes=settings.max_image_bytes,
    )

    enrichment = await enrich(
        normalized,
        analyzer,
        scrape_timeout=settings.scrape_timeout,
        max_scraped_text_length=settings.max_scraped_text_length,
    )

    item = await saved_item_service.create_saved_item(
        db,
        user_id,
        normalized.kind,
        enrichment,
        source_url=normalized.url,
    )
    logger.info(
        "Saved %s item %s for user %s (category=%s)",
        normalized.kind,
        item.id,
        user_id,
        item.category,
    )
    return item
