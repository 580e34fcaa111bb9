"""Enrichment: turn normalized content into a title, summary, category and tags."""
import logging
from typing import Protocol

from schemas.enrichment import ContentKind, Enrichment
from services.content_normalizer import NormalizedContent
from services.url_scraper import DEFAULT_TIMEOUT, scrape_url

logger = logging.getLogger(__name__)


class Analyzer(Protocol):
    """Anything that can analyze content (ContentAnalyzer, or a fake in tests)."""

    async def analyze(self, content: object, kind: ContentKind) -> Enrichment:
        """Produce an enrichment for content of the given kind."""
        ...


async def enrich(
    normalized: NormalizedContent,
    analyzer: Analyzer,
    scrape_timeout: float = DEFAULT_TIMEOUT,
    max_scraped_text_length: int = 6000,
) -> Enrichment:
    """
    Run the external calls for one save request.

    url items are scraped first and the page data is then analyzed; images
    and text go straight to the analyzer. Calls are sequential and any
    failure propagates (ScrapeError / AnalysisError).
    """
    logger.debug("Enriching %s content", normalized.kind)
    if normalized.kind == ContentKind.URL:
        page = await scrape_url(normalized.url, timeout=scrape_timeout)
        return await analyzer.analyze(
            page.as_analysis_input(max_scraped_text_length), ContentKind.URL,
        )

    return await analyzer.analyze(normalized.analysis_payload(), normalized.kind)
