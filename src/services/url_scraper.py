"""Scrape service: fetch a URL and turn it into structured page data for analysis."""
import ipaddress
import logging
import socket
from dataclasses import dataclass
from io import BytesIO
from typing import Any
from urllib.parse import urlparse

import httpx
import trafilatura
from bs4 import BeautifulSoup
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from services.exceptions import ScrapeError

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; ContentSaver/1.0)'
DEFAULT_TIMEOUT = 10.0


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        # Unparseable addresses are treated as internal
        return True
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


def validate_url_not_private(url: str) -> None:
    """
    Refuse URLs that target a private/internal network.

    Resolves the hostname so a public name pointing at an internal address is
    caught as well.

    Raises:
        ScrapeError: If the URL has no hostname, cannot be resolved, or
            resolves to an internal address.
    """
    hostname = urlparse(url).hostname
    if not hostname:
        raise ScrapeError(url, "URL has no hostname")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise ScrapeError(url, "requests to localhost are not allowed")

    try:
        addrinfo = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ScrapeError(url, f"could not resolve hostname {hostname}") from e

    # sockaddr is (ip, port) for IPv4 or (ip, port, flow, scope) for IPv6
    for _, _, _, _, sockaddr in addrinfo:
        if is_private_ip(sockaddr[0]):
            raise ScrapeError(url, f"resolves to private/internal address {sockaddr[0]}")


@dataclass
class FetchedDocument:
    """Raw response body of a successful fetch, before extraction."""

    content: str | bytes  # str for HTML, bytes for PDF
    final_url: str
    content_type: str

    @property
    def is_pdf(self) -> bool:
        """Check if the content type indicates a PDF."""
        return 'application/pdf' in self.content_type.lower()


@dataclass
class ScrapedPage:
    """Structured data extracted from a web page or PDF."""

    url: str
    final_url: str
    title: str | None
    description: str | None
    site_name: str | None
    text: str | None
    content_type: str

    def as_analysis_input(self, max_text_length: int = 6000) -> dict[str, Any]:
        """
        Page data forwarded to the analyzer.

        Body text is truncated; it is only used to produce the summary and is
        never persisted.
        """
        text = self.text
        if text and len(text) > max_text_length:
            text = text[:max_text_length]
        return {
            'url': self.final_url,
            'title': self.title,
            'description': self.description,
            'siteName': self.site_name,
            'text': text,
        }


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchedDocument:  # noqa: ASYNC109
    """
    Fetch an HTML page or PDF.

    Follows redirects; the final URL is re-checked against internal networks.

    Args:
        url:
            The URL to fetch.
        timeout:
            Request timeout in seconds.

    Raises:
        ScrapeError: On blocked targets, network errors, non-2xx responses,
            or unsupported content types.
    """
    validate_url_not_private(url)

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
        ) as client:
            response = await client.get(url)
    except httpx.TimeoutException as e:
        raise ScrapeError(url, "request timed out") from e
    except httpx.RequestError as e:
        raise ScrapeError(url, f"request failed: {e}") from e

    final_url = str(response.url)
    if final_url != url:
        validate_url_not_private(final_url)

    if not response.is_success:
        raise ScrapeError(url, f"HTTP {response.status_code}")

    content_type = response.headers.get('content-type', '')
    if 'application/pdf' in content_type.lower():
        return FetchedDocument(content=response.content, final_url=final_url, content_type=content_type)
    if 'text/html' in content_type.lower():
        return FetchedDocument(content=response.text, final_url=final_url, content_type=content_type)
    raise ScrapeError(url, f"unsupported content type: {content_type}")


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find('meta', attrs=attrs)
    if tag and tag.get('content'):
        return tag['content'].strip() or None
    return None


def extract_html_page(html: str) -> tuple[str | None, str | None, str | None, str | None]:
    """
    Extract title, description, site name and readable text from HTML.

    Pure function with no I/O.

    Title priority: <title>, og:title, twitter:title.
    Description priority: meta description, og:description, twitter:description.
    Text is extracted with trafilatura (navigation, scripts and styles removed).

    Returns:
        (title, description, site_name, text); any element may be None.
    """
    soup = BeautifulSoup(html, 'lxml')

    title = None
    title_tag = soup.find('title')
    if title_tag and title_tag.string:
        title = title_tag.string.strip() or None
    title = (
        title
        or _meta_content(soup, property='og:title')
        or _meta_content(soup, name='twitter:title')
    )

    description = (
        _meta_content(soup, name='description')
        or _meta_content(soup, property='og:description')
        or _meta_content(soup, name='twitter:description')
    )
    site_name = _meta_content(soup, property='og:site_name')

    return title, description, site_name, trafilatura.extract(html)


def extract_pdf_page(pdf_bytes: bytes) -> tuple[str | None, str | None, str | None]:
    """
    Extract title, description and text from a PDF.

    Title comes from /Title and description from /Subject. PDF metadata is
    often missing, and scanned PDFs have no extractable text, so expect None.

    Returns:
        (title, description, text); any element may be None.
    """
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        meta = reader.metadata
        title = meta.title if meta and meta.title else None
        description = meta.subject if meta and meta.subject else None
        text_parts = [text for page in reader.pages if (text := page.extract_text())]
    except (PyPdfError, ValueError, KeyError) as e:
        logger.warning("Could not parse PDF: %s", e)
        return None, None, None

    return title, description, '\n'.join(text_parts) if text_parts else None


async def scrape_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> ScrapedPage:  # noqa: ASYNC109
    """
    Fetch a URL and extract structured page data.

    Routes to the HTML or PDF extractor based on content type.

    Raises:
        ScrapeError: If the page cannot be fetched.
    """
    document = await fetch_url(url, timeout)

    if document.is_pdf:
        title, description, text = extract_pdf_page(document.content)
        site_name = None
    else:
        title, description, site_name, text = extract_html_page(document.content)

    logger.info(
        "Scraped %s (final url %s, title %r, %d chars of text)",
        url,
        document.final_url,
        title,
        len(text) if text else 0,
    )
    return ScrapedPage(
        url=url,
        final_url=document.final_url,
        title=title,
        description=description,
        site_name=site_name,
        text=text,
        content_type=document.content_type,
    )
