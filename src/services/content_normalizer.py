"""Classify raw user input and extract its canonical representation."""
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import HttpUrl, TypeAdapter, ValidationError

from schemas.enrichment import ContentKind
from services.exceptions import InvalidInputError

# HttpUrl normalizes root domains with a trailing slash (example.com -> example.com/)
# but preserves paths as-is
_http_url = TypeAdapter(HttpUrl)


@dataclass(frozen=True)
class NormalizedContent:
    """
    Canonical form of a save request.

    Exactly one of url, image or text is set, matching kind.
    """

    kind: ContentKind
    url: str | None = None
    image: str | None = None
    text: str | None = None

    def analysis_payload(self) -> Any:
        """Content handed to the analyzer for image and text items."""
        if self.kind == ContentKind.IMAGE:
            return self.image
        if self.kind == ContentKind.TEXT:
            return {"title": self.text, "description": self.text}
        return {"url": self.url}


def classify(content_type: str | None) -> ContentKind:
    """Map a requested content type onto a kind; anything unrecognized is text."""
    if content_type == ContentKind.URL:
        return ContentKind.URL
    if content_type == ContentKind.IMAGE:
        return ContentKind.IMAGE
    return ContentKind.TEXT


def normalize_url(value: str) -> str:
    """
    Validate a URL, adding https:// when the scheme is missing.

    Raises:
        InvalidInputError: If the value is not a valid http(s) URL.
    """
    candidate = value.strip()
    if not candidate:
        raise InvalidInputError("URL must not be empty")
    if "://" not in candidate:
        candidate = f"https://{candidate}"

    try:
        url = _http_url.validate_python(candidate)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid URL: {value}") from e
    return str(url)


def _require_string(content: Any, kind: ContentKind) -> str:
    if not isinstance(content, str) or not content.strip():
        raise InvalidInputError(f"Content for {kind} items must be a non-empty string")
    return content


def normalize_content(
    content: Any,
    content_type: str | None,
    max_text_length: int = 512_000,
    max_image_bytes: int = 10 * 1024 * 1024,
) -> NormalizedContent:
    """
    Determine the enrichment path for a save request.

    - url: content is a URL string or a mapping carrying a "url" key.
    - image: content is an already-encoded image (data URI or base64).
    - anything else: content is free text.

    Pure function with no I/O.

    Raises:
        InvalidInputError: If content is missing or malformed for its kind.
    """
    kind = classify(content_type)

    if kind == ContentKind.URL:
        if isinstance(content, Mapping):
            content = content.get("url")
        url = _require_string(content, kind)
        return NormalizedContent(kind=kind, url=normalize_url(url))

    if kind == ContentKind.IMAGE:
        image = _require_string(content, kind)
        # base64 encodes 3 bytes in 4 characters
        if len(image) * 3 // 4 > max_image_bytes:
            raise InvalidInputError(
                f"Image exceeds the maximum size of {max_image_bytes} bytes",
            )
        return NormalizedContent(kind=kind, image=image)

    text = _require_string(content, kind)
    if len(text) > max_text_length:
        raise InvalidInputError(
            f"Text exceeds the maximum length of {max_text_length} characters",
        )
    return NormalizedContent(kind=kind, text=text)
