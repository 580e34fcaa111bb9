"""AI analysis client producing a title, summary, category and tags for saved content."""
import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from core.config import Settings
from schemas.enrichment import CATEGORIES, ContentKind, Enrichment
from services.exceptions import AnalysisError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You organize content people save for later. "
    "Reply with a single JSON object with exactly these keys: "
    '"title" (short, at most 80 characters), '
    '"summary" (one or two sentences), '
    '"category" (one of: ' + ", ".join(CATEGORIES) + "), "
    '"tags" (array of up to 5 short lowercase keywords, most relevant first).'
)

URL_PROMPT = "Analyze this web page.\n\n{page}"
TEXT_PROMPT = "Analyze this note.\n\n{text}"
IMAGE_PROMPT = "Analyze this image. Describe what it shows and why someone might have saved it."


def _image_url(image: str) -> str:
    """Vision APIs expect a data URI; bare base64 is assumed to be JPEG."""
    if image.startswith(("data:", "http://", "https://")):
        return image
    return f"data:image/jpeg;base64,{image}"


def build_messages(content: Any, kind: ContentKind) -> list[dict[str, Any]]:
    """Build the chat messages for one analysis request."""
    system = {"role": "system", "content": SYSTEM_PROMPT}

    if kind == ContentKind.IMAGE:
        return [
            system,
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": IMAGE_PROMPT},
                    {"type": "image_url", "image_url": {"url": _image_url(content)}},
                ],
            },
        ]

    if kind == ContentKind.URL:
        page = json.dumps(content, ensure_ascii=False, default=str)
        return [system, {"role": "user", "content": URL_PROMPT.format(page=page)}]

    if isinstance(content, dict):
        text = content.get("description") or content.get("title") or ""
    else:
        text = str(content)
    return [system, {"role": "user", "content": TEXT_PROMPT.format(text=text)}]


def parse_completion(body: dict[str, Any]) -> Enrichment:
    """
    Extract the enrichment from a chat completion response body.

    Raises:
        AnalysisError: If the body has no message, the message is not a JSON
            object, or the object has no title.
    """
    try:
        message = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise AnalysisError("AI response has no message content") from e

    try:
        payload = json.loads(message)
    except (TypeError, json.JSONDecodeError) as e:
        raise AnalysisError("AI response is not valid JSON") from e
    if not isinstance(payload, dict):
        raise AnalysisError("AI response is not a JSON object")

    try:
        return Enrichment.model_validate(payload)
    except ValidationError as e:
        raise AnalysisError(f"AI response is missing required fields: {e}") from e


class ContentAnalyzer:
    """
    Client for an OpenAI-compatible chat completions API.

    Each call is a single request: no retries. Failures raise AnalysisError
    and abort the ingestion that triggered them.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        vision_model: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.vision_model = vision_model or model
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContentAnalyzer":
        """Create an analyzer from application settings."""
        return cls(
            base_url=settings.ai_base_url,
            api_key=settings.ai_api_key,
            model=settings.ai_model,
            vision_model=settings.vision_model,
            timeout=settings.ai_timeout,
        )

    async def analyze(self, content: Any, kind: ContentKind) -> Enrichment:
        """
        Produce {title, summary, category, tags} for content of the given kind.

        Args:
            content:
                Structured page data for url items, a data URI for images,
                {"title", "description"} for text.
            kind:
                The content kind; images go to the vision model.

        Raises:
            AnalysisError: On transport errors, non-2xx responses or unusable replies.
        """
        model = self.vision_model if kind == ContentKind.IMAGE else self.model
        request = {
            "model": model,
            "messages": build_messages(content, kind),
            "response_format": {"type": "json_object"},
            "temperature": 0.2,
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {self.api_key}"},
            ) as client:
                response = await client.post("/chat/completions", json=request)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            raise AnalysisError(f"AI service returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise AnalysisError(f"AI service request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise AnalysisError("AI service returned a non-JSON body") from e

        enrichment = parse_completion(body)
        logger.info(
            "Analyzed %s content with %s: category=%s, %d tags",
            kind,
            model,
            enrichment.category,
            len(enrichment.tags),
        )
        return enrichment
