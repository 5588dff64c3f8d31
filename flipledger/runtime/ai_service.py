"""HTTP clients for the external AI collaborators.

The service exposes four endpoints:
- POST /extract/screenshots: order screenshots -> [{name, price, date}]
- POST /extract/text: free text -> {name, category, buyPrice}
- POST /categorize: item names -> [{name, tag}]
- POST /report: portfolio summary -> {text}

Responses are validated here and converted into typed values; anything
malformed raises ``AIServiceError`` so callers treat it like an outage.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from flipledger.domain.record import coerce_money, parse_iso_date
from flipledger.importers.prefill import PrefillFields
from flipledger.importers.screenshot import ExtractedItem, Leg
from flipledger.runtime.logging import get_logger

logger = get_logger(__name__)

AI_SERVICE_URL = os.environ.get("FLIPLEDGER_AI_SERVICE_URL", "http://localhost:8001")
DEFAULT_TIMEOUT = 60.0


class AIServiceError(RuntimeError):
    """Raised when an AI service cannot be reached or returns an unusable response."""


def _unwrap_list(payload: Any, key: str) -> list[Any]:
    """Accept a bare JSON array or an object holding the array under ``key``."""
    if isinstance(payload, Mapping):
        payload = payload.get(key)
    if not isinstance(payload, list):
        raise AIServiceError(f"Expected a list of {key} from the AI service")
    return payload


def parse_extracted_items(payload: Any) -> list[ExtractedItem]:
    """Validate the screenshot extraction response."""
    items = []
    for raw in _unwrap_list(payload, "items"):
        if not isinstance(raw, Mapping):
            raise AIServiceError("Extracted item is not an object")
        name = raw.get("name")
        price = coerce_money(raw.get("price"))
        if not isinstance(name, str) or not name.strip() or price is None:
            raise AIServiceError(f"Extracted item is missing a name or price: {raw!r}")
        items.append(ExtractedItem(name=name.strip(), price=price, date=parse_iso_date(raw.get("date"))))
    return items


def parse_prefill(payload: Any) -> PrefillFields:
    """Validate the free-text extraction response."""
    if not isinstance(payload, Mapping):
        raise AIServiceError("Text extraction response is not an object")
    name = payload.get("name")
    category = payload.get("category")
    return PrefillFields(
        name=name.strip() if isinstance(name, str) and name.strip() else None,
        category=category.strip() if isinstance(category, str) and category.strip() else None,
        buy_price=coerce_money(payload.get("buyPrice")),
    )


def parse_tag_map(payload: Any) -> dict[str, str]:
    """Validate the categorization response into a name -> tag mapping."""
    if isinstance(payload, Mapping) and "tags" not in payload:
        entries = [{"name": name, "tag": tag} for name, tag in payload.items()]
    else:
        entries = _unwrap_list(payload, "tags")

    tags: dict[str, str] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise AIServiceError("Categorization entry is not an object")
        name = entry.get("name")
        tag = entry.get("tag")
        if isinstance(name, str) and isinstance(tag, str) and name and tag.strip():
            tags[name] = tag.strip()
    return tags


def parse_report(payload: Any) -> str:
    """Validate the narrative report response."""
    text = payload.get("text") if isinstance(payload, Mapping) else payload
    if not isinstance(text, str) or not text.strip():
        raise AIServiceError("Report response has no text")
    return text


class AIServiceClient:
    """Async client for the AI service.

    Args:
        base_url: Service root; defaults to ``FLIPLEDGER_AI_SERVICE_URL``
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or AI_SERVICE_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _post(self, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, **kwargs)
        except httpx.RequestError as e:
            logger.error("Failed to connect to AI service at %s: %s", url, e)
            raise AIServiceError(f"Failed to connect to AI service: {e}") from e

        if response.status_code != 200:
            logger.error("AI service error: %s %s", response.status_code, url)
            raise AIServiceError(f"AI service error: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise AIServiceError("AI service returned invalid JSON") from e

    async def extract_screenshot_items(self, images: Sequence[tuple[str, bytes]], leg: Leg) -> list[ExtractedItem]:
        """Read order line items out of screenshots for one leg."""
        files = [("files", (filename, content, "application/octet-stream")) for filename, content in images]
        logger.info("Extracting %s items from %d screenshot(s)", leg, len(files))
        payload = await self._post("/extract/screenshots", files=files, data={"leg": leg})
        return parse_extracted_items(payload)

    async def extract_fields(self, text: str) -> PrefillFields:
        """Guess name, category and buy price from free text."""
        return parse_prefill(await self._post("/extract/text", json={"text": text}))

    async def categorize(self, names: Sequence[str]) -> dict[str, str]:
        """Assign a fine-grained tag to each item name."""
        if not names:
            return {}
        return parse_tag_map(await self._post("/categorize", json={"names": list(names)}))

    async def write_report(self, payload: Mapping[str, Any]) -> str:
        """Narrative analysis of the portfolio summary."""
        return parse_report(await self._post("/report", json=dict(payload)))
