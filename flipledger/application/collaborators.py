"""Interfaces of the external collaborators used by the workflows.

``flipledger.runtime.ai_service.AIServiceClient`` implements all four; tests
pass small stubs. Implementations signal failure with ``AIServiceError``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from flipledger.importers.prefill import PrefillFields
from flipledger.importers.screenshot import ExtractedItem, Leg


class ScreenshotExtractor(Protocol):
    async def extract_screenshot_items(self, images: Sequence[tuple[str, bytes]], leg: Leg) -> list[ExtractedItem]: ...


class FieldExtractor(Protocol):
    async def extract_fields(self, text: str) -> PrefillFields: ...


class Categorizer(Protocol):
    async def categorize(self, names: Sequence[str]) -> dict[str, str]: ...


class ReportWriter(Protocol):
    async def write_report(self, payload: Mapping[str, Any]) -> str: ...
