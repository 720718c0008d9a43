"""Contracts the pipeline requires from its external collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from siteinsight.report.models import ReportBody


@dataclass(slots=True, frozen=True)
class PageMetadata:
    title: str | None = None
    description: str | None = None


@dataclass(slots=True, frozen=True)
class FetchedContent:
    content: str
    metadata: PageMetadata = field(default_factory=PageMetadata)


@dataclass(slots=True, frozen=True)
class CaptureOptions:
    full_page: bool = True
    width: int = 1920
    height: int = 1080


@dataclass(slots=True, frozen=True)
class ImageRef:
    """Opaque locator of a rendered snapshot; the pipeline never decodes pixels."""

    location: str
    width: int
    height: int
    full_page: bool


@dataclass(slots=True, frozen=True)
class AnalysisPrompt:
    url: str
    metadata: PageMetadata
    excerpt: str


@runtime_checkable
class ContentFetcher(Protocol):
    async def fetch(self, url: str) -> FetchedContent: ...


@runtime_checkable
class VisualCapture(Protocol):
    async def capture(self, url: str, options: CaptureOptions) -> ImageRef: ...


@runtime_checkable
class StructuredAnalyzer(Protocol):
    async def analyze(self, prompt: AnalysisPrompt, schema: dict[str, Any]) -> ReportBody: ...

    async def aclose(self) -> None: ...
