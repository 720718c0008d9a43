from .base import (
    AnalysisPrompt,
    CaptureOptions,
    ContentFetcher,
    FetchedContent,
    ImageRef,
    PageMetadata,
    StructuredAnalyzer,
    VisualCapture,
)

__all__ = [
    "AnalysisPrompt",
    "CaptureOptions",
    "ContentFetcher",
    "FetchedContent",
    "ImageRef",
    "PageMetadata",
    "StructuredAnalyzer",
    "VisualCapture",
]
