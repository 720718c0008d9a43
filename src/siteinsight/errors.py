from __future__ import annotations


class SiteInsightError(RuntimeError):
    """Base class for failures raised across the analysis pipeline."""

    def __init__(self, message: str, *, payload: dict | None = None):
        super().__init__(message)
        self.payload = payload or {}


class InvalidUrl(SiteInsightError):
    """User input could not be coerced into an absolute http(s) URL."""


class FetchFailure(SiteInsightError):
    """The content fetcher could not retrieve the page."""


class CaptureFailure(SiteInsightError):
    """The page could not be rendered into a screenshot."""


class GenerationFailure(SiteInsightError):
    """The structured analyzer returned nothing usable or a non-conforming payload."""


class StoreFailure(SiteInsightError):
    """The report store rejected a read or write."""


class DecodeFailure(SiteInsightError):
    """A stored report blob could not be decoded."""


class PipelineBusy(SiteInsightError):
    """A pipeline run is already in flight for this orchestrator."""
