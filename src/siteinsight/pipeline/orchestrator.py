from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeVar
from uuid import uuid4

from siteinsight.adapters.base import (
    CaptureOptions,
    ContentFetcher,
    ImageRef,
    StructuredAnalyzer,
    VisualCapture,
)
from siteinsight.config import Settings
from siteinsight.errors import (
    CaptureFailure,
    FetchFailure,
    GenerationFailure,
    InvalidUrl,
    PipelineBusy,
    SiteInsightError,
    StoreFailure,
)
from siteinsight.llm.prompt import build_analysis_prompt
from siteinsight.pipeline.state import PipelineState, ProgressSnapshot, snapshot_for
from siteinsight.report.models import AnalysisReport, ReportBody
from siteinsight.report.schema import REPORT_SCHEMA, parse_report_body
from siteinsight.store.base import ReportStore
from siteinsight.urls import normalize_url

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressSnapshot], Coroutine[None, None, None]]

FAILURE_MESSAGE = "Analysis failed. Please try again."

_T = TypeVar("_T")


class OutcomeStatus(StrEnum):
    COMPLETE = "complete"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass(slots=True)
class PipelineOutcome:
    """Result of one pipeline invocation.

    ``message`` is safe to show to end users; ``error`` carries the diagnostic
    cause and is meant for logs.
    """

    status: OutcomeStatus
    report: AnalysisReport | None = None
    screenshot: ImageRef | None = None
    error: SiteInsightError | None = None
    failed_stage: PipelineState | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.COMPLETE

    @classmethod
    def rejected(cls, error: SiteInsightError) -> PipelineOutcome:
        return cls(status=OutcomeStatus.REJECTED, error=error, message=str(error))


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def _new_report_id() -> str:
    return f"analysis_{uuid4().hex}"


class AnalysisPipeline:
    """Runs fetch, capture, analyze and persist for one URL at a time.

    Observers subscribed through :meth:`subscribe` receive a snapshot on every
    state change. Only one run may be in flight; a second call while running
    is rejected with ``PipelineBusy``.
    """

    def __init__(
        self,
        fetcher: ContentFetcher,
        capture: VisualCapture,
        analyzer: StructuredAnalyzer,
        store: ReportStore,
        settings: Settings,
        *,
        user_id: str = "anonymous",
        clock: Callable[[], int] = _epoch_millis,
        id_factory: Callable[[], str] = _new_report_id,
    ):
        self.fetcher = fetcher
        self.capture = capture
        self.analyzer = analyzer
        self.store = store
        self.settings = settings
        self.user_id = user_id
        self._clock = clock
        self._id_factory = id_factory
        self._lock = asyncio.Lock()
        self._observers: list[ProgressCallback] = []
        self._snapshot = snapshot_for(PipelineState.IDLE)
        self._last_timestamp = 0
        self.result: AnalysisReport | None = None
        self.last_error: SiteInsightError | None = None

    @property
    def snapshot(self) -> ProgressSnapshot:
        return self._snapshot

    @property
    def state(self) -> PipelineState:
        return self._snapshot.state

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def observed(self) -> bool:
        return bool(self._observers)

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def start(self, raw_url: str) -> asyncio.Task[PipelineOutcome]:
        """Schedule a run as an independent task on the running loop."""
        return asyncio.create_task(self.run(raw_url), name=f"analysis:{self.user_id}")

    async def run(self, raw_url: str) -> PipelineOutcome:
        try:
            url = normalize_url(raw_url)
        except InvalidUrl as exc:
            logger.info("Rejected analysis request: %s", exc)
            return PipelineOutcome.rejected(exc)

        if self._lock.locked():
            return PipelineOutcome.rejected(
                PipelineBusy("An analysis is already running", payload={"url": url})
            )
        async with self._lock:
            try:
                return await self._execute(url)
            except asyncio.CancelledError:
                logger.info("Analysis of %s cancelled", url)
                self.result = None
                self._snapshot = snapshot_for(PipelineState.IDLE)
                raise

    async def _execute(self, url: str) -> PipelineOutcome:
        self.result = None
        self.last_error = None
        settings = self.settings
        try:
            await self._enter(PipelineState.FETCHING)
            fetched = await self._stage(self.fetcher.fetch(url), FetchFailure, settings.fetch_timeout)

            await self._enter(PipelineState.CAPTURING)
            options = CaptureOptions(
                full_page=settings.screenshot_full_page,
                width=settings.screenshot_width,
                height=settings.screenshot_height,
            )
            screenshot = await self._stage(
                self.capture.capture(url, options), CaptureFailure, settings.capture_timeout
            )

            await self._enter(PipelineState.ANALYZING)
            prompt = build_analysis_prompt(url, fetched, settings.content_excerpt_chars)
            body = await self._stage(
                self.analyzer.analyze(prompt, REPORT_SCHEMA),
                GenerationFailure,
                settings.analyze_timeout,
            )
            if not isinstance(body, ReportBody):
                body = parse_report_body(body)

            await self._enter(PipelineState.PERSISTING)
            report = AnalysisReport.assemble(
                id=self._id_factory(), url=url, timestamp=self._next_timestamp(), body=body
            )
            await self._persist(report)
        except SiteInsightError as exc:
            return await self._fail(url, exc)

        self.result = report
        await self._enter(PipelineState.COMPLETE)
        logger.info("Analysis %s of %s complete (overall %d)", report.id, url, report.overall_score)
        return PipelineOutcome(status=OutcomeStatus.COMPLETE, report=report, screenshot=screenshot)

    async def _stage(
        self, call: Awaitable[_T], failure: type[SiteInsightError], timeout: float
    ) -> _T:
        stage = self.state
        try:
            return await asyncio.wait_for(call, timeout or None)
        except TimeoutError as exc:
            raise failure(f"{stage} timed out after {timeout:g}s") from exc
        except SiteInsightError:
            raise
        except Exception as exc:
            raise failure(f"{stage} raised {type(exc).__name__}: {exc}") from exc

    async def _persist(self, report: AnalysisReport) -> None:
        """Hand the report to the store and wait for the write to settle.

        A write handed to the store is never abandoned, even on cancellation; the
        outcome follows the store's answer. ``PERSIST_TIMEOUT`` is enforced by the
        store itself (see ``SqlReportStore``); past it the pipeline only logs.
        """
        write = asyncio.ensure_future(self.store.create(self.user_id, report))
        timeout = self.settings.persist_timeout or None
        try:
            done, _ = await asyncio.wait({write}, timeout=timeout)
            if not done:
                logger.warning("Saving analysis %s still running after %gs", report.id, timeout)
                await asyncio.wait({write})
        except asyncio.CancelledError:
            await asyncio.wait({write})
            if not write.cancelled() and write.exception() is None:
                logger.info("Analysis %s was saved before the run was cancelled", report.id)
            raise

        exc = write.exception()
        if exc is None:
            return
        if isinstance(exc, SiteInsightError):
            raise exc
        raise StoreFailure(f"{self.state} raised {type(exc).__name__}: {exc}") from exc

    async def _fail(self, url: str, exc: SiteInsightError) -> PipelineOutcome:
        stage = self.state
        logger.warning(
            "Analysis of %s failed while %s: %s", url, stage, exc, exc_info=exc.__cause__
        )
        self.last_error = exc
        self.result = None
        self._snapshot = snapshot_for(PipelineState.FAILED)
        await self._notify()
        self._snapshot = snapshot_for(PipelineState.IDLE)
        return PipelineOutcome(
            status=OutcomeStatus.FAILED,
            error=exc,
            failed_stage=stage,
            message=FAILURE_MESSAGE,
        )

    async def _enter(self, state: PipelineState) -> None:
        self._snapshot = snapshot_for(state)
        logger.debug("Pipeline %s -> %s (%d%%)", self.user_id, state, self._snapshot.progress)
        await self._notify()

    async def _notify(self) -> None:
        snapshot = self._snapshot
        for callback in list(self._observers):
            try:
                await callback(snapshot)
            except Exception:
                logger.exception("Progress observer %r failed", callback)

    def _next_timestamp(self) -> int:
        # Strictly increasing so newest-first ordering is stable within a pipeline.
        stamp = max(self._clock(), self._last_timestamp + 1)
        self._last_timestamp = stamp
        return stamp