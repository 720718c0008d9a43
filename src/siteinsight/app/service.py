from __future__ import annotations

import logging

from siteinsight.adapters.base import ContentFetcher, StructuredAnalyzer, VisualCapture
from siteinsight.adapters.capture import BrowserScreenshotCapture
from siteinsight.adapters.content import BrowserContentFetcher
from siteinsight.config import Settings
from siteinsight.history import HistorySummary, summarize_history
from siteinsight.llm.factory import create_analyzer
from siteinsight.pipeline import AnalysisPipeline, PipelineOutcome, ProgressCallback
from siteinsight.report.models import AnalysisReport
from siteinsight.store.base import ReportStore
from siteinsight.store.codec import decode_record, load_reports
from siteinsight.store.sql import SqlReportStore

logger = logging.getLogger(__name__)


class AnalyzerService:
    """Wires the adapters and the store together; one pipeline per user with a run in flight."""

    def __init__(
        self,
        settings: Settings,
        *,
        fetcher: ContentFetcher | None = None,
        capture: VisualCapture | None = None,
        analyzer: StructuredAnalyzer | None = None,
        store: ReportStore | None = None,
    ):
        self.settings = settings
        self.fetcher = fetcher or BrowserContentFetcher(settings)
        self.capture = capture or BrowserScreenshotCapture(settings)
        self._analyzer = analyzer
        self.store = store or SqlReportStore(
            settings.database_url, timeout=settings.persist_timeout
        )
        self._pipelines: dict[str, AnalysisPipeline] = {}

    @property
    def analyzer(self) -> StructuredAnalyzer:
        # Built on first use so history and report reads work without an LLM key.
        if self._analyzer is None:
            self._analyzer = create_analyzer(self.settings)
        return self._analyzer

    def pipeline_for(self, user_id: str) -> AnalysisPipeline:
        pipeline = self._pipelines.get(user_id)
        if pipeline is None:
            pipeline = AnalysisPipeline(
                self.fetcher,
                self.capture,
                self.analyzer,
                self.store,
                self.settings,
                user_id=user_id,
            )
            self._pipelines[user_id] = pipeline
        return pipeline

    async def analyze(
        self, user_id: str, url: str, progress: ProgressCallback | None = None
    ) -> PipelineOutcome:
        pipeline = self.pipeline_for(user_id)
        unsubscribe = pipeline.subscribe(progress) if progress else None
        try:
            return await pipeline.run(url)
        finally:
            if unsubscribe:
                unsubscribe()
            self._release(user_id, pipeline)

    def _release(self, user_id: str, pipeline: AnalysisPipeline) -> None:
        # Pipelines live only while a run or an observer needs them.
        if pipeline.busy or pipeline.observed:
            return
        if self._pipelines.get(user_id) is pipeline:
            del self._pipelines[user_id]

    async def history(self, user_id: str, limit: int | None = None) -> HistorySummary:
        reports = await load_reports(self.store, user_id, limit or self.settings.history_limit)
        return summarize_history(reports)

    async def get_report(self, user_id: str, report_id: str) -> AnalysisReport | None:
        record = await self.store.get(user_id, report_id)
        return decode_record(record) if record else None

    async def shutdown(self) -> None:
        if self._analyzer is not None:
            await self._analyzer.aclose()
        close = getattr(self.store, "close", None)
        if close:
            close()
        logger.debug("Analyzer service shut down")
