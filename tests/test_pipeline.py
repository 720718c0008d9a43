import asyncio
import time

import pytest

from fakes import FailingStore, FakeAnalyzer, FakeCapture, FakeFetcher, GatedStore, sample_payload
from siteinsight.errors import (
    CaptureFailure,
    FetchFailure,
    GenerationFailure,
    InvalidUrl,
    PipelineBusy,
    StoreFailure,
)
from siteinsight.pipeline import (
    FAILURE_MESSAGE,
    AnalysisPipeline,
    OutcomeStatus,
    PipelineState,
    ProgressSnapshot,
)
from siteinsight.store import InMemoryReportStore, load_reports
from siteinsight.store.sql import SqlReportStore


def make_pipeline(settings, *, fetcher=None, capture=None, analyzer=None, store=None):
    return AnalysisPipeline(
        fetcher or FakeFetcher(),
        capture or FakeCapture(),
        analyzer or FakeAnalyzer(),
        store or InMemoryReportStore(),
        settings,
        user_id="u1",
    )


def record_progress(pipeline: AnalysisPipeline) -> list[ProgressSnapshot]:
    seen: list[ProgressSnapshot] = []

    async def observer(snapshot: ProgressSnapshot) -> None:
        seen.append(snapshot)

    pipeline.subscribe(observer)
    return seen


def test_end_to_end_run_persists_and_lists_newest_first(settings):
    store = InMemoryReportStore()
    pipeline = make_pipeline(settings, store=store)
    seen = record_progress(pipeline)

    async def scenario():
        first = await pipeline.run("example.com")
        second = await pipeline.run("example.com")
        return first, second, await load_reports(store, "u1", 10)

    first, second, history = asyncio.run(scenario())

    assert first.status is OutcomeStatus.COMPLETE and first.ok
    assert first.report.url == "https://example.com"
    assert first.report.id.startswith("analysis_")
    assert second.report.id != first.report.id
    assert second.report.timestamp > first.report.timestamp
    assert [report.id for report in history] == [second.report.id, first.report.id]
    assert history[0] == second.report
    assert first.screenshot.location == "file:///tmp/example.png"
    assert pipeline.result == second.report
    assert pipeline.state is PipelineState.COMPLETE

    single_run = seen[: len(seen) // 2]
    assert [snapshot.progress for snapshot in single_run] == [20, 40, 60, 80, 100]
    assert [snapshot.state for snapshot in single_run] == [
        PipelineState.FETCHING,
        PipelineState.CAPTURING,
        PipelineState.ANALYZING,
        PipelineState.PERSISTING,
        PipelineState.COMPLETE,
    ]
    assert single_run[-1].step == "Analysis complete!"


def test_capture_failure_persists_nothing_and_resets(settings):
    store = InMemoryReportStore()
    analyzer = FakeAnalyzer()
    pipeline = make_pipeline(
        settings, capture=FakeCapture(failures=1), analyzer=analyzer, store=store
    )
    seen = record_progress(pipeline)

    async def scenario():
        outcome = await pipeline.run("https://example.com")
        return outcome, await store.list("u1", 10)

    outcome, records = asyncio.run(scenario())

    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.message == FAILURE_MESSAGE
    assert isinstance(outcome.error, CaptureFailure)
    assert outcome.failed_stage is PipelineState.CAPTURING
    assert outcome.report is None
    assert records == []
    assert analyzer.prompts == []
    assert pipeline.result is None
    assert pipeline.state is PipelineState.IDLE
    assert pipeline.snapshot.progress == 0 and pipeline.snapshot.step == ""
    assert seen[-1].state is PipelineState.FAILED
    assert seen[-1].progress == 0


def test_failed_run_can_be_retriggered(settings):
    store = InMemoryReportStore()
    pipeline = make_pipeline(settings, capture=FakeCapture(failures=1), store=store)

    async def scenario():
        failed = await pipeline.run("example.com")
        retried = await pipeline.run("example.com")
        return failed, retried, await store.list("u1", 10)

    failed, retried, records = asyncio.run(scenario())
    assert failed.status is OutcomeStatus.FAILED
    assert retried.ok
    assert [record.id for record in records] == [retried.report.id]


def test_fetch_failure_stops_before_capture(settings):
    capture = FakeCapture()
    pipeline = make_pipeline(
        settings, fetcher=FakeFetcher(error=FetchFailure("DNS lookup failed")), capture=capture
    )
    outcome = asyncio.run(pipeline.run("example.com"))
    assert isinstance(outcome.error, FetchFailure)
    assert outcome.failed_stage is PipelineState.FETCHING
    assert capture.calls == []


def test_non_conforming_analysis_is_a_generation_failure(settings):
    store = InMemoryReportStore()
    pipeline = make_pipeline(settings, analyzer=FakeAnalyzer({"performance": {}}), store=store)
    outcome = asyncio.run(pipeline.run("example.com"))
    assert isinstance(outcome.error, GenerationFailure)
    assert asyncio.run(store.list("u1", 10)) == []


def test_unexpected_adapter_error_is_wrapped(settings):
    pipeline = make_pipeline(settings, analyzer=FakeAnalyzer(error=KeyError("candidates")))
    outcome = asyncio.run(pipeline.run("example.com"))
    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, GenerationFailure)
    assert isinstance(outcome.error.__cause__, KeyError)


def test_store_failure_exposes_no_report(settings):
    pipeline = make_pipeline(settings, store=FailingStore())
    outcome = asyncio.run(pipeline.run("example.com"))
    assert isinstance(outcome.error, StoreFailure)
    assert outcome.failed_stage is PipelineState.PERSISTING
    assert pipeline.result is None


def test_out_of_range_scores_are_clamped_before_persisting(settings):
    store = InMemoryReportStore()
    analyzer = FakeAnalyzer(sample_payload((150, -20, 99.6, 70, 50)))
    pipeline = make_pipeline(settings, analyzer=analyzer, store=store)

    async def scenario():
        await pipeline.run("example.com")
        return await store.list("u1", 10)

    [record] = asyncio.run(scenario())
    assert (record.performance_score, record.seo_score, record.accessibility_score) == (100, 0, 100)


def test_stage_timeout_is_a_stage_failure(settings):
    fetcher = FakeFetcher()
    fetcher.delay = 1.0
    quick = settings.model_copy(update={"fetch_timeout": 0.05})
    pipeline = make_pipeline(quick, fetcher=fetcher)
    outcome = asyncio.run(pipeline.run("example.com"))
    assert isinstance(outcome.error, FetchFailure)
    assert "timed out" in str(outcome.error)
    assert pipeline.state is PipelineState.IDLE


def test_invalid_url_is_rejected_without_starting(settings):
    fetcher = FakeFetcher()
    pipeline = make_pipeline(settings, fetcher=fetcher)
    seen = record_progress(pipeline)
    outcome = asyncio.run(pipeline.run("   "))
    assert outcome.status is OutcomeStatus.REJECTED
    assert isinstance(outcome.error, InvalidUrl)
    assert fetcher.calls == []
    assert seen == []
    assert pipeline.state is PipelineState.IDLE


def test_second_run_while_busy_is_rejected(settings):
    store = InMemoryReportStore()
    fetcher = FakeFetcher()
    pipeline = make_pipeline(settings, fetcher=fetcher, store=store)

    async def scenario():
        fetcher.gate = asyncio.Event()
        first = pipeline.start("example.com")
        await asyncio.sleep(0)
        assert pipeline.busy
        second = await pipeline.run("example.org")
        fetcher.gate.set()
        return await first, second, await store.list("u1", 10)

    first, second, records = asyncio.run(scenario())
    assert first.ok
    assert second.status is OutcomeStatus.REJECTED
    assert isinstance(second.error, PipelineBusy)
    assert fetcher.calls == ["https://example.com"]
    assert len(records) == 1
    assert not pipeline.busy


def test_cancelled_run_leaves_nothing_behind(settings):
    store = InMemoryReportStore()
    fetcher = FakeFetcher()
    pipeline = make_pipeline(settings, fetcher=fetcher, store=store)

    async def scenario():
        fetcher.gate = asyncio.Event()
        task = pipeline.start("example.com")
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return await store.list("u1", 10)

    assert asyncio.run(scenario()) == []
    assert pipeline.state is PipelineState.IDLE
    assert pipeline.result is None
    assert not pipeline.busy


def test_prompt_excerpt_is_bounded(settings):
    analyzer = FakeAnalyzer()
    pipeline = make_pipeline(settings, fetcher=FakeFetcher("y" * 9000), analyzer=analyzer)
    asyncio.run(pipeline.run("example.com"))
    [prompt] = analyzer.prompts
    assert prompt.url == "https://example.com"
    assert prompt.metadata.title == "Example Domain"
    assert len(prompt.excerpt) == settings.content_excerpt_chars + 3


def test_capture_options_come_from_settings(settings):
    capture = FakeCapture()
    pipeline = make_pipeline(settings, capture=capture)
    asyncio.run(pipeline.run("example.com"))
    [(url, options)] = capture.calls
    assert url == "https://example.com"
    assert (options.full_page, options.width, options.height) == (True, 1920, 1080)


def test_broken_observer_does_not_abort_run(settings):
    pipeline = make_pipeline(settings)

    async def broken(snapshot):
        raise RuntimeError("progress bar exploded")

    pipeline.subscribe(broken)
    assert asyncio.run(pipeline.run("example.com")).ok


def test_unsubscribe_stops_notifications(settings):
    pipeline = make_pipeline(settings)
    seen = []

    async def observer(snapshot):
        seen.append(snapshot)

    unsubscribe = pipeline.subscribe(observer)
    unsubscribe()
    asyncio.run(pipeline.run("example.com"))
    assert seen == []


class SlowSqlStore(SqlReportStore):
    def __init__(self, *, delay: float, error: Exception | None = None):
        super().__init__("sqlite://")
        self.delay = delay
        self.error = error

    def _insert(self, record):
        time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        super()._insert(record)


def test_slow_write_past_persist_timeout_is_reported_as_saved(settings):
    store = SlowSqlStore(delay=0.3)
    pipeline = make_pipeline(settings.model_copy(update={"persist_timeout": 0.05}), store=store)

    async def scenario():
        outcome = await pipeline.run("example.com")
        return outcome, await store.list("u1", 10)

    outcome, records = asyncio.run(scenario())
    store.close()
    assert outcome.ok
    assert [record.id for record in records] == [outcome.report.id]
    assert pipeline.result == outcome.report


def test_slow_failing_write_past_persist_timeout_stores_nothing(settings):
    store = SlowSqlStore(delay=0.3, error=StoreFailure("disk full"))
    pipeline = make_pipeline(settings.model_copy(update={"persist_timeout": 0.05}), store=store)

    async def scenario():
        outcome = await pipeline.run("example.com")
        await asyncio.sleep(0.1)
        return outcome, await store.list("u1", 10)

    outcome, records = asyncio.run(scenario())
    store.close()
    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, StoreFailure)
    assert outcome.failed_stage is PipelineState.PERSISTING
    assert records == []


def test_cancel_while_persisting_waits_for_the_write(settings):
    store = GatedStore()
    pipeline = make_pipeline(settings, store=store)

    async def scenario():
        store.gate = asyncio.Event()
        task = pipeline.start("example.com")
        while pipeline.state is not PipelineState.PERSISTING:
            await asyncio.sleep(0)
        task.cancel()
        await asyncio.sleep(0)
        assert not task.done()
        store.gate.set()
        with pytest.raises(asyncio.CancelledError):
            await task
        return await load_reports(store, "u1", 10)

    [saved] = asyncio.run(scenario())
    assert saved.url == "https://example.com"
    assert saved.overall_score == 70
    assert pipeline.result is None
    assert pipeline.state is PipelineState.IDLE
    assert not pipeline.busy
