import asyncio
import json
import logging

import pytest

from fakes import make_report, sample_payload
from siteinsight.errors import StoreFailure
from siteinsight.report.models import Category
from siteinsight.store import InMemoryReportStore, StoredRecord, decode_record, encode_report, load_reports
from siteinsight.store.sql import SqlReportStore


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        yield InMemoryReportStore()
        return
    store = SqlReportStore("sqlite://")
    yield store
    store.close()


def _record(analysis_data: str, **overrides) -> StoredRecord:
    values = dict(
        id="legacy_1",
        user_id="u1",
        url="https://legacy.example",
        timestamp=1_600_000_000_000,
        performance_score=81,
        seo_score=62,
        accessibility_score=93,
        design_score=74,
        ux_score=55,
        analysis_data=analysis_data,
    )
    values.update(overrides)
    return StoredRecord(**values)


def test_create_then_list_round_trips(store):
    report = make_report(id="analysis_rt", url="https://example.com/shop")

    async def scenario():
        await store.create("u1", report)
        return await load_reports(store, "u1", 10)

    [decoded] = asyncio.run(scenario())
    assert decoded == report
    assert decoded.id == "analysis_rt"
    assert decoded.url == "https://example.com/shop"
    assert decoded.timestamp == report.timestamp
    assert decoded.scores() == report.scores()


def test_list_is_newest_first_and_limited(store):
    async def scenario():
        for index in range(5):
            await store.create("u1", make_report(id=f"a{index}", timestamp=1_000 + index))
        return await store.list("u1", 3)

    records = asyncio.run(scenario())
    assert [record.id for record in records] == ["a4", "a3", "a2"]


def test_list_is_scoped_to_user(store):
    async def scenario():
        await store.create("u1", make_report(id="mine"))
        await store.create("u2", make_report(id="theirs"))
        return await store.list("u1", 10), await store.get("u1", "theirs")

    records, foreign = asyncio.run(scenario())
    assert [record.id for record in records] == ["mine"]
    assert foreign is None


def test_duplicate_id_is_a_store_failure(store):
    async def scenario():
        await store.create("u1", make_report(id="dup"))
        await store.create("u1", make_report(id="dup"))

    with pytest.raises(StoreFailure):
        asyncio.run(scenario())


def test_records_denormalize_scores():
    record = encode_report("u1", make_report((80, 60, 90, 70, 50)))
    assert (record.performance_score, record.seo_score, record.accessibility_score) == (80, 60, 90)
    assert (record.design_score, record.ux_score) == (70, 50)
    assert json.loads(record.analysis_data)["seo"]["issues"][0]["type"] == "warning"


def test_relative_url_is_refused_at_persistence():
    with pytest.raises(StoreFailure):
        encode_report("u1", make_report(url="example.com"))


def test_corrupt_blob_falls_back_to_denormalized_scores(store, caplog):
    async def scenario():
        await store.add_record(_record("{not json"))
        return await load_reports(store, "u1", 10)

    with caplog.at_level(logging.WARNING, logger="siteinsight.store.codec"):
        [report] = asyncio.run(scenario())

    assert report.id == "legacy_1"
    assert report.url == "https://legacy.example"
    assert list(report.scores().values()) == [81, 62, 93, 74, 55]
    assert report.performance.metrics.load_time == 0
    assert report.seo.issues == []
    assert report.accessibility.violations == []
    assert report.design.analysis.typography == 0
    assert report.ux.metrics.navigation_clarity == 0
    assert all(getattr(report, c.value).recommendations == [] for c in Category)
    assert "could not be decoded" in caplog.text


@pytest.mark.parametrize(
    "blob",
    ["[1, 2, 3]", "null", json.dumps({"url": "https://legacy.example"}), ""],
)
def test_unusable_blobs_never_raise(blob):
    report = decode_record(_record(blob))
    assert report.seo.score == 62


def test_invalid_section_falls_back_entirely():
    payload = sample_payload()
    payload["seo"]["score"] = "excellent"
    report = decode_record(_record(json.dumps(payload)))
    assert report.seo.score == 62
    assert report.performance.recommendations == []


def test_missing_denormalized_score_defaults_to_zero():
    report = decode_record(_record("garbage", design_score=None))
    assert report.design.score == 0


def test_legacy_blob_missing_sections_is_completed_from_scores():
    payload = sample_payload()
    legacy = {"performance": payload["performance"], "seo": payload["seo"]}
    report = decode_record(_record(json.dumps(legacy)))

    assert report.performance.metrics.load_time == 2.4
    assert report.seo.recommendations == ["Lengthen the meta description"]
    assert report.accessibility.score == 93
    assert report.accessibility.violations == []
    assert report.ux.score == 55


def test_row_identity_wins_over_blob_identity():
    document = make_report(id="blob_id", url="https://blob.example", timestamp=1).to_document()
    report = decode_record(_record(json.dumps(document)))
    assert report.id == "legacy_1"
    assert report.url == "https://legacy.example"
    assert report.timestamp == 1_600_000_000_000
    assert report.design.analysis.color_contrast == 72
