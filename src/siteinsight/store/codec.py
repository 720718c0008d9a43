"""Encoding of reports into stored records, and tolerant decoding back.

Stored blobs come in three flavours: current documents, older documents that
lack some category sections, and blobs that are not decodable at all. The
first two decode into a full report (missing sections are rebuilt from the
denormalized score columns); the last is rebuilt entirely from those columns.
Callers never see a decode error.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import urlparse

from pydantic import ValidationError

from siteinsight.errors import DecodeFailure, StoreFailure
from siteinsight.report.models import AnalysisReport, Category, empty_category
from siteinsight.store.base import ReportStore, StoredRecord

logger = logging.getLogger(__name__)


def encode_report(user_id: str, report: AnalysisReport) -> StoredRecord:
    parsed = urlparse(report.url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise StoreFailure(
            f"Refusing to persist report with non-absolute URL {report.url!r}",
            payload={"id": report.id},
        )
    scores = report.scores()
    return StoredRecord(
        id=report.id,
        user_id=user_id,
        url=report.url,
        timestamp=report.timestamp,
        performance_score=scores[Category.PERFORMANCE],
        seo_score=scores[Category.SEO],
        accessibility_score=scores[Category.ACCESSIBILITY],
        design_score=scores[Category.DESIGN],
        ux_score=scores[Category.UX],
        analysis_data=json.dumps(report.to_document(), ensure_ascii=False),
    )


def decode_record(record: StoredRecord) -> AnalysisReport:
    try:
        return _decode_blob(record)
    except DecodeFailure as exc:
        logger.warning(
            "Stored analysis %s could not be decoded, using denormalized scores: %s",
            record.id,
            exc,
        )
        return fallback_report(record)


def fallback_report(record: StoredRecord) -> AnalysisReport:
    sections = {
        category.value: empty_category(category, _safe_score(record, category))
        for category in Category
    }
    return AnalysisReport(
        id=record.id, url=record.url, timestamp=record.timestamp or 0, **sections
    )


def _decode_blob(record: StoredRecord) -> AnalysisReport:
    try:
        data: Any = json.loads(record.analysis_data)
    except (TypeError, ValueError) as exc:
        raise DecodeFailure(f"blob is not JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise DecodeFailure(f"blob is a {type(data).__name__}, expected an object")

    missing = [category for category in Category if not isinstance(data.get(category.value), dict)]
    if len(missing) == len(Category):
        raise DecodeFailure("blob has no category sections")
    if missing:
        logger.info(
            "Stored analysis %s predates sections %s; rebuilding them from scores",
            record.id,
            ", ".join(category.value for category in missing),
        )
        for category in missing:
            data[category.value] = empty_category(category, _safe_score(record, category))

    # Row columns are authoritative over identity fields embedded in the blob.
    data.update(id=record.id, url=record.url, timestamp=record.timestamp)
    try:
        return AnalysisReport.model_validate(data)
    except ValidationError as exc:
        raise DecodeFailure(f"blob does not match the report shape ({exc.error_count()} errors)") from exc


def _safe_score(record: StoredRecord, category: Category) -> int:
    value = record.denormalized_score(category)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


async def load_reports(store: ReportStore, user_id: str, limit: int) -> list[AnalysisReport]:
    """Most recent reports for a user, newest first, decoded."""
    records = await store.list(user_id, limit)
    return [decode_record(record) for record in records]
