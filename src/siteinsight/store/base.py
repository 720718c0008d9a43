from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from siteinsight.report.models import AnalysisReport, Category


@dataclass(slots=True)
class StoredRecord:
    """Row shape of a persisted report: identity, denormalized scores and the encoded blob."""

    id: str
    user_id: str
    url: str
    timestamp: int
    performance_score: int | None
    seo_score: int | None
    accessibility_score: int | None
    design_score: int | None
    ux_score: int | None
    analysis_data: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def denormalized_score(self, category: Category) -> int | None:
        return getattr(self, f"{Category(category).value}_score")


@runtime_checkable
class ReportStore(Protocol):
    async def create(self, user_id: str, report: AnalysisReport) -> StoredRecord: ...

    async def list(self, user_id: str, limit: int) -> list[StoredRecord]: ...

    async def get(self, user_id: str, report_id: str) -> StoredRecord | None: ...

    async def add_record(self, record: StoredRecord) -> None: ...
