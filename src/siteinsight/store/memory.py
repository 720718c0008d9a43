from __future__ import annotations

from collections import defaultdict

from siteinsight.errors import StoreFailure
from siteinsight.report.models import AnalysisReport
from siteinsight.store.base import StoredRecord
from siteinsight.store.codec import encode_report


def _newest_first(record: StoredRecord) -> tuple[int, float]:
    return record.timestamp, record.created_at.timestamp()


class InMemoryReportStore:
    """Process-local store; used by tests and throwaway CLI runs."""

    def __init__(self) -> None:
        self._records: dict[str, list[StoredRecord]] = defaultdict(list)

    async def create(self, user_id: str, report: AnalysisReport) -> StoredRecord:
        record = encode_report(user_id, report)
        await self.add_record(record)
        return record

    async def add_record(self, record: StoredRecord) -> None:
        if any(existing.id == record.id for existing in self._records[record.user_id]):
            raise StoreFailure(f"Analysis {record.id} already exists", payload={"id": record.id})
        self._records[record.user_id].append(record)

    async def list(self, user_id: str, limit: int) -> list[StoredRecord]:
        records = sorted(self._records.get(user_id, []), key=_newest_first, reverse=True)
        return records[: max(limit, 0)]

    async def get(self, user_id: str, report_id: str) -> StoredRecord | None:
        for record in self._records.get(user_id, []):
            if record.id == report_id:
                return record
        return None
