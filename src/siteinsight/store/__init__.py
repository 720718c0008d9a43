from .base import ReportStore, StoredRecord
from .codec import decode_record, encode_report, fallback_report, load_reports
from .memory import InMemoryReportStore

__all__ = [
    "InMemoryReportStore",
    "ReportStore",
    "StoredRecord",
    "decode_record",
    "encode_report",
    "fallback_report",
    "load_reports",
]
