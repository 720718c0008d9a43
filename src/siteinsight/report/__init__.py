from .models import (
    AnalysisReport,
    Category,
    ReportBody,
    empty_category,
    round_half_up,
)
from .schema import REPORT_SCHEMA, parse_report_body

__all__ = [
    "AnalysisReport",
    "Category",
    "ReportBody",
    "REPORT_SCHEMA",
    "empty_category",
    "parse_report_body",
    "round_half_up",
]
