from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from siteinsight.report.models import AnalysisReport


def analysis_datetime(report: AnalysisReport) -> datetime:
    return datetime.fromtimestamp(report.timestamp / 1000, tz=UTC)


def build_export(report: AnalysisReport) -> dict[str, Any]:
    """Self-contained export document: headline scores plus the full analysis."""
    scores: dict[str, int] = {category.value: score for category, score in report.scores().items()}
    scores["overall"] = report.overall_score
    generated = analysis_datetime(report).isoformat(timespec="milliseconds")
    return {
        "url": report.url,
        "timestamp": generated.replace("+00:00", "Z"),
        "scores": scores,
        "analysis": report.to_document(),
    }


def export_filename(report: AnalysisReport) -> str:
    return f"website-analysis-{analysis_datetime(report):%Y-%m-%d}.json"


def render_export(report: AnalysisReport) -> str:
    return json.dumps(build_export(report), indent=2, ensure_ascii=False)


def write_export(report: AnalysisReport, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    output_path = directory / export_filename(report)
    output_path.write_text(render_export(report), encoding="utf-8")
    return output_path
