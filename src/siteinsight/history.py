"""Aggregation over a window of recent reports."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from siteinsight.report.models import AnalysisReport, Category, round_half_up
from siteinsight.urls import display_host

ScoreBand = Literal["good", "fair", "poor"]


def overall_score(report: AnalysisReport) -> int:
    return report.overall_score


def score_band(score: int) -> ScoreBand:
    if score >= 80:
        return "good"
    if score >= 60:
        return "fair"
    return "poor"


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


@dataclass(slots=True, frozen=True)
class HistoryEntry:
    id: str
    url: str
    host: str
    timestamp: int
    scores: dict[str, int]
    overall: int

    @classmethod
    def from_report(cls, report: AnalysisReport) -> HistoryEntry:
        return cls(
            id=report.id,
            url=report.url,
            host=display_host(report.url),
            timestamp=report.timestamp,
            scores={category.value: score for category, score in report.scores().items()},
            overall=report.overall_score,
        )


@dataclass(slots=True, frozen=True)
class HistoryStats:
    count: int
    average: int
    best_category: Category | None
    category_averages: dict[str, float] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class HistorySummary:
    entries: list[HistoryEntry]
    stats: HistoryStats


def compute_stats(reports: Sequence[AnalysisReport]) -> HistoryStats:
    """Count, average overall score and best category over the given window.

    The average is taken over each report's unrounded category mean and rounded
    once at the end. The best category has the highest mean score across the
    window; ties go to the earlier category in the fixed category order.
    """
    if not reports:
        return HistoryStats(count=0, average=0, best_category=None)

    per_report = [_mean(list(report.scores().values())) for report in reports]
    category_averages = {
        category.value: _mean([report.scores()[category] for report in reports])
        for category in Category
    }
    best = max(Category, key=lambda category: category_averages[category.value])
    return HistoryStats(
        count=len(reports),
        average=round_half_up(_mean(per_report)),
        best_category=best,
        category_averages=category_averages,
    )


def summarize_history(reports: Sequence[AnalysisReport]) -> HistorySummary:
    return HistorySummary(
        entries=[HistoryEntry.from_report(report) for report in reports],
        stats=compute_stats(reports),
    )
