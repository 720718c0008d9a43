from __future__ import annotations

import math
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

SCORE_MIN = 0
SCORE_MAX = 100


class Category(StrEnum):
    PERFORMANCE = "performance"
    SEO = "seo"
    ACCESSIBILITY = "accessibility"
    DESIGN = "design"
    UX = "ux"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError as exc:
            raise ValueError(f"expected a number, got {value!r}") from exc
    if not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {type(value).__name__}")
    if math.isnan(value) or math.isinf(value):
        raise ValueError("expected a finite number")
    return float(value)


def _clamp_score(value: Any) -> int:
    """Round then clamp a raw score into [0, 100]."""
    return max(SCORE_MIN, min(SCORE_MAX, round_half_up(_to_number(value))))


def _non_negative(value: Any) -> float:
    return max(0.0, _to_number(value))


def _lowercase(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


Score = Annotated[int, BeforeValidator(_clamp_score)]
Measurement = Annotated[float, BeforeValidator(_non_negative)]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class PerformanceMetrics(_Model):
    load_time: Measurement = 0.0
    first_contentful_paint: Measurement = 0.0
    largest_contentful_paint: Measurement = 0.0
    cumulative_layout_shift: Measurement = 0.0


class SeoIssue(_Model):
    type: Annotated[Literal["error", "warning", "info"], BeforeValidator(_lowercase)]
    message: str
    impact: Annotated[Literal["high", "medium", "low"], BeforeValidator(_lowercase)]


class AccessibilityViolation(_Model):
    severity: Annotated[
        Literal["critical", "serious", "moderate", "minor"], BeforeValidator(_lowercase)
    ]
    description: str
    element: str = ""


class DesignAnalysis(_Model):
    color_contrast: Score = 0
    typography: Score = 0
    layout: Score = 0
    responsiveness: Score = 0


class UxMetrics(_Model):
    navigation_clarity: Score = 0
    content_readability: Score = 0
    mobile_usability: Score = 0
    interaction_design: Score = 0


class PerformanceResult(_Model):
    score: Score
    metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    recommendations: list[str]


class SeoResult(_Model):
    score: Score
    issues: list[SeoIssue] = Field(default_factory=list)
    recommendations: list[str]


class AccessibilityResult(_Model):
    score: Score
    violations: list[AccessibilityViolation] = Field(default_factory=list)
    recommendations: list[str]


class DesignResult(_Model):
    score: Score
    analysis: DesignAnalysis = Field(default_factory=DesignAnalysis)
    recommendations: list[str]


class UxResult(_Model):
    score: Score
    metrics: UxMetrics = Field(default_factory=UxMetrics)
    recommendations: list[str]


CATEGORY_MODELS: dict[Category, type[_Model]] = {
    Category.PERFORMANCE: PerformanceResult,
    Category.SEO: SeoResult,
    Category.ACCESSIBILITY: AccessibilityResult,
    Category.DESIGN: DesignResult,
    Category.UX: UxResult,
}


class ReportBody(_Model):
    """The five category sections produced by the structured analyzer."""

    performance: PerformanceResult
    seo: SeoResult
    accessibility: AccessibilityResult
    design: DesignResult
    ux: UxResult

    def scores(self) -> dict[Category, int]:
        return {category: getattr(self, category.value).score for category in Category}

    @property
    def overall_score(self) -> int:
        scores = self.scores().values()
        return round_half_up(sum(scores) / len(scores))


class AnalysisReport(ReportBody):
    """A persisted analysis of one URL at one point in time."""

    id: str
    url: str
    timestamp: int

    @classmethod
    def assemble(cls, *, id: str, url: str, timestamp: int, body: ReportBody) -> AnalysisReport:
        sections = {category.value: getattr(body, category.value) for category in Category}
        return cls(id=id, url=url, timestamp=timestamp, **sections)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def empty_category(category: Category, score: Any = 0) -> _Model:
    """A category section with only a score; detail bundle and recommendations are empty."""
    return CATEGORY_MODELS[Category(category)](score=score or 0, recommendations=[])
