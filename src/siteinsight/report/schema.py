from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from siteinsight.errors import GenerationFailure
from siteinsight.report.models import ReportBody

_STRING_LIST: dict[str, Any] = {"type": "array", "items": {"type": "string"}}


def _numbers(*names: str, kind: str = "number") -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {name: {"type": kind} for name in names},
        "required": list(names),
    }


def _records(**fields: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "array",
        "items": {"type": "object", "properties": fields, "required": list(fields)},
    }


def _section(detail_key: str, detail: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "score": {"type": "integer"},
            detail_key: detail,
            "recommendations": _STRING_LIST,
        },
        "required": ["score", detail_key, "recommendations"],
    }


# Generation contract shared by every structured analyzer backend.
REPORT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "performance": _section(
            "metrics",
            _numbers(
                "loadTime",
                "firstContentfulPaint",
                "largestContentfulPaint",
                "cumulativeLayoutShift",
            ),
        ),
        "seo": _section(
            "issues",
            _records(
                type={"type": "string", "enum": ["error", "warning", "info"]},
                message={"type": "string"},
                impact={"type": "string", "enum": ["high", "medium", "low"]},
            ),
        ),
        "accessibility": _section(
            "violations",
            _records(
                severity={
                    "type": "string",
                    "enum": ["critical", "serious", "moderate", "minor"],
                },
                description={"type": "string"},
                element={"type": "string"},
            ),
        ),
        "design": _section(
            "analysis",
            _numbers(
                "colorContrast", "typography", "layout", "responsiveness", kind="integer"
            ),
        ),
        "ux": _section(
            "metrics",
            _numbers(
                "navigationClarity",
                "contentReadability",
                "mobileUsability",
                "interactionDesign",
                kind="integer",
            ),
        ),
    },
    "required": ["performance", "seo", "accessibility", "design", "ux"],
}


def parse_report_body(payload: Any) -> ReportBody:
    """Validate a generator payload against the report shape.

    Scores are rounded and clamped into [0, 100]; anything structurally off
    (missing sections, non-numeric scores, unknown severities) is a
    GenerationFailure.
    """
    if not isinstance(payload, dict):
        raise GenerationFailure(
            f"Analyzer returned {type(payload).__name__}, expected an object",
            payload={"body": payload},
        )
    try:
        return ReportBody.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()[:5]
        )
        raise GenerationFailure(
            f"Analyzer output does not match the report schema ({problems})",
            payload={"body": payload},
        ) from exc
