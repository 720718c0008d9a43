from __future__ import annotations

import asyncio
import json
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse

from siteinsight.app.dependencies import get_service, get_user_id
from siteinsight.app.service import AnalyzerService
from siteinsight.errors import InvalidUrl, PipelineBusy
from siteinsight.history import HistorySummary
from siteinsight.pipeline import OutcomeStatus, PipelineOutcome, ProgressSnapshot
from siteinsight.report.export import export_filename, render_export
from siteinsight.report.models import AnalysisReport

router = APIRouter(prefix="/api", tags=["analysis"])


class AnalyzeRequest(BaseModel):
    url: str = Field(..., max_length=2048)


class AnalyzeResponse(BaseModel):
    report: dict
    overall_score: int
    screenshot: str | None = None


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    request: AnalyzeRequest,
    service: AnalyzerService = Depends(get_service),  # noqa: B008
    user_id: str = Depends(get_user_id),  # noqa: B008
):
    outcome = await service.analyze(user_id, request.url)
    _raise_for_outcome(outcome)
    return _serialize_outcome(outcome)


@router.get("/stream")
async def stream(
    url: str = Query(..., description="Website to analyze"),  # noqa: B008
    service: AnalyzerService = Depends(get_service),  # noqa: B008
    user_id: str = Depends(get_user_id),  # noqa: B008
):
    async def event_generator():
        queue: asyncio.Queue[dict] = asyncio.Queue()

        async def progress(snapshot: ProgressSnapshot):
            await queue.put(
                {
                    "type": "progress",
                    "state": snapshot.state.value,
                    "step": snapshot.step,
                    "progress": snapshot.progress,
                }
            )

        task = asyncio.create_task(service.analyze(user_id, url, progress))

        while True:
            if task.done() and queue.empty():
                break
            try:
                event = await asyncio.wait_for(queue.get(), timeout=0.2)
                yield {"event": "message", "data": json.dumps(event)}
            except TimeoutError:
                if task.done() and queue.empty():
                    break

        outcome = await task
        if outcome.ok:
            payload = {"type": "report", **_serialize_outcome(outcome)}
        else:
            payload = {"type": "error", "status": outcome.status.value, "message": outcome.message}
        yield {"event": "message", "data": json.dumps(payload)}

    return EventSourceResponse(event_generator())


@router.get("/history")
async def history(
    limit: int | None = Query(default=None, ge=1, le=100),  # noqa: B008
    service: AnalyzerService = Depends(get_service),  # noqa: B008
    user_id: str = Depends(get_user_id),  # noqa: B008
):
    summary = await service.history(user_id, limit)
    return _serialize_history(summary)


@router.get("/reports/{report_id}")
async def get_report(
    report_id: str,
    service: AnalyzerService = Depends(get_service),  # noqa: B008
    user_id: str = Depends(get_user_id),  # noqa: B008
):
    report = await _require_report(service, user_id, report_id)
    return {**report.to_document(), "overallScore": report.overall_score}


@router.get("/reports/{report_id}/export")
async def export_report(
    report_id: str,
    service: AnalyzerService = Depends(get_service),  # noqa: B008
    user_id: str = Depends(get_user_id),  # noqa: B008
):
    report = await _require_report(service, user_id, report_id)
    return Response(
        content=render_export(report),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(report)}"'},
    )


async def _require_report(
    service: AnalyzerService, user_id: str, report_id: str
) -> AnalysisReport:
    report = await service.get_report(user_id, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


def _raise_for_outcome(outcome: PipelineOutcome) -> None:
    if outcome.status is OutcomeStatus.REJECTED:
        if isinstance(outcome.error, InvalidUrl):
            raise HTTPException(status_code=400, detail="Please enter a valid URL")
        if isinstance(outcome.error, PipelineBusy):
            raise HTTPException(status_code=409, detail=outcome.message)
    if not outcome.ok:
        raise HTTPException(status_code=502, detail=outcome.message)


def _serialize_outcome(outcome: PipelineOutcome) -> dict:
    report = outcome.report
    return {
        "report": report.to_document(),
        "overall_score": report.overall_score,
        "screenshot": outcome.screenshot.location if outcome.screenshot else None,
    }


def _serialize_history(summary: HistorySummary) -> dict:
    stats = summary.stats
    return {
        "entries": [asdict(entry) for entry in summary.entries],
        "stats": {
            "count": stats.count,
            "average": stats.average,
            "best_category": stats.best_category.value if stats.best_category else None,
            "category_averages": stats.category_averages,
        },
    }
