from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class PipelineState(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    CAPTURING = "capturing"
    ANALYZING = "analyzing"
    PERSISTING = "persisting"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ProgressSnapshot:
    state: PipelineState
    step: str
    progress: int

# Step label and percentage shown while each state is active.
CHECKPOINTS: dict[PipelineState, tuple[str, int]] = {
    PipelineState.IDLE: ("", 0),
    PipelineState.FETCHING: ("Analyzing website content...", 20),
    PipelineState.CAPTURING: ("Capturing website screenshot...", 40),
    PipelineState.ANALYZING: ("Running AI analysis...", 60),
    PipelineState.PERSISTING: ("Saving analysis results...", 80),
    PipelineState.COMPLETE: ("Analysis complete!", 100),
    PipelineState.FAILED: ("", 0),
}


def snapshot_for(state: PipelineState) -> ProgressSnapshot:
    step, progress = CHECKPOINTS[state]
    return ProgressSnapshot(state=state, step=step, progress=progress)
