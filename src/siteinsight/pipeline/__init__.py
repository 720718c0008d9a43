from .orchestrator import (
    FAILURE_MESSAGE,
    AnalysisPipeline,
    OutcomeStatus,
    PipelineOutcome,
    ProgressCallback,
)
from .state import CHECKPOINTS, PipelineState, ProgressSnapshot, snapshot_for

__all__ = [
    "AnalysisPipeline",
    "CHECKPOINTS",
    "FAILURE_MESSAGE",
    "OutcomeStatus",
    "PipelineOutcome",
    "PipelineState",
    "ProgressCallback",
    "ProgressSnapshot",
    "snapshot_for",
]
