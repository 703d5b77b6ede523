from __future__ import annotations

# core models
from .core import (
    DataBlock,
    SourceSummary,
    BacklogItem,
    FrameGeometry,
    FrameStats,
    SimulationReport,
)

# run artifacts
from .run_status import (
    StageState,
    StageStatus,
    RunStatus,
)


__all__ = [
    "DataBlock",
    "SourceSummary",
    "BacklogItem",
    "FrameGeometry",
    "FrameStats",
    "SimulationReport",
    "StageState",
    "StageStatus",
    "RunStatus",
]
