from __future__ import annotations

from typing import List, Tuple
from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


# ---------- Source data ----------
class DataBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_time: int = Field(ge=0)
    end_time: int
    payload: str

    @model_validator(mode="after")
    def _check_interval(self) -> "DataBlock":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        return self

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time


class SourceSummary(BaseModel):
    address: int
    name: str
    start_time: int
    end_time: int
    data_blocks: int
    data_duration: int
    data_size: int
    average_rate: float = 0.0  # characters per time unit


# ---------- Backlog ----------
class BacklogItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_address: int = Field(ge=1)
    timestamp: int = Field(ge=0)
    payload: str

    @property
    def priority_key(self) -> Tuple[int, int]:
        # earliest arrival first, then earliest-listed source
        return (self.timestamp, self.source_address)


# ---------- Geometry ----------
class FrameGeometry(BaseModel):
    time_step: int = 0
    frame_size: int = 0
    data_size: int = 0
    data_bits: int = 0
    address_bits: int = 0
    bits_per_character: int = 8
    control_bits: int = 2
    start_time: int = 0
    end_time: int = 0
    total_data_blocks: int = 0
    average_rate: float = 0.0  # data blocks per time unit

    @computed_field
    @property
    def subframe_bits(self) -> int:
        return self.data_bits + self.address_bits

    @computed_field
    @property
    def frame_bits(self) -> int:
        return self.frame_size * self.subframe_bits + self.control_bits


# ---------- Scheduling ----------
class FrameStats(BaseModel):
    frame: int
    window_start: int
    window_end: int
    backlog_before: int
    incoming: int
    subframes_used: int
    frame_size: int
    backlog_after: int


class SimulationReport(BaseModel):
    geometry: FrameGeometry
    sources: List[SourceSummary] = Field(default_factory=list)
    frames: List[FrameStats] = Field(default_factory=list)

    @computed_field
    @property
    def frames_written(self) -> int:
        return len(self.frames)

    @computed_field
    @property
    def blocks_transmitted(self) -> int:
        return sum(f.subframes_used for f in self.frames)
