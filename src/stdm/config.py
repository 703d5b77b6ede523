from __future__ import annotations

from pydantic import BaseModel, Field
import os


class StdmConfig(BaseModel):
    """
    Global configuration for a multiplexer run.

    Notes:
    - Keep config serializable (JSON) so a saved run can be reproduced.
    - Values default from STDM_* environment variables (.env is loaded by the CLI).
    """
    runs_dir: str = Field(default_factory=lambda: os.getenv("STDM_RUNS_DIR", "runs"))

    # rendering
    line_width: int = Field(default_factory=lambda: int(os.getenv("STDM_LINE_WIDTH", "80")), ge=1)

    # geometry
    bits_per_character: int = Field(default_factory=lambda: int(os.getenv("STDM_BITS_PER_CHAR", "8")), ge=1)
    control_bits: int = 2  # SF + EF


DEFAULT_CONFIG = StdmConfig()
