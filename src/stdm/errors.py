from __future__ import annotations

from typing import Dict, Optional


class StdmError(Exception):
    """Base class for every fatal multiplexer condition."""


class MalformedInput(StdmError, ValueError):
    """A source line or data block spec could not be parsed."""


class InconsistentGeometry(StdmError, ValueError):
    """Block durations or payload sizes disagree within or across sources."""


class WindowTooSmall(StdmError, RuntimeError):
    """A poll window ended before the due block did."""


class ResidualData(StdmError, RuntimeError):
    """
    Sources still held unconsumed blocks when the run completed.

    `residual` maps source name -> number of blocks left behind.
    """

    def __init__(self, message: str, residual: Optional[Dict[str, int]] = None):
        super().__init__(message)
        self.residual = dict(residual or {})
