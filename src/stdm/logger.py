from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

_log = logging.getLogger(__name__)


@dataclass
class EventLogger:
    """
    Structured event logger (JSON Lines) for one simulation run.

    - fixed fields (ts, run_id, stage, event)
    - meta dict reserved for structured diagnostics (frame counts, geometry)
    - one event per line (append-only), mirrored to the stdlib logger at DEBUG
    """
    log_path: Path
    run_id: str = ""

    def log(self, stage: str, event: str, meta: Optional[Dict[str, Any]] = None) -> None:
        record = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime()),
            "run_id": self.run_id or self.log_path.parent.name,
            "stage": stage,
            "event": event,
            "meta": meta or {},
        }
        _log.debug("%s/%s %s", stage, event, record["meta"])
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        with self.log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
