from __future__ import annotations

import json
import re
import time
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .config import StdmConfig
from .schemas import RunStatus, StageStatus


def _slugify(text: str, max_len: int = 32) -> str:
    text = text.strip().lower()
    text = re.sub(r"[^a-z0-9\-_ ]+", "", text)
    text = re.sub(r"\s+", "-", text)
    return text[:max_len]


def new_run_dir(cfg: StdmConfig, input_path: Path) -> Path:
    """
    Create a new run directory named after the simulated source file.

    Convention:
    YYYY-MM-DD_HHMMSS_<input stem slug>
    """
    ts = time.strftime("%Y-%m-%d_%H%M%S", time.localtime())
    run_id = f"{ts}_{_slugify(Path(input_path).stem) or 'sources'}"
    run_dir = Path(cfg.runs_dir) / run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def write_json(path: Path, obj: Any) -> None:
    if isinstance(obj, BaseModel):
        obj = obj.model_dump(mode="json")
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)


def init_status(run_dir: Path) -> RunStatus:
    status = RunStatus(run_id=run_dir.name, stages=StageStatus())
    update_status(run_dir, status)
    return status


def update_status(run_dir: Path, status: RunStatus) -> None:
    write_json(run_dir / "status.json", status)
