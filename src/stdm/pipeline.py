from __future__ import annotations

from pathlib import Path
from typing import Iterable, TextIO, Tuple

from .config import StdmConfig
from .logger import EventLogger
from .mux import Multiplexer
from .run_manager import new_run_dir, write_json, init_status, update_status
from .schemas import SimulationReport


def drive(mux: Multiplexer, output: TextIO, debug: TextIO) -> SimulationReport:
    """Call produce_next_frame until the multiplexer reports completion."""
    while mux.produce_next_frame(output, debug):
        pass
    return mux.report()


def simulate(lines: Iterable[str], output: TextIO, debug: TextIO, cfg: StdmConfig) -> SimulationReport:
    """
    Build a multiplexer from source lines and run it to completion.

    Frames are written to `output`, progress text to `debug`.
    """
    mux = Multiplexer(lines, debug, cfg)
    return drive(mux, output, debug)


def run_pipeline(cfg: StdmConfig, input_path: Path) -> Tuple[str, Path]:
    """
    Execute a simulation with run artifacts persisted.

    Stages:
      1) parse    - read sources, derive geometry (geometry.json)
      2) schedule - produce frames (frames.txt, report.json)

    debug.txt collects the diagnostic stream of both stages.
    """
    input_path = Path(input_path)
    run_dir = new_run_dir(cfg, input_path)
    logger = EventLogger(log_path=run_dir / "logs.jsonl", run_id=run_dir.name)

    status = init_status(run_dir)
    write_json(run_dir / "config.json", cfg)

    with (run_dir / "debug.txt").open("w", encoding="utf-8") as debug:
        # ---- Stage 1 ----
        try:
            logger.log("parse", "start", {"input": str(input_path)})
            lines = input_path.read_text(encoding="utf-8").splitlines()
            mux = Multiplexer(lines, debug, cfg)
            write_json(run_dir / "geometry.json", mux.geometry)
            status.stages.parse = "ok"
            logger.log("parse", "done", {
                "sources": len(mux.sources),
                "frame_size": mux.frame_size,
                "time_step": mux.time_step,
            })
        except Exception as e:
            status.stages.parse = "fail"
            status.error = {"stage": "parse", "message": str(e)}
            logger.log("parse", "fail", {"error": str(e)})
            update_status(run_dir, status)
            raise

        update_status(run_dir, status)

        # ---- Stage 2 ----
        try:
            logger.log("schedule", "start", {"blocks": mux.geometry.total_data_blocks})
            with (run_dir / "frames.txt").open("w", encoding="utf-8") as output:
                report = drive(mux, output, debug)
            write_json(run_dir / "report.json", report)
            status.stages.schedule = "ok"
            logger.log("schedule", "done", {
                "frames": report.frames_written,
                "blocks": report.blocks_transmitted,
            })
        except Exception as e:
            status.stages.schedule = "fail"
            status.error = {"stage": "schedule", "message": str(e)}
            logger.log("schedule", "fail", {"error": str(e)})
            update_status(run_dir, status)
            raise

    update_status(run_dir, status)
    logger.log("pipeline", "done", {"run_id": run_dir.name})

    return run_dir.name, run_dir
