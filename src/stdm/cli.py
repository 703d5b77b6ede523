from __future__ import annotations

# ---- Environment bootstrap (MUST be first) ----
import os
from dotenv import load_dotenv

# Load .env once at process start
load_dotenv()

# ---- CLI / Pipeline imports ----
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import Optional

import typer
from .config import StdmConfig
from .errors import StdmError
from .pipeline import simulate, run_pipeline
from .utils.ui import print_header, print_summary


app = typer.Typer(add_completion=False, help="Statistical Time-Division Multiplexer simulator")


@app.command()
def main(
    input_file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True,
                                      help="Source file, one '<name>:<start> <end> <data>,...' line per source"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write frames here instead of stdout"),
    debug: Optional[Path] = typer.Option(None, "--debug", "-d", help="Write diagnostics here instead of stderr"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Discard diagnostics"),
    save_run: bool = typer.Option(False, "--save-run", help="Persist frames, diagnostics and reports in a run directory"),
    runs_dir: Optional[str] = typer.Option(None, "--runs-dir", help="Run directory root (default: $STDM_RUNS_DIR or ./runs)"),
    line_width: Optional[int] = typer.Option(None, "--line-width", min=1, help="Width of frame delimiter lines"),
):
    """
    Multiplex the sources in INPUT_FILE into STDM frames.
    """
    overrides = {}
    if runs_dir is not None:
        overrides["runs_dir"] = runs_dir
    if line_width is not None:
        overrides["line_width"] = line_width
    cfg = StdmConfig(**overrides)

    try:
        if save_run:
            run_id, run_dir = run_pipeline(cfg, input_file)
            typer.echo(f"[OK] run_id={run_id}")
            typer.echo(f"[OK] outputs at: {run_dir}")
            return

        with ExitStack() as stack:
            out = stack.enter_context(output.open("w", encoding="utf-8")) if output else sys.stdout
            if quiet:
                dbg = stack.enter_context(open(os.devnull, "w", encoding="utf-8"))
            elif debug:
                dbg = stack.enter_context(debug.open("w", encoding="utf-8"))
            else:
                dbg = sys.stderr

            if not quiet:
                print_header("STDM", str(input_file))
            lines = input_file.read_text(encoding="utf-8").splitlines()
            report = simulate(lines, out, dbg, cfg)

        if not quiet:
            print_summary(report)
    except StdmError as e:
        typer.echo(f"[ERR] {e}", err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
