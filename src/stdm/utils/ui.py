"""
User Interface Utilities.
Rich console output for the CLI, written to stderr so stdout stays a clean frame stream.
File: src/stdm/utils/ui.py
"""

from rich.console import Console
from rich.table import Table

from ..schemas import SimulationReport

# Initialize a global console instance
console = Console(stderr=True)


def print_header(title: str, subtitle: str = ""):
    """Prints a styled header."""
    console.rule(f"[bold blue]{title}")
    if subtitle:
        console.print(f"[dim]{subtitle}[/dim]", justify="center")
    console.print()


def print_summary(report: SimulationReport):
    """Prints the frame geometry and run totals as a table."""
    g = report.geometry
    table = Table(title="STDM run", show_header=False)
    table.add_column("field", style="cyan")
    table.add_column("value", justify="right")

    table.add_row("sources", str(len(report.sources)))
    table.add_row("time step", str(g.time_step))
    table.add_row("frame size", f"{g.frame_size} subframes")
    table.add_row("frame bits", str(g.frame_bits))
    table.add_row("frames written", str(report.frames_written))
    table.add_row("blocks transmitted", f"{report.blocks_transmitted}/{g.total_data_blocks}")
    if report.frames:
        peak = max(f.backlog_after for f in report.frames)
        table.add_row("peak backlog", str(peak))

    console.print(table)
