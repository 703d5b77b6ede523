"""
Text rendering for frames and diagnostics.
All helpers are pure functions of their arguments.
"""
from __future__ import annotations

from .schemas import FrameGeometry


NO_SOURCE = "<NONE>"
ZERO_FILLED = "<ZERO-FILLED>"
START_OF_FRAME = "SF (1 bit)"
END_OF_FRAME = "EF (1 bit)"

MIN_FILL = 4


def pad_line(text: str, width: int, fill: str) -> str:
    """Prefix `text` with `fill` so the line is `width` wide (at least MIN_FILL fill chars)."""
    spaced = len(text) + 1
    length = MIN_FILL
    if MIN_FILL + spaced < width:
        length = width - spaced
    return f"{fill * length} {text}"


def banner(leader: str, number: int, window_start: int, window_end: int, fill: str, width: int = 80) -> str:
    return pad_line(f"{leader} {number} (time={window_start}-{window_end})", width, fill)


def render_subframe(address: int, source: str, payload: str, address_bits: int, data_bits: int) -> str:
    return (
        f"address: {address}/{source} ({address_bits} bits)\n"
        f'data: "{payload}" ({data_bits} bits)'
    )


def render_geometry(g: FrameGeometry) -> str:
    lines = [
        "stats:",
        f"\taverage transmission rate: {g.average_rate:g} data blocks per second",
        f"\tdata bits: {g.data_bits} bits per data block"
        f" ({g.data_size} characters * {g.bits_per_character} bits/character)",
        f"\taddress bits: {g.address_bits} bits per subframe",
        f"\tsubframe bits: {g.subframe_bits} bits",
        f"\tframe size: {g.frame_size} subframes per frame",
        f"\tframe bits: {g.frame_bits} bits"
        f" ({g.frame_size} subframes/frame * {g.subframe_bits} bits/subframe + SF + EF)",
        f"\tframe time duration: {g.time_step} second(s)",
    ]
    return "\n".join(lines)
