"""
test_mux.py
Purpose: Multiplexer geometry derivation and scheduling scenarios.
"""

import io
import math
import re
from typing import List, Tuple

import pytest

from stdm.config import StdmConfig
from stdm.errors import InconsistentGeometry, MalformedInput, ResidualData
from stdm.mux import Multiplexer
from stdm.pipeline import drive
from stdm.render import ZERO_FILLED, banner, pad_line, render_geometry, render_subframe
from stdm.source import Source
from stdm.validators import check_residual_data


CFG = StdmConfig(runs_dir="runs", line_width=80, bits_per_character=8)

_ADDRESS = re.compile(r"^address: (\d+)/(.*) \(\d+ bits\)$")
_DATA = re.compile(r'^data: "(.*)" \(\d+ bits\)$')


# --------------------------------------------------------------------------
# Helpers
# --------------------------------------------------------------------------

def _run(lines: List[str]) -> Tuple[Multiplexer, str, str]:
    out, dbg = io.StringIO(), io.StringIO()
    mux = Multiplexer(lines, dbg, CFG)
    drive(mux, out, dbg)
    return mux, out.getvalue(), dbg.getvalue()


def _frames(text: str) -> List[List[Tuple[int, str, str]]]:
    """Split rendered output into frames of (address, source, payload) subframes."""
    frames: List[List[Tuple[int, str, str]]] = []
    address = None
    for line in text.splitlines():
        if line == "SF (1 bit)":
            frames.append([])
            continue
        m = _ADDRESS.match(line)
        if m:
            address = (int(m.group(1)), m.group(2))
            continue
        m = _DATA.match(line)
        if m:
            frames[-1].append((address[0], address[1], m.group(1)))
    return frames


def _payloads(text: str) -> List[str]:
    return [p for frame in _frames(text) for (_, _, p) in frame if p != ZERO_FILLED]


# --------------------------------------------------------------------------
# 1. Geometry
# --------------------------------------------------------------------------

def test_geometry_single_source():
    mux = Multiplexer(["A:0 1 x,1 2 y"], io.StringIO(), CFG)
    g = mux.geometry
    assert g.time_step == 1
    assert g.frame_size == 1
    assert g.address_bits == 1
    assert g.data_size == 1
    assert g.data_bits == 8
    assert g.subframe_bits == 9
    assert g.frame_bits == 11
    assert (mux.current_time, mux.end_time) == (0, 2)


def test_geometry_rounds_frame_size_up():
    # 5 blocks over 4 time units at time step 2 -> 2.5 blocks per frame
    lines = ["A:0 2 aa,2 4 bb", "B:0 2 cc,2 4 dd", "C:0 2 ee"]
    mux = Multiplexer(lines, io.StringIO(), CFG)
    assert mux.geometry.average_rate == pytest.approx(1.25)
    assert mux.frame_size == 3
    assert mux.address_bits == 2
    assert mux.data_bits == 16


def test_geometry_frame_size_has_floor_of_one():
    mux = Multiplexer(["A:0 1 x,99 100 y"], io.StringIO(), CFG)
    assert mux.frame_size == 1


@pytest.mark.parametrize("frame_size, bits", [(1, 1), (2, 2), (3, 2), (4, 3), (7, 3), (8, 4)])
def test_address_bits_cover_zero_through_frame_size(frame_size, bits):
    lines = [f"S{i}:0 1 x" for i in range(frame_size)]
    mux = Multiplexer(lines, io.StringIO(), CFG)
    assert mux.frame_size == frame_size
    assert mux.address_bits == bits == math.floor(math.log2(frame_size)) + 1


def test_start_time_is_earliest_source_start():
    mux = Multiplexer(["A:6 8 a", "B:2 4 b"], io.StringIO(), CFG)
    assert mux.current_time == 2
    assert mux.end_time == 8


def test_geometry_is_idempotent():
    lines = ["A:0 2 aa,4 6 bb", "B:2 4 cc"]
    first = Multiplexer(lines, io.StringIO(), CFG).geometry
    second = Multiplexer(lines, io.StringIO(), CFG).geometry
    assert first == second


def test_geometry_diagnostics():
    dbg = io.StringIO()
    Multiplexer(["A:0 1 x", "B:", "C:0 1 y"], dbg, CFG)
    text = dbg.getvalue()
    assert "reading sources..." in text
    assert 'read source "B": [NO DATA]' in text
    assert 'read source "A": startTime=0, endTime=1, dataBlocks=1' in text
    assert "frame size: 2 subframes per frame" in text
    assert "frame time duration: 1 second(s)" in text


def test_scenario_c_inconsistent_durations():
    with pytest.raises(InconsistentGeometry, match="inconsistent data rates"):
        Multiplexer(["A:0 1 x", "B:0 2 y"], io.StringIO(), CFG)


def test_inconsistent_block_sizes_across_sources():
    with pytest.raises(InconsistentGeometry, match="inconsistent data block sizes"):
        Multiplexer(["A:0 1 x", "B:0 1 yy"], io.StringIO(), CFG)


def test_empty_sources_do_not_set_geometry():
    mux = Multiplexer(["E:", "A:0 2 xy"], io.StringIO(), CFG)
    assert [s.name for s in mux.sources] == ["A"]
    assert mux.time_step == 2


def test_scenario_d_inverted_block():
    with pytest.raises(MalformedInput):
        Multiplexer(["A:0 1 x", "B:3 3 y"], io.StringIO(), CFG)


# --------------------------------------------------------------------------
# 2. Scheduling
# --------------------------------------------------------------------------

def test_scenario_a_single_source():
    mux, out, dbg = _run(["A:0 1 x,1 2 y"])
    frames = _frames(out)
    assert frames == [[(1, "A", "x")], [(1, "A", "y")]]
    assert all(s.empty() for s in mux.sources)
    assert "DONE!" in dbg


def test_scenario_b_listing_order_breaks_ties():
    _, out, _ = _run(["A:0 1 a", "B:0 1 b"])
    assert _frames(out)[0] == [(1, "A", "a"), (2, "B", "b")]

    _, out, _ = _run(["B:0 1 b", "A:0 1 a"])
    assert _frames(out)[0] == [(1, "B", "b"), (2, "A", "a")]


def test_scenario_e_backlog_grows_then_drains():
    mux, out, _ = _run(["A:0 1 a,5 6 b", "B:0 1 c", "C:0 1 d"])
    assert mux.frame_size == 1

    stats = mux.frame_stats
    assert [s.incoming for s in stats] == [3, 0, 0, 0, 0, 1]
    assert [s.backlog_after for s in stats] == [2, 1, 0, 0, 0, 0]
    assert stats[0].backlog_after > stats[0].backlog_before
    assert _payloads(out) == ["a", "c", "d", "b"]


def test_earlier_arrivals_drain_before_later_ones():
    # 4 arrivals at t=0 and 1 at t=1, one subframe per frame
    lines = ["A:0 1 a,1 2 e", "B:0 1 b", "C:0 1 c", "D:0 1 d", "F:4 5 f,8 9 g"]
    mux, out, _ = _run(lines)
    assert mux.frame_size == 1
    payloads = _payloads(out)
    assert payloads == ["a", "b", "c", "d", "e", "f", "g"]
    assert payloads.index("d") < payloads.index("e")
    assert payloads[:4] == ["a", "b", "c", "d"]


def test_padding_subframes_are_zero_filled():
    _, out, _ = _run(["A:0 1 a", "B:0 1 b", "C:4 5 c"])
    frames = _frames(out)
    # frame_size = ceil(3/5) = 1
    assert frames[0] == [(1, "A", "a")]
    assert frames[1] == [(2, "B", "b")]
    assert frames[2] == [(0, "<NONE>", ZERO_FILLED)]
    assert frames[-1] == [(3, "C", "c")]


def test_frame_count_matches_time_span():
    lines = ["A:2 4 a,6 8 b", "B:4 6 c"]
    mux, out, _ = _run(lines)
    g = mux.geometry
    expected = math.ceil((g.end_time - g.start_time) / g.time_step)
    assert len(mux.frame_stats) == expected == 3
    assert out.count("SF (1 bit)") == out.count("EF (1 bit)") == expected


def test_no_block_lost_or_duplicated():
    lines = [
        "A:0 2 aa,2 4 bb,6 8 cc,8 10 dd",
        "B:0 2 ee,4 6 ff",
        "C:2 4 gg,4 6 hh,6 8 ii",
        "D:",
    ]
    mux, out, _ = _run(lines)
    total = mux.geometry.total_data_blocks
    assert total == 9
    assert sum(s.subframes_used for s in mux.frame_stats) == total
    assert sorted(_payloads(out)) == sorted(["aa", "bb", "cc", "dd", "ee", "ff", "gg", "hh", "ii"])


def test_output_is_deterministic():
    lines = ["A:0 1 x,1 2 y,3 4 z", "B:0 1 p,2 3 q", "C:1 2 r"]
    _, out1, dbg1 = _run(lines)
    _, out2, dbg2 = _run(lines)
    assert out1 == out2
    assert dbg1 == dbg2


def test_frame_header_reports_window():
    _, out, dbg = _run(["A:0 3 abc,3 6 def"])
    first = out.splitlines()[0]
    assert first.endswith("start of frame 1 (time=0-3)")
    assert len(first) == 80
    assert "start of frame 2 (time=3-6)" in out
    assert "reading subframes for frame 2 (time=3-6)" in dbg


def test_subframe_rendering_in_output():
    _, out, _ = _run(["A:0 1 hi"])
    assert 'address: 1/A (1 bits)\ndata: "hi" (16 bits)' in out


def test_frame_counter_and_return_value():
    out, dbg = io.StringIO(), io.StringIO()
    mux = Multiplexer(["A:0 1 x,1 2 y"], dbg, CFG)
    assert mux.frame == 1
    assert mux.produce_next_frame(out, dbg) is True
    assert mux.frame == 2
    assert mux.produce_next_frame(out, dbg) is True
    assert mux.produce_next_frame(out, dbg) is False
    assert mux.frame == 3


def test_per_frame_statistics_in_diagnostics():
    _, _, dbg = _run(["A:0 1 a", "B:0 1 b", "C:3 4 c"])
    assert "2 data block(s) read from sources" in dbg
    assert "1/1 subframes utilized" in dbg
    assert "1 data block(s) backlogged" in dbg


def test_no_traffic_completes_immediately():
    out, dbg = io.StringIO(), io.StringIO()
    mux = Multiplexer(["A:", "B:"], dbg, CFG)
    assert mux.sources == []
    assert mux.frame_size == 0
    assert "no data transmitted from configured sources" in dbg.getvalue()
    assert mux.produce_next_frame(out, dbg) is False
    assert out.getvalue() == ""


def test_blank_lines_are_skipped():
    mux = Multiplexer(["", "A:0 1 x", "   "], io.StringIO(), CFG)
    assert len(mux.sources) == 1


def test_residual_data_is_fatal():
    out, dbg = io.StringIO(), io.StringIO()
    mux = Multiplexer(["A:0 1 x", "B:0 1 y"], dbg, CFG)
    mux.current_time = mux.end_time  # skip the only scheduling step
    with pytest.raises(ResidualData) as exc:
        mux.produce_next_frame(out, dbg)
    assert exc.value.residual == {"A": 1, "B": 1}
    assert "ERROR: 1 entries remain in source A" in dbg.getvalue()


def test_check_residual_data_passes_when_drained():
    src = Source("A:0 1 x")
    src.poll(0, 1)
    check_residual_data([src], io.StringIO())


def test_report_summarizes_run():
    mux, _, _ = _run(["A:0 1 x,1 2 y", "B:1 2 z"])
    report = mux.report()
    assert report.frames_written == 2
    assert report.blocks_transmitted == 3
    assert [s.address for s in report.sources] == [1, 2]
    assert report.model_dump()["geometry"]["frame_bits"] == mux.geometry.frame_bits


# --------------------------------------------------------------------------
# 3. Rendering helpers
# --------------------------------------------------------------------------

def test_pad_line_fills_to_width():
    assert pad_line("abc", 10, "=") == "====== abc"


def test_pad_line_keeps_minimum_fill():
    text = "x" * 100
    assert pad_line(text, 80, "-") == "---- " + text


def test_banner():
    line = banner("start of subframe", 2, 4, 6, "-", 40)
    assert line.endswith(" start of subframe 2 (time=4-6)")
    assert line.startswith("-" * 4)
    assert len(line) == 40


def test_render_subframe_padding():
    assert render_subframe(0, "<NONE>", ZERO_FILLED, 2, 16) == (
        'address: 0/<NONE> (2 bits)\ndata: "<ZERO-FILLED>" (16 bits)'
    )


def test_render_geometry():
    mux = Multiplexer(["A:0 1 a", "B:0 1 b"], io.StringIO(), CFG)
    text = render_geometry(mux.geometry)
    assert text.startswith("stats:")
    assert "average transmission rate: 2 data blocks per second" in text
    assert "data bits: 8 bits per data block (1 characters * 8 bits/character)" in text
    assert "address bits: 2 bits per subframe" in text
    assert "frame bits: 22 bits (2 subframes/frame * 10 bits/subframe + SF + EF)" in text
