"""
Statistical time-division multiplexer.

The multiplexer derives its frame geometry once from the aggregate statistics
of all sources, then advances simulated time one time step per frame:

    poll sources -> push arrivals into the backlog -> drain up to
    frame_size items into subframes -> render the frame

Capacity per frame is fixed, demand is not: surplus blocks stay queued in the
backlog and idle subframes are zero-filled.
"""
from __future__ import annotations

import logging
import math
from typing import Iterable, List, TextIO

from .backlog import Backlog
from .config import DEFAULT_CONFIG, StdmConfig
from .render import (
    END_OF_FRAME,
    NO_SOURCE,
    START_OF_FRAME,
    ZERO_FILLED,
    banner,
    render_geometry,
    render_subframe,
)
from .schemas import BacklogItem, FrameGeometry, FrameStats, SimulationReport
from .source import Source
from .validators import check_residual_data, validate_sources

logger = logging.getLogger(__name__)


class Multiplexer:
    """
    Drives the STDM scheduling loop over a fixed set of sources.

    Usage:
        mux = Multiplexer(lines, debug=sys.stderr)
        while mux.produce_next_frame(sys.stdout, sys.stderr):
            pass
    """

    def __init__(self, source_lines: Iterable[str], debug: TextIO, cfg: StdmConfig = DEFAULT_CONFIG):
        self.cfg = cfg
        self.frame = 1
        self.backlog = Backlog()
        self.sources: List[Source] = []
        self.frame_stats: List[FrameStats] = []

        self._read_sources(source_lines, debug)
        self.geometry = self._compute_geometry()
        self.current_time = self.geometry.start_time
        self.end_time = self.geometry.end_time

        if self.geometry.total_data_blocks == 0:
            debug.write("\nno data transmitted from configured sources\n")
            return

        logger.debug("geometry computed: %s", self.geometry.model_dump())
        debug.write("\n" + render_geometry(self.geometry) + "\n\n")

    # ── Construction ─────────────────────────────────────────────────────────

    def _read_sources(self, source_lines: Iterable[str], debug: TextIO) -> None:
        debug.write("reading sources...\n")

        for line in source_lines:
            if not line.strip():
                continue

            source = Source(line, bits_per_character=self.cfg.bits_per_character)
            debug.write(f'\tread source "{source.name}": ')

            if source.empty():
                debug.write("[NO DATA]\n")
                logger.debug("discarding empty source %r", source.name)
                continue

            debug.write(
                f"startTime={source.start_time()}, endTime={source.end_time()}, "
                f"dataBlocks={source.size()}, "
                f"averageRate={source.average_transmission_rate():g} characters/second\n"
            )
            self.sources.append(source)
            # fail on the first source that breaks the shared geometry
            validate_sources([self.sources[0], source])

        debug.write("read sources!\n")

    def _compute_geometry(self) -> FrameGeometry:
        if not self.sources:
            return FrameGeometry(bits_per_character=self.cfg.bits_per_character, control_bits=self.cfg.control_bits)

        validate_sources(self.sources)
        first = self.sources[0]
        start_time = min(s.start_time() for s in self.sources)
        end_time = max(s.end_time() for s in self.sources)
        total_blocks = sum(s.size() for s in self.sources)

        average_rate = total_blocks / (end_time - start_time)
        average_step_blocks = average_rate * first.data_duration
        # never fewer than one subframe per frame
        frame_size = max(1, math.ceil(average_step_blocks))

        return FrameGeometry(
            time_step=first.data_duration,
            frame_size=frame_size,
            data_size=first.data_size,
            data_bits=first.data_size * self.cfg.bits_per_character,
            # floor(log2(frame_size)) + 1: addresses 0..frame_size
            address_bits=frame_size.bit_length(),
            bits_per_character=self.cfg.bits_per_character,
            control_bits=self.cfg.control_bits,
            start_time=start_time,
            end_time=end_time,
            total_data_blocks=total_blocks,
            average_rate=average_rate,
        )

    # ── Convenience accessors ────────────────────────────────────────────────

    @property
    def time_step(self) -> int:
        return self.geometry.time_step

    @property
    def frame_size(self) -> int:
        return self.geometry.frame_size

    @property
    def address_bits(self) -> int:
        return self.geometry.address_bits

    @property
    def data_bits(self) -> int:
        return self.geometry.data_bits

    def done(self) -> bool:
        return self.current_time >= self.end_time and self.backlog.is_empty()

    def report(self) -> SimulationReport:
        return SimulationReport(
            geometry=self.geometry,
            sources=[s.summary(address) for address, s in enumerate(self.sources, 1)],
            frames=list(self.frame_stats),
        )

    # ── Scheduling ───────────────────────────────────────────────────────────

    def produce_next_frame(self, output: TextIO, debug: TextIO) -> bool:
        """
        Run one scheduling step and render its frame.

        Returns False (after verifying every source was drained) once the
        clock has passed the last block and the backlog is empty.

        Raises:
        - ResidualData if a source still holds blocks at completion.
        - WindowTooSmall if a due block does not fit the poll window.
        """
        if self.done():
            debug.write("\nDONE!\n")
            check_residual_data(self.sources, debug)
            return False

        width = self.cfg.line_width
        window_start = self.current_time
        window_end = window_start + self.time_step

        debug.write(banner("reading subframes for frame", self.frame, window_start, window_end, "=", width) + "\n")
        backlog_before = len(self.backlog)
        debug.write(f"{backlog_before} data block(s) in the backlog\n")

        incoming = self._update_backlog()
        debug.write(f"{incoming} data block(s) read from sources\n")

        output.write(banner("start of frame", self.frame, window_start, window_end, "=", width) + "\n")
        output.write(START_OF_FRAME + "\n")
        used = self._write_subframes(output, window_start, window_end)
        output.write(END_OF_FRAME + "\n")

        backlog_after = len(self.backlog)
        debug.write(f"{used}/{self.frame_size} subframes utilized\n")
        debug.write(f"{max(0, backlog_after - backlog_before)} data block(s) backlogged\n")
        debug.write(f"{backlog_after} data block(s) remain in the backlog\n")

        self.frame_stats.append(
            FrameStats(
                frame=self.frame,
                window_start=window_start,
                window_end=window_end,
                backlog_before=backlog_before,
                incoming=incoming,
                subframes_used=used,
                frame_size=self.frame_size,
                backlog_after=backlog_after,
            )
        )
        self.frame += 1
        return True

    def _update_backlog(self) -> int:
        incoming = 0
        next_time = self.current_time + self.time_step
        for address, source in enumerate(self.sources, 1):
            payload = source.poll(self.current_time, next_time)
            if payload is not None:
                self.backlog.push(
                    BacklogItem(source_address=address, timestamp=self.current_time, payload=payload)
                )
                incoming += 1
        # the clock advances once per frame, data or not
        self.current_time = next_time
        return incoming

    def _write_subframes(self, output: TextIO, window_start: int, window_end: int) -> int:
        used = 0
        for subframe in range(1, self.frame_size + 1):
            output.write(banner("start of subframe", subframe, window_start, window_end, "-", self.cfg.line_width) + "\n")

            address, name, payload = 0, NO_SOURCE, ZERO_FILLED
            if not self.backlog.is_empty():
                item = self.backlog.pop()
                address = item.source_address
                name = self.sources[address - 1].name
                payload = item.payload
                used += 1

            output.write(render_subframe(address, name, payload, self.address_bits, self.data_bits) + "\n")
        return used
