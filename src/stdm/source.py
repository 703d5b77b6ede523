"""
Source model: one logical channel of time-stamped data blocks.

A source is described by one line of text:

    <NAME>:<start1> <end1> <data1>,...,<startN> <endN> <dataN>

Blocks must be time ordered and non-overlapping, and every block of a source
shares the same duration and payload length.
"""
from __future__ import annotations

import re
from typing import List, Optional

from .errors import InconsistentGeometry, MalformedInput, WindowTooSmall
from .schemas import DataBlock, SourceSummary


_UINT = re.compile(r"[0-9]+")


def _invalid_field(field_name: str, spec: str) -> MalformedInput:
    return MalformedInput(f'invalid "{field_name}" field for data block spec "{spec}"')


def _parse_time(token: Optional[str], field_name: str, spec: str) -> int:
    if token is None or not _UINT.fullmatch(token):
        raise _invalid_field(field_name, spec)
    return int(token)


def parse_data_block(spec: str) -> DataBlock:
    """
    Parse one comma-separated block spec: "<start> <end> <payload>".

    Raises:
    - MalformedInput naming the offending field.
    """
    tokens = spec.split()
    fields = tokens + [None] * (3 - len(tokens))

    start_time = _parse_time(fields[0], "start time", spec)
    end_time = _parse_time(fields[1], "end time", spec)
    if end_time <= start_time:
        raise _invalid_field("start and/or end time", spec)

    payload = fields[2]
    if payload is None:
        raise _invalid_field("data", spec)
    if len(tokens) > 3:
        raise _invalid_field("extra", spec)

    return DataBlock(start_time=start_time, end_time=end_time, payload=payload)


class Source:
    """
    A non-constant stream of data blocks, consumed front to back by `poll`.

    The cursor is an index into the owned block list; it never rewinds.
    """

    def __init__(self, line: str, bits_per_character: int = 8):
        name, sep, rest = line.rstrip("\r\n").partition(":")
        if not sep:
            raise MalformedInput(f'channel name not found in source line "{line.strip()}"')

        self.name = name
        self.bits_per_character = bits_per_character
        self.data_duration = 0
        self.data_size = 0
        self._blocks: List[DataBlock] = []
        self._cursor = 0

        specs = rest.split(",") if rest.strip() else []
        if specs and not specs[-1].strip():
            specs.pop()  # trailing separator

        prev_end = 0
        for spec in specs:
            block = parse_data_block(spec)
            if block.start_time < prev_end:
                raise MalformedInput(
                    f'data blocks of source "{name}" provided with overlapping or out of order time stamps'
                )
            if self._blocks:
                if block.duration != self.data_duration:
                    raise InconsistentGeometry(
                        f'data blocks of source "{name}" provided with multiple durations'
                    )
                if len(block.payload) != self.data_size:
                    raise InconsistentGeometry(
                        f'data blocks of source "{name}" provided with multiple data sizes'
                    )
            else:
                # first block fixes the data properties
                self.data_duration = block.duration
                self.data_size = len(block.payload)
            prev_end = block.end_time
            self._blocks.append(block)

    def __repr__(self) -> str:
        return f"Source(name={self.name!r}, blocks={len(self._blocks)}, remaining={self.size()})"

    @property
    def blocks(self) -> List[DataBlock]:
        return list(self._blocks)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def data_bits(self) -> int:
        return self.data_size * self.bits_per_character

    def empty(self) -> bool:
        return self._cursor == len(self._blocks)

    def size(self) -> int:
        return len(self._blocks) - self._cursor

    def start_time(self) -> int:
        return self._blocks[0].start_time if self._blocks else 0

    def end_time(self) -> int:
        return self._blocks[-1].end_time if self._blocks else 0

    def average_transmission_rate(self) -> float:
        """Characters per time unit across all of this source's blocks."""
        if not self._blocks:
            return 0.0
        total_time = sum(b.duration for b in self._blocks)
        total_length = sum(len(b.payload) for b in self._blocks)
        return total_length / total_time

    def summary(self, address: int) -> SourceSummary:
        return SourceSummary(
            address=address,
            name=self.name,
            start_time=self.start_time(),
            end_time=self.end_time(),
            data_blocks=len(self._blocks),
            data_duration=self.data_duration,
            data_size=self.data_size,
            average_rate=self.average_transmission_rate(),
        )

    def poll(self, window_start: int, window_end: int) -> Optional[str]:
        """
        Poll this source for its next data block.

        Returns the payload when the next block is due (window_start has
        reached its start time), otherwise None. At most one block per poll.

        Raises:
        - WindowTooSmall if the due block ends after window_end.
        """
        if self.empty():
            return None

        block = self._blocks[self._cursor]
        if window_start < block.start_time:
            return None  # idle

        if window_end < block.end_time:
            raise WindowTooSmall(
                f'time slice {window_start}-{window_end} is too small for block '
                f'{block.start_time}-{block.end_time} of source "{self.name}"'
            )
        self._cursor += 1
        return block.payload
