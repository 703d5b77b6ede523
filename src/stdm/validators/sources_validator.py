from __future__ import annotations

from typing import Sequence, TextIO

from ..errors import InconsistentGeometry, ResidualData
from ..source import Source


def validate_sources(sources: Sequence[Source]) -> None:
    """
    Every source must run at the same rate as the first one:
    - same data block duration (one time step)
    - same data block size
    """
    if not sources:
        return
    first = sources[0]
    for src in sources[1:]:
        if src.data_duration != first.data_duration:
            raise InconsistentGeometry(
                f'sources have inconsistent data rates: "{src.name}" uses {src.data_duration}, '
                f'"{first.name}" uses {first.data_duration}'
            )
        if src.data_size != first.data_size:
            raise InconsistentGeometry(
                f'sources have inconsistent data block sizes: "{src.name}" uses {src.data_size}, '
                f'"{first.name}" uses {first.data_size}'
            )


def check_residual_data(sources: Sequence[Source], debug: TextIO) -> None:
    """
    After the last frame every source must be drained; leftovers mean the
    frame geometry under-provisioned the channel.
    """
    residual = {src.name: src.size() for src in sources if not src.empty()}
    for name, count in residual.items():
        debug.write(f"ERROR: {count} entries remain in source {name}\n")

    if residual:
        raise ResidualData("data remains in sources", residual)
