from __future__ import annotations

import heapq
import itertools
from typing import List, Optional, Tuple

from .schemas import BacklogItem


class Backlog:
    """
    Priority queue of data blocks waiting for a subframe.

    Min-heap on (timestamp, source_address): earliest arrival is served first,
    and within one arrival instant the earliest-listed source wins.
    """

    def __init__(self) -> None:
        self._heap: List[Tuple[int, int, int, BacklogItem]] = []
        # only separates identical keys so items are never compared directly
        self._seq = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def size(self) -> int:
        return len(self._heap)

    def is_empty(self) -> bool:
        return not self._heap

    def push(self, item: BacklogItem) -> None:
        timestamp, address = item.priority_key
        heapq.heappush(self._heap, (timestamp, address, next(self._seq), item))

    def peek(self) -> Optional[BacklogItem]:
        return self._heap[0][-1] if self._heap else None

    def pop(self) -> BacklogItem:
        """Remove and return the highest-priority item. Raises IndexError when empty."""
        if not self._heap:
            raise IndexError("pop from an empty backlog")
        return heapq.heappop(self._heap)[-1]
