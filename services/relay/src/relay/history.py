"""
Bounded alert history for the CareAlert relay.

A fixed-capacity, newest-first ring.  Pushing beyond capacity silently
evicts the oldest record; nothing else ever removes a record except an
explicit :meth:`HistoryRing.clear`.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from itertools import islice

from ca_common.models.alert import AlertRecord

DEFAULT_CAPACITY: int = 100


class HistoryRing:
    """Newest-first store of the most recent :class:`AlertRecord` objects.

    Args:
        capacity: Maximum number of records kept (must be ≥ 1).
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._records: deque[AlertRecord] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._records.maxlen or 0

    def push(self, record: AlertRecord) -> None:
        """Prepend *record*, evicting the oldest record when full."""
        self._records.appendleft(record)

    def peek(self, k: int) -> list[AlertRecord]:
        """Return the newest *k* records (fewer if the ring is shorter)."""
        if k <= 0:
            return []
        return list(islice(self._records, k))

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AlertRecord]:
        return iter(self._records)
