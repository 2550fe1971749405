"""
Time-bounded ledger of per-class observation counts.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from models.detection import Detection, count_by_class


@dataclass(frozen=True)
class HistoryEntry:
    class_name: str
    count: int
    timestamp: float


class AnomalyHistoryWindow:
    """
    Rolling per-class frequency history.

    Every record() appends one entry per distinct class in the frame and then
    filters the whole ledger, so only entries with
    ``now - timestamp < window`` survive. Entries are not assumed to be in
    clock order, which is why the purge is a full pass rather than popping
    from the front.

    Args:
        window: Retention window in seconds.
        clock: Time source returning seconds; defaults to time.time.
    """

    def __init__(self, window: float = 10.0, clock: Callable[[], float] = time.time):
        if window <= 0:
            raise ValueError("history window must be positive")
        self.window = window
        self._clock = clock
        self._entries: List[HistoryEntry] = []

    def _is_live(self, entry: HistoryEntry, now: float) -> bool:
        return now - entry.timestamp < self.window

    def record(self, detections: Sequence[Detection], now: Optional[float] = None) -> None:
        """Append this frame's per-class counts and purge stale entries."""
        now = self._clock() if now is None else now
        for class_name, count in count_by_class(detections).items():
            self._entries.append(HistoryEntry(class_name, count, now))
        self._entries = [e for e in self._entries if self._is_live(e, now)]

    def frequencies(self, now: Optional[float] = None) -> Dict[str, int]:
        """Total count per class over entries still inside the window at ``now``."""
        now = self._clock() if now is None else now
        freqs: Dict[str, int] = {}
        for e in self._entries:
            if self._is_live(e, now):
                freqs[e.class_name] = freqs.get(e.class_name, 0) + e.count
        return freqs

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
