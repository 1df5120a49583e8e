"""Rate-limited eviction of clients that stopped calling in."""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from .registry import ClientRecord

logger = logging.getLogger(__name__)

DEFAULT_LIVENESS_WINDOW_MS = 2000
DEFAULT_SWEEP_INTERVAL_MS = 4000


class EvictionSweeper:
    """Removes records whose last call is older than the liveness window.

    The sweep is not driven by a timer. The registry calls ``maybe_sweep`` at
    the start of every poll and attribute update, and the sweep only scans when
    at least ``sweep_interval_ms`` has passed since the previous one. A client
    therefore stays listed for at most ``sweep_interval_ms + liveness_window_ms``
    after its last call.

    Not thread-safe on its own: the registry holds its lock around every call.
    """

    def __init__(
        self,
        liveness_window_ms: int = DEFAULT_LIVENESS_WINDOW_MS,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
    ):
        self.liveness_window_ms = liveness_window_ms
        self.sweep_interval_ms = sweep_interval_ms
        self._last_sweep_at: Optional[int] = None
        self._sweep_count = 0

    def is_due(self, now: int) -> bool:
        """Whether enough time has passed to run another sweep."""
        if self._last_sweep_at is None:
            return True
        return now - self._last_sweep_at >= self.sweep_interval_ms

    def is_stale(self, record: "ClientRecord", now: int) -> bool:
        return now - record.last_seen_at >= self.liveness_window_ms

    def maybe_sweep(self, records: Dict[str, "ClientRecord"], now: int) -> List[str]:
        """Sweep ``records`` in place if a sweep is due.

        Args:
            records: The registry's id -> record mapping
            now: Current time in milliseconds since epoch

        Returns:
            Ids of removed records (empty if nothing was stale or no sweep ran)
        """
        if not self.is_due(now):
            return []

        self._last_sweep_at = now
        self._sweep_count += 1

        removed = [cid for cid, rec in records.items() if self.is_stale(rec, now)]
        for cid in removed:
            del records[cid]

        if removed:
            logger.info(f"Evicted {len(removed)} inactive client(s): {removed}")
        return removed

    @property
    def sweep_count(self) -> int:
        """Number of sweeps that actually scanned the registry."""
        return self._sweep_count

    @property
    def last_sweep_at(self) -> Optional[int]:
        return self._last_sweep_at
