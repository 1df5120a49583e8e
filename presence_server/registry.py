"""Shared registry of connected presence clients."""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from .errors import NotRegistered
from .sweeper import EvictionSweeper

logger = logging.getLogger(__name__)

# last_synced_version of a client that has never received a snapshot
NEVER_SYNCED = 0

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in milliseconds since epoch."""
    return int(time.time() * 1000)


@dataclass
class ClientRecord:
    """One connected participant."""
    id: str
    display_name: str
    attribute: int
    last_seen_at: int
    last_synced_version: int = NEVER_SYNCED
    last_updated: int = 0


@dataclass
class Snapshot:
    """A consistent (version, clients) pair taken under the registry lock."""
    version: int
    clients: List[ClientRecord]


class PresenceRegistry:
    """Registry of presence clients with a monotonic state version.

    The version is bumped once for every change other clients can observe:
    a registration, an attribute update, or a sweep that evicted someone.
    Polls only refresh liveness and never bump it, so an idle poller compares
    two integers and gets nothing back.

    Every public method takes the same lock, including the eviction check,
    and returns copies of records rather than the live objects.
    """

    def __init__(
        self,
        sweeper: Optional[EvictionSweeper] = None,
        clock: Optional[Clock] = None,
        default_attribute: int = 0,
    ):
        self._clients: Dict[str, ClientRecord] = {}
        self._version = 0
        self._lock = threading.Lock()
        self._sweeper = sweeper or EvictionSweeper()
        self._clock = clock or now_ms
        self._default_attribute = default_attribute

    def register(self, display_name: str) -> ClientRecord:
        """Add a new client and return a copy of its record."""
        client_id = str(uuid.uuid4())
        with self._lock:
            while client_id in self._clients:
                client_id = str(uuid.uuid4())
            self._version += 1
            record = ClientRecord(
                id=client_id,
                display_name=display_name,
                attribute=self._default_attribute,
                last_seen_at=self._clock(),
                last_updated=self._version,
            )
            self._clients[client_id] = record
            logger.info(f"Client registered: {display_name} ({client_id})")
            return replace(record)

    def update_attribute(self, client_id: str, value: int) -> None:
        """Set a client's attribute.

        Raises:
            NotRegistered: If the id is unknown or was evicted
        """
        with self._lock:
            now = self._clock()
            self._sweep(now)
            record = self._lookup(client_id)
            record.last_seen_at = now
            record.attribute = value
            self._version += 1
            record.last_updated = self._version

    def poll(self, client_id: str) -> Optional[Snapshot]:
        """Return the full state if it changed since this client last synced.

        Returns:
            None when the client already saw the current version

        Raises:
            NotRegistered: If the id is unknown or was evicted
        """
        with self._lock:
            now = self._clock()
            self._sweep(now)
            record = self._lookup(client_id)
            record.last_seen_at = now
            if record.last_synced_version == self._version:
                return None
            record.last_synced_version = self._version
            return self._snapshot()

    def snapshot(self) -> Snapshot:
        """Current state in registration order."""
        with self._lock:
            return self._snapshot()

    def get(self, client_id: str) -> Optional[ClientRecord]:
        """Copy of a client's record, or None."""
        with self._lock:
            record = self._clients.get(client_id)
            return replace(record) if record else None

    def touch(self, client_id: str, last_seen_at: int) -> None:
        """Overwrite a client's liveness timestamp without any other effect."""
        with self._lock:
            self._lookup(client_id).last_seen_at = last_seen_at

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    @property
    def sweep_count(self) -> int:
        with self._lock:
            return self._sweeper.sweep_count

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    # Helpers below expect the lock to be held.

    def _lookup(self, client_id: str) -> ClientRecord:
        record = self._clients.get(client_id)
        if record is None:
            raise NotRegistered(client_id)
        return record

    def _sweep(self, now: int) -> None:
        if self._sweeper.maybe_sweep(self._clients, now):
            self._version += 1

    def _snapshot(self) -> Snapshot:
        return Snapshot(
            version=self._version,
            clients=[replace(r) for r in self._clients.values()],
        )
