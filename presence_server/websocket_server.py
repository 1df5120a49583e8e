"""Bookkeeping for open WebSocket polling sessions."""

import asyncio
import itertools
import logging
from typing import Dict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class PresenceWebSocketServer:
    """Tracks WebSocket connections that speak the polling protocol.

    A connection is not a presence client: one socket may register several
    identities over its lifetime (after eviction), and presence is decided by
    the registry alone.
    """

    def __init__(self):
        self._connections: Dict[int, WebSocket] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> int:
        """Track an accepted connection and return its session number.

        Note: websocket.accept() should be called before this.
        """
        async with self._lock:
            session_id = next(self._ids)
            self._connections[session_id] = websocket
            logger.info(f"WebSocket session opened: {session_id}")
            return session_id

    async def disconnect(self, session_id: int) -> None:
        """Forget a connection."""
        async with self._lock:
            if session_id in self._connections:
                del self._connections[session_id]
                logger.info(f"WebSocket session closed: {session_id}")

    @property
    def connection_count(self) -> int:
        """Number of open sessions."""
        return len(self._connections)
