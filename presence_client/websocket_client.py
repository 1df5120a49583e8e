"""WebSocket polling client with request correlation and re-registration."""

import asyncio
import json
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from presence_server.errors import MalformedState
from presence_server.protocol import ClientView, GlobalState

logger = logging.getLogger(__name__)


class RequestTimeout(Exception):
    """Raised when the server does not answer a request in time."""

    def __init__(self, request_id: str, kind: str, timeout: float):
        self.request_id = request_id
        self.kind = kind
        self.timeout = timeout
        super().__init__(f"Request {kind} (id={request_id}) timed out after {timeout}s")


class ServerError(Exception):
    """Raised when the server answers a request with an error."""

    def __init__(self, error: Dict[str, Any]):
        self.error = error
        self.error_type = error.get("type", "Unknown")
        super().__init__(f"{self.error_type}: {error.get('message', '')}")

    @property
    def not_registered(self) -> bool:
        return self.error_type == "NotRegistered"


class PresenceClient:
    """Registers with the presence server and keeps polling it.

    Handles:
    - Request ids so overlapping requests on one socket get their own replies
    - Per-request timeouts
    - Transparent re-registration after eviction
    - Reconnection with exponential backoff
    """

    def __init__(
        self,
        server_url: str,
        poll_interval_ms: int = 35,
        request_timeout_ms: int = 2000,
        color: int = 0,
        on_state: Optional[Callable[[GlobalState], Any]] = None,
    ):
        self.server_url = server_url
        self.poll_interval = poll_interval_ms / 1000
        self.request_timeout = request_timeout_ms / 1000
        self.color = color
        self.on_state = on_state

        self.identity: Optional[ClientView] = None
        self.peers: List[ClientView] = []
        self.last_version: Optional[int] = None

        self._reconnect_delay = 1  # seconds, with exponential backoff
        self._max_reconnect_delay = 60
        self._ws = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._send_func: Optional[Callable[[str], Any]] = None
        self._running = False

    async def run(self):
        """Main loop with auto-reconnection."""
        self._running = True

        while self._running:
            try:
                await self._connect_and_poll()
            except ConnectionClosed as e:
                logger.warning(f"Connection closed (code={e.code}): {e.reason}")
            except ConnectionRefusedError:
                logger.warning("Connection refused. Is the server running?")
            except MalformedState:
                raise
            except Exception as e:
                logger.error(f"Connection error: {e}")

            if not self._running:
                break

            logger.info(f"Reconnecting in {self._reconnect_delay}s...")
            await asyncio.sleep(self._reconnect_delay)
            self._reconnect_delay = min(self._reconnect_delay * 2, self._max_reconnect_delay)

    async def stop(self):
        """Stop the client gracefully."""
        self._running = False
        if self._ws:
            await self._ws.close()

    async def _connect_and_poll(self):
        async with websockets.connect(self.server_url) as ws:
            self._ws = ws
            self.set_send_func(ws.send)
            logger.info(f"Connected to {self.server_url}")
            self._reconnect_delay = 1

            reader = asyncio.create_task(self._read_loop(ws))
            try:
                await self.register()
                await self.set_color(self.color)
                await self._poll_loop(reader)
            finally:
                reader.cancel()
                try:
                    await reader
                except asyncio.CancelledError:
                    pass
                self._fail_pending(ConnectionError("Connection lost"))

    async def _read_loop(self, ws):
        async for raw in ws:
            self.handle_reply(json.loads(raw))

    async def _poll_loop(self, reader: asyncio.Task):
        while self._running and not reader.done():
            try:
                await self.poll()
            except RequestTimeout as e:
                logger.warning(str(e))
            await asyncio.sleep(self.poll_interval)

        if reader.done() and not reader.cancelled():
            # Surface the reader's failure (usually ConnectionClosed)
            reader.result()

    def set_send_func(self, func: Callable[[str], Any]) -> None:
        """Set the coroutine function used to send raw text frames."""
        self._send_func = func

    async def request(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Send a request and await the reply carrying the same request id.

        Raises:
            RequestTimeout: If no reply arrives within the request timeout
            ServerError: If the server replies with an error
        """
        if not self._send_func:
            raise ValueError("Send function not configured")

        request_id = str(uuid.uuid4())
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._send_func(json.dumps({**message, "request_id": request_id}))
            reply = await asyncio.wait_for(future, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            raise RequestTimeout(request_id, message.get("type", "?"), self.request_timeout)
        finally:
            self._pending.pop(request_id, None)

        if reply.get("type") == "error":
            raise ServerError(reply.get("error", {}))
        return reply

    def handle_reply(self, message: Dict[str, Any]) -> bool:
        """Resolve the pending request a reply belongs to.

        Returns:
            True if the reply matched a pending request
        """
        request_id = message.get("request_id")
        pending = self._pending.get(request_id) if request_id else None
        if pending is None:
            logger.warning(f"Received reply for unknown request: {request_id}")
            return False

        if not pending.done():
            pending.set_result(message)
            return True
        return False

    def _fail_pending(self, exc: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(exc)
        self._pending.clear()

    async def register(self) -> ClientView:
        """Obtain a fresh identity from the server."""
        reply = await self.request({"type": "register"})
        self.identity = ClientView.model_validate(reply["client"])
        self.last_version = None
        logger.info(f"Registered as {self.identity.display_name} ({self.identity.id})")
        return self.identity

    async def poll(self) -> Optional[GlobalState]:
        """Poll once, re-registering if the server evicted us.

        Returns:
            The new state, or None if unchanged

        Raises:
            MalformedState: If the server sent a state that fails to parse
        """
        if self.identity is None:
            await self.register()

        try:
            reply = await self.request({"type": "poll", "id": self.identity.id})
        except ServerError as e:
            if not e.not_registered:
                raise
            logger.info("Evicted by server, registering again")
            await self.register()
            await self.set_color(self.color)
            return None

        if reply.get("type") == "unchanged":
            return None

        state = GlobalState.from_dict(reply.get("state"))
        self.peers = state.clients
        self.last_version = state.version
        if self.on_state:
            self.on_state(state)
        return state

    async def set_color(self, color: int) -> None:
        """Change our color, re-registering if the server evicted us."""
        self.color = color
        if self.identity is None:
            return

        try:
            await self.request({"type": "update", "id": self.identity.id, "value": color})
        except ServerError as e:
            if not e.not_registered:
                raise
            logger.info("Evicted by server, registering again")
            await self.register()
            await self.request({"type": "update", "id": self.identity.id, "value": color})
