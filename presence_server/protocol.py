"""Session protocol: registry operations as request/response exchanges."""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from .errors import MalformedState, NameSourceUnavailable, NotRegistered
from .names import NameSource
from .registry import ClientRecord, PresenceRegistry, Snapshot

logger = logging.getLogger(__name__)

# Largest attribute value either transport accepts
MAX_ATTRIBUTE = 65535


class ClientView(BaseModel):
    """Public fields of a client, as sent over the wire."""
    id: str
    display_name: str
    attribute: int
    last_updated: int

    @classmethod
    def from_record(cls, record: ClientRecord) -> "ClientView":
        return cls(
            id=record.id,
            display_name=record.display_name,
            attribute=record.attribute,
            last_updated=record.last_updated,
        )


class GlobalState(BaseModel):
    """Every current client plus the registry version they were read at."""
    version: int
    clients: List[ClientView] = []

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "GlobalState":
        return cls(
            version=snapshot.version,
            clients=[ClientView.from_record(r) for r in snapshot.clients],
        )

    @classmethod
    def from_json(cls, text: str) -> "GlobalState":
        """Parse a serialized state.

        Raises:
            MalformedState: If the text is not valid JSON or misses fields
        """
        try:
            return cls.model_validate_json(text)
        except ValidationError as e:
            raise MalformedState(str(e), payload=text) from e

    @classmethod
    def from_dict(cls, data: Any) -> "GlobalState":
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedState(str(e), payload=repr(data)) from e

    def to_json(self) -> str:
        return self.model_dump_json()


class PresenceSession:
    """Binds a registry to a name source and speaks the polling protocol.

    Handles:
    - First contact: name generation outside the registry lock, then insert
    - Change-detection polls (``None`` means unchanged)
    - Attribute updates
    - Dispatch of WebSocket messages to the operations above
    """

    def __init__(self, registry: PresenceRegistry, names: Optional[NameSource] = None):
        self.registry = registry
        self.names = names or NameSource()

    def register(self) -> ClientView:
        name = self.names.generate_or_placeholder()
        return ClientView.from_record(self.registry.register(name))

    def poll(self, client_id: str) -> Optional[GlobalState]:
        snapshot = self.registry.poll(client_id)
        if snapshot is None:
            return None
        return GlobalState.from_snapshot(snapshot)

    def update_attribute(self, client_id: str, value: int) -> None:
        self.registry.update_attribute(client_id, value)

    def state(self) -> GlobalState:
        return GlobalState.from_snapshot(self.registry.snapshot())

    def handle_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Handle one WebSocket request and build its reply.

        Args:
            message: Request with a 'type' of register, poll or update

        Returns:
            Reply dict; carries the request's 'request_id' when one was given
        """
        reply = self._dispatch(message)
        if "request_id" in message:
            reply["request_id"] = message["request_id"]
        return reply

    def _dispatch(self, message: Dict[str, Any]) -> Dict[str, Any]:
        msg_type = message.get("type")
        try:
            if msg_type == "register":
                client = self.register()
                return {"type": "registered", "client": client.model_dump()}

            if msg_type == "poll":
                state = self.poll(_require_id(message))
                if state is None:
                    return {"type": "unchanged"}
                return {"type": "state", "state": state.model_dump()}

            if msg_type == "update":
                value = _require(message, "value")
                if not _is_attribute(value):
                    raise ValueError(f"Invalid attribute value: {value!r}")
                self.update_attribute(_require_id(message), value)
                return {"type": "updated"}

            raise ValueError(f"Unknown message type: {msg_type}")

        except (NotRegistered, ValueError) as e:
            return {"type": "error", "error": serialize_error(e)}


def _require(message: Dict[str, Any], key: str) -> Any:
    if key not in message:
        raise ValueError(f"Missing field: {key}")
    return message[key]


def _is_attribute(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= MAX_ATTRIBUTE


def _require_id(message: Dict[str, Any]) -> str:
    client_id = _require(message, "id")
    if not isinstance(client_id, str):
        raise ValueError(f"Invalid client id: {client_id!r}")
    return client_id


def serialize_error(exc: Exception) -> Dict[str, Any]:
    """Serialize an exception for client feedback.

    Args:
        exc: The exception to serialize

    Returns:
        Dict with error details suitable for JSON response
    """
    error_data = {
        "type": type(exc).__name__,
        "message": str(exc),
    }

    if isinstance(exc, NotRegistered):
        error_data["client_id"] = exc.client_id
    elif isinstance(exc, NameSourceUnavailable):
        error_data["path"] = exc.path
    elif isinstance(exc, MalformedState):
        error_data["payload"] = exc.payload

    return error_data
