"""Error types shared by the registry and protocol layers."""

from typing import Optional


class NotRegistered(Exception):
    """Raised when a client id is unknown to the registry (or was evicted).

    Callers are expected to treat this as "start over": register again and
    continue with the new identity.
    """

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client not registered: {client_id}")


class NameSourceUnavailable(Exception):
    """Raised when a word list for display names cannot be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Name source unavailable ({path}): {reason}")


class MalformedState(Exception):
    """Raised when a transmitted state payload fails to parse."""

    def __init__(self, message: str, payload: Optional[str] = None):
        self.payload = payload
        super().__init__(f"Malformed state: {message}")
