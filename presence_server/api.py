"""REST API endpoints for the presence server."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, Field

from .errors import NotRegistered
from .protocol import MAX_ATTRIBUTE, ClientView, GlobalState, PresenceSession, serialize_error
from .websocket_server import PresenceWebSocketServer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


def get_session(request: Request) -> PresenceSession:
    """Session owned by the app that is serving this request."""
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return session


def get_ws_server(request: Request) -> PresenceWebSocketServer:
    return request.app.state.ws_server


# Request/Response models
class HealthResponse(BaseModel):
    status: str
    timestamp: str
    clients_registered: int
    version: int
    sessions_open: int


class AttributeUpdate(BaseModel):
    value: int = Field(ge=0, le=MAX_ATTRIBUTE)


def _not_registered(e: NotRegistered) -> HTTPException:
    return HTTPException(status_code=404, detail=serialize_error(e))


# Endpoints
@router.get("/health", response_model=HealthResponse)
async def health_check(
    session: PresenceSession = Depends(get_session),
    ws_server: PresenceWebSocketServer = Depends(get_ws_server),
):
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        clients_registered=len(session.registry),
        version=session.registry.version,
        sessions_open=ws_server.connection_count,
    )


@router.post("/clients", response_model=ClientView, status_code=201)
def register_client(session: PresenceSession = Depends(get_session)):
    """Register a new presence client.

    Runs in the threadpool: the first call reads the word lists.
    """
    return session.register()


@router.get("/clients", response_model=GlobalState)
async def list_clients(session: PresenceSession = Depends(get_session)):
    """Current state of every client, without touching liveness."""
    return session.state()


@router.get(
    "/clients/{client_id}/state",
    response_model=GlobalState,
    responses={204: {"description": "State unchanged since last poll"}},
)
async def poll_state(client_id: str, session: PresenceSession = Depends(get_session)):
    """Poll for the state; 204 with no body when nothing changed."""
    try:
        state = session.poll(client_id)
    except NotRegistered as e:
        raise _not_registered(e)

    if state is None:
        return Response(status_code=204)
    return state


@router.put("/clients/{client_id}/attribute", status_code=204)
async def update_attribute(
    client_id: str,
    update: AttributeUpdate,
    session: PresenceSession = Depends(get_session),
):
    """Set a client's attribute (color hue)."""
    try:
        session.update_attribute(client_id, update.value)
    except NotRegistered as e:
        raise _not_registered(e)
    return Response(status_code=204)
