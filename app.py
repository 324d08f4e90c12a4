from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
import socketio
from typing import Optional

from backend import ChannelDirectory, SessionRegistry
from constants import CORS_ORIGINS, DEFAULT_CHANNEL, LOG_FILE, LOG_LEVEL, SOCKETIO_PATH
from coordinator import Coordinator
from dispatcher import EventDispatcher
from logging_config import get_logger, setup_logging
from routers.channels import channels_router, health_router
from transports.base import TransportHub
from transports.socketio_transport import SocketIOTransport, create_socketio_server, register_socketio_handlers
from transports.websocket_transport import WebSocketTransport, websocket_session

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def create_app(coordinator: Optional[Coordinator] = None) -> FastAPI:
    """Build the FastAPI app with one coordinator shared by both transports.

    The Socket.IO server is kept on `app.state.sio`; wrap the app with
    `create_asgi_app` to serve Socket.IO and HTTP from one ASGI callable.
    """
    if coordinator is None:
        coordinator = Coordinator(SessionRegistry(), ChannelDirectory(default_channel=DEFAULT_CHANNEL))

    app = FastAPI(title="Radio Link")

    # Configure CORS (GET/POST only, as the signaling clients need)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(channels_router)

    sio = create_socketio_server(CORS_ORIGINS)
    sio_transport = SocketIOTransport(sio)
    ws_transport = WebSocketTransport()
    dispatcher = EventDispatcher(coordinator, TransportHub([sio_transport, ws_transport]))
    register_socketio_handlers(sio, sio_transport, dispatcher)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Plain WebSocket endpoint; frames are {"event": ..., "data": ...} JSON objects."""
        await websocket_session(websocket, ws_transport, dispatcher)

    app.state.coordinator = coordinator
    app.state.dispatcher = dispatcher
    app.state.sio = sio
    app.state.ws_transport = ws_transport

    logger.info("FastAPI application initialized")
    return app


def create_asgi_app(app: FastAPI) -> socketio.ASGIApp:
    # Socket.IO sits in front: it needs both long-polling and WebSocket upgrades on its path
    return socketio.ASGIApp(app.state.sio, other_asgi_app=app, socketio_path=SOCKETIO_PATH)


app = create_app()
asgi_app = create_asgi_app(app)
