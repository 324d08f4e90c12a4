"""Socket.IO transport.

Wire-compatible with the socket.io-client front end: the Socket.IO sid is the
connection id, and every inbound event name maps 1:1 onto the dispatcher.
Channel rooms are Socket.IO rooms named `channel:<code>`.
"""
from typing import Any, List, Set

import socketio

from coordinator import CONNECTION, Delivery
from logging_config import get_logger
from schemas.events import INBOUND_EVENTS
from transports.base import Transport, room_for_channel

logger = get_logger(__name__)


def create_socketio_server(cors_origins: List[str]) -> socketio.AsyncServer:
    allowed = "*" if "*" in cors_origins else cors_origins
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=allowed,
        logger=False,
        engineio_logger=False,
    )


class SocketIOTransport(Transport):
    def __init__(self, sio: socketio.AsyncServer):
        self.sio = sio
        self._sids: Set[str] = set()

    def track(self, sid: str) -> None:
        self._sids.add(sid)

    def untrack(self, sid: str) -> None:
        self._sids.discard(sid)

    def owns(self, connection_id: str) -> bool:
        return connection_id in self._sids

    async def emit(self, delivery: Delivery) -> None:
        scope = delivery.scope
        if scope.kind == CONNECTION:
            await self.sio.emit(delivery.event, delivery.payload, to=scope.target)
        else:
            await self.sio.emit(delivery.event, delivery.payload, to=room_for_channel(scope.target), skip_sid=scope.skip)

    async def enter_room(self, connection_id: str, channel_code: str) -> None:
        await self.sio.enter_room(connection_id, room_for_channel(channel_code))

    async def leave_room(self, connection_id: str, channel_code: str) -> None:
        await self.sio.leave_room(connection_id, room_for_channel(channel_code))

    @property
    def transport_type(self) -> str:
        return "socketio"


def register_socketio_handlers(sio: socketio.AsyncServer, transport: SocketIOTransport, dispatcher) -> None:
    """Wire connect/disconnect and every inbound channel event to the dispatcher."""

    @sio.event
    async def connect(sid: str, environ: dict, auth: Any = None):
        transport.track(sid)
        await dispatcher.connect(sid)

    @sio.event
    async def disconnect(sid: str, reason: Any = None):
        try:
            await dispatcher.disconnect(sid, str(reason) if reason else None)
        finally:
            transport.untrack(sid)

    for event_name in INBOUND_EVENTS:
        sio.on(event_name, handler=_event_handler(dispatcher, event_name))


def _event_handler(dispatcher, event_name: str):
    async def handler(sid: str, *args):
        # request-speak / release-speak arrive without a payload
        data = args[0] if args else None
        await dispatcher.handle(sid, event_name, data)

    handler.__name__ = f"on_{event_name.replace('-', '_')}"
    return handler
