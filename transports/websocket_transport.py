"""Plain WebSocket transport for clients that do not speak Socket.IO.

Frames are JSON text in both directions: {"event": "<name>", "data": {...}}.
Connection ids are generated here (uuid4 hex) and announced in `welcome`.
"""
import asyncio
import json
import uuid
from typing import Dict, List, Set

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from coordinator import CONNECTION, Delivery
from logging_config import get_logger
from transports.base import Transport, room_for_channel

logger = get_logger(__name__)


class WebSocketTransport(Transport):
    def __init__(self):
        # Format: {connection_id: websocket}
        self.connections: Dict[str, WebSocket] = {}
        # Format: {room: {connection_id, ...}}
        self.rooms: Dict[str, Set[str]] = {}

    def register(self, websocket: WebSocket) -> str:
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket
        logger.debug(f"Added websocket connection {connection_id} (local connections: {len(self.connections)})")
        return connection_id

    def unregister(self, connection_id: str) -> None:
        self.connections.pop(connection_id, None)
        for room in list(self.rooms):
            members = self.rooms[room]
            members.discard(connection_id)
            if not members:
                del self.rooms[room]
        logger.debug(f"Removed websocket connection {connection_id} (local connections: {len(self.connections)})")

    def owns(self, connection_id: str) -> bool:
        return connection_id in self.connections

    def recipients(self, delivery: Delivery) -> List[str]:
        scope = delivery.scope
        if scope.kind == CONNECTION:
            return [scope.target] if scope.target in self.connections else []
        members = self.rooms.get(room_for_channel(scope.target), set())
        return [conn_id for conn_id in members if conn_id != scope.skip and conn_id in self.connections]

    async def emit(self, delivery: Delivery) -> None:
        recipients = self.recipients(delivery)
        if not recipients:
            return

        frame = json.dumps({"event": delivery.event, "data": delivery.payload})
        send_tasks = [self.connections[conn_id].send_text(frame) for conn_id in recipients]
        results = await asyncio.gather(*send_tasks, return_exceptions=True)
        for conn_id, result in zip(recipients, results):
            if isinstance(result, Exception):
                logger.warning(f"Error sending {delivery.event} to websocket connection {conn_id}: {result}")
        logger.debug(f"Sent {delivery.event} to {len(recipients)} websocket connection(s)")

    async def enter_room(self, connection_id: str, channel_code: str) -> None:
        self.rooms.setdefault(room_for_channel(channel_code), set()).add(connection_id)

    async def leave_room(self, connection_id: str, channel_code: str) -> None:
        room = room_for_channel(channel_code)
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self.rooms[room]

    @property
    def transport_type(self) -> str:
        return "websocket"


async def websocket_session(websocket: WebSocket, transport: WebSocketTransport, dispatcher) -> None:
    """Serve one WebSocket connection until it closes."""
    await websocket.accept()
    connection_id = transport.register(websocket)
    logger.info(f"WebSocket connection accepted: {connection_id}")

    try:
        await dispatcher.connect(connection_id)
        message_count = 0
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect:
                logger.info(f"WebSocket disconnected normally for connection {connection_id}")
                break
            message_count += 1

            try:
                frame = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring non-JSON frame #{message_count} from connection {connection_id}")
                continue

            if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
                logger.warning(f"Ignoring frame #{message_count} without an event name from connection {connection_id}")
                continue

            await dispatcher.handle(connection_id, frame["event"], frame.get("data"))
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        try:
            await dispatcher.disconnect(connection_id)
        finally:
            transport.unregister(connection_id)
            if websocket.client_state != WebSocketState.DISCONNECTED:
                try:
                    await websocket.close()
                except (RuntimeError, WebSocketDisconnect) as e:
                    logger.debug(f"Error closing WebSocket: {e}")
