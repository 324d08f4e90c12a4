"""Base transport abstraction for client connections.

A transport owns a set of live connections, keeps its own notion of which
connection sits in which channel room, and resolves a delivery's scope to
the concrete connections it must reach.
"""
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from coordinator import CONNECTION, Delivery
from logging_config import get_logger

logger = get_logger(__name__)


def room_for_channel(channel_code: str) -> str:
    return f"channel:{channel_code}"


class Transport(ABC):
    @abstractmethod
    async def emit(self, delivery: Delivery) -> None:
        """Send the delivery to every connection its scope covers on this transport."""
        pass

    @abstractmethod
    async def enter_room(self, connection_id: str, channel_code: str) -> None:
        pass

    @abstractmethod
    async def leave_room(self, connection_id: str, channel_code: str) -> None:
        pass

    @abstractmethod
    def owns(self, connection_id: str) -> bool:
        """Whether the connection is live on this transport."""
        pass

    @property
    @abstractmethod
    def transport_type(self) -> str:
        """Transport type identifier (e.g., 'socketio', 'websocket')."""
        pass


class TransportHub(Transport):
    """Lets connections on different transports share channels.

    Channel-scoped deliveries fan out to every transport; connection-scoped
    deliveries and room moves go to the transport that owns the connection.
    """

    def __init__(self, transports: Iterable[Transport] = ()):
        self._transports: List[Transport] = list(transports)

    def add(self, transport: Transport) -> None:
        self._transports.append(transport)

    def owner_of(self, connection_id: str) -> Optional[Transport]:
        for transport in self._transports:
            if transport.owns(connection_id):
                return transport
        return None

    async def emit(self, delivery: Delivery) -> None:
        if delivery.scope.kind == CONNECTION:
            transport = self.owner_of(delivery.scope.target)
            if transport is None:
                logger.debug(f"No live connection {delivery.scope.target} for {delivery.event}, dropped")
                return
            await transport.emit(delivery)
            return

        for transport in self._transports:
            try:
                await transport.emit(delivery)
            except Exception as e:
                logger.error(f"{transport.transport_type} transport failed to emit {delivery.event}: {e}", exc_info=True)

    async def enter_room(self, connection_id: str, channel_code: str) -> None:
        transport = self.owner_of(connection_id)
        if transport is not None:
            await transport.enter_room(connection_id, channel_code)

    async def leave_room(self, connection_id: str, channel_code: str) -> None:
        transport = self.owner_of(connection_id)
        if transport is not None:
            await transport.leave_room(connection_id, channel_code)

    def owns(self, connection_id: str) -> bool:
        return self.owner_of(connection_id) is not None

    @property
    def transport_type(self) -> str:
        return "hub"
