from typing import Any, Dict, List, Set, Tuple

import pytest

from backend import ChannelDirectory, SessionRegistry
from coordinator import CONNECTION, Coordinator, Delivery
from dispatcher import EventDispatcher
from transports.base import Transport


class RecordingTransport(Transport):
    """In-memory transport that records what each connection would receive."""

    def __init__(self, name: str = "recording") -> None:
        self.name = name
        self.rooms: Dict[str, Set[str]] = {}
        self.received: Dict[str, List[Tuple[str, Any]]] = {}
        self.emitted: List[Delivery] = []

    def connect(self, connection_id: str) -> None:
        self.received[connection_id] = []

    def drop(self, connection_id: str) -> None:
        self.received.pop(connection_id, None)
        for members in self.rooms.values():
            members.discard(connection_id)

    def owns(self, connection_id: str) -> bool:
        return connection_id in self.received

    async def emit(self, delivery: Delivery) -> None:
        self.emitted.append(delivery)
        scope = delivery.scope
        if scope.kind == CONNECTION:
            targets = [scope.target] if scope.target in self.received else []
        else:
            targets = [c for c in self.rooms.get(scope.target, set()) if c != scope.skip]
        for conn_id in targets:
            self.received[conn_id].append((delivery.event, delivery.payload))

    async def enter_room(self, connection_id: str, channel_code: str) -> None:
        self.rooms.setdefault(channel_code, set()).add(connection_id)

    async def leave_room(self, connection_id: str, channel_code: str) -> None:
        self.rooms.get(channel_code, set()).discard(connection_id)

    @property
    def transport_type(self) -> str:
        return self.name

    def events_for(self, connection_id: str) -> List[Tuple[str, Any]]:
        return list(self.received.get(connection_id, []))

    def clear(self) -> None:
        self.emitted.clear()
        for events in self.received.values():
            events.clear()


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def directory() -> ChannelDirectory:
    return ChannelDirectory()


@pytest.fixture
def coordinator(registry: SessionRegistry, directory: ChannelDirectory) -> Coordinator:
    return Coordinator(registry, directory)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def dispatcher(coordinator: Coordinator, transport: RecordingTransport) -> EventDispatcher:
    return EventDispatcher(coordinator, transport)
