from typing import Any, Optional

from pydantic import ValidationError

from coordinator import Coordinator, Outcome
from event_names import RELAY_PAYLOAD_FIELDS
from logging_config import get_logger
from schemas.events import INBOUND_EVENTS, JoinChannel, RelaySignal, ReleaseSpeak, RequestSpeak, WireModel
from transports.base import Transport

logger = get_logger(__name__)


class EventDispatcher:
    """Turns inbound named events into coordinator calls and emits the results.

    Shared by every transport: a transport only reports connect / event /
    disconnect and carries out the deliveries handed back to it.
    """

    def __init__(self, coordinator: Coordinator, transport: Transport):
        self.coordinator = coordinator
        self.transport = transport

    async def connect(self, connection_id: str) -> None:
        logger.info(f"New connection: {connection_id}")

    async def handle(self, connection_id: str, event: str, data: Any = None) -> None:
        model = INBOUND_EVENTS.get(event)
        if model is None:
            logger.warning(f"Unknown event {event!r} from {connection_id} dropped")
            return

        if not isinstance(data, dict) and not model.model_fields:
            # Payload-less events ignore whatever argument the client sent along
            data = {}

        try:
            message = model.model_validate(data if data is not None else {})
        except ValidationError as e:
            logger.warning(f"Malformed {event} payload from {connection_id} dropped: {e.error_count()} error(s)")
            logger.debug(f"Validation errors for {event} from {connection_id}: {e}")
            return

        logger.debug(f"Received {event} from {connection_id}")
        outcome = self.route(connection_id, message)
        await self.apply(connection_id, outcome)

    def route(self, connection_id: str, message: WireModel) -> Outcome:
        if isinstance(message, JoinChannel):
            return self.coordinator.join(connection_id, message.nickname, message.channel_code)
        if isinstance(message, RequestSpeak):
            return self.coordinator.request_floor(connection_id)
        if isinstance(message, ReleaseSpeak):
            return self.coordinator.release_floor(connection_id)
        if isinstance(message, RelaySignal):
            payload = getattr(message, RELAY_PAYLOAD_FIELDS[message.event])
            return self.coordinator.relay(message.event, connection_id, message.to_user_id, payload)
        logger.error(f"No route for inbound message {type(message).__name__} from {connection_id}, dropped")
        return Outcome()

    async def disconnect(self, connection_id: str, reason: Optional[str] = None) -> None:
        logger.info(f"User disconnected: {connection_id}" + (f" ({reason})" if reason else ""))
        outcome = self.coordinator.disconnect(connection_id)
        # The transport drops a closed connection's rooms itself
        await self.apply(connection_id, outcome, move_rooms=False)

    async def apply(self, connection_id: str, outcome: Outcome, move_rooms: bool = True) -> None:
        if move_rooms:
            if outcome.left_channel is not None and outcome.left_channel != outcome.joined_channel:
                await self.transport.leave_room(connection_id, outcome.left_channel)
            if outcome.joined_channel is not None:
                await self.transport.enter_room(connection_id, outcome.joined_channel)

        for delivery in outcome.deliveries:
            try:
                await self.transport.emit(delivery)
            except Exception as e:
                logger.error(f"Error emitting {delivery.event} to {delivery.scope}: {e}", exc_info=True)
