"""Channel membership, floor control and signaling relay.

Every public operation is synchronous, never raises, and returns an
`Outcome`: the deliveries to emit plus any room moves the transport has to
mirror. Resolving a `Scope` to concrete connections is left to the transport.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import floor
from floor import FloorState
from backend import ChannelDirectory, Member, SessionRegistry
from event_names import RELAY_EVENTS, RELAY_PAYLOAD_FIELDS
from logging_config import get_logger
from schemas.events import MemberInfo, OutboundEvent, SpeakerChanged, UserJoined, UserLeft, Welcome

logger = get_logger(__name__)

CONNECTION = "connection"
CHANNEL = "channel"


@dataclass(frozen=True)
class Scope:
    """Who receives a delivery.

    kind CONNECTION: exactly `target` (a connection id).
    kind CHANNEL: everyone in channel `target`, minus `skip` if set.
    """

    kind: str
    target: str
    skip: Optional[str] = None

    @classmethod
    def connection(cls, connection_id: str) -> "Scope":
        return cls(CONNECTION, connection_id)

    @classmethod
    def channel(cls, channel_code: str) -> "Scope":
        return cls(CHANNEL, channel_code)

    @classmethod
    def channel_except(cls, channel_code: str, connection_id: str) -> "Scope":
        return cls(CHANNEL, channel_code, skip=connection_id)


@dataclass(frozen=True)
class Delivery:
    event: str
    payload: Dict[str, Any]
    scope: Scope

    @classmethod
    def of(cls, message: OutboundEvent, scope: Scope) -> "Delivery":
        return cls(message.event, message.to_wire(), scope)


@dataclass
class Outcome:
    deliveries: List[Delivery] = field(default_factory=list)
    left_channel: Optional[str] = None
    joined_channel: Optional[str] = None

    def add(self, message: OutboundEvent, scope: Scope) -> None:
        self.deliveries.append(Delivery.of(message, scope))


@dataclass(frozen=True)
class ChannelSnapshot:
    code: str
    members: List[Member]
    speaker_id: Optional[str]
    speaker_nickname: Any
    floor: FloorState


class Coordinator:
    def __init__(self, registry: Optional[SessionRegistry] = None, directory: Optional[ChannelDirectory] = None):
        self.registry = registry if registry is not None else SessionRegistry()
        self.directory = directory if directory is not None else ChannelDirectory()

    def join(self, connection_id: str, nickname: Any, channel_code: Optional[str]) -> Outcome:
        """Put the connection in `channel_code`, leaving its previous channel first if different."""
        code = self.directory.resolve_code(channel_code)
        outcome = Outcome()

        previous = self.registry.register(connection_id, nickname, code)
        if previous is not None and previous != code:
            logger.info(f"{connection_id} switching from channel {previous} to {code}")
            self._leave(connection_id, previous, outcome)

        with self.directory.locked(code, create=True) as channel:
            existing = self.directory.join(code, connection_id, nickname)
            speaker_id = channel.floor_holder
            speaker_nickname = channel.display_name_of(speaker_id)

        outcome.joined_channel = code
        outcome.add(
            Welcome(
                user_id=connection_id,
                users=[MemberInfo(id=member.connection_id, nickname=member.display_name) for member in existing],
                channel_code=code,
            ),
            Scope.connection(connection_id),
        )
        outcome.add(UserJoined(user_id=connection_id, nickname=nickname), Scope.channel_except(code, connection_id))
        if speaker_id is not None:
            outcome.add(SpeakerChanged(speaker_id=speaker_id, nickname=speaker_nickname), Scope.connection(connection_id))
        return outcome

    def request_floor(self, connection_id: str) -> Outcome:
        participant = self.registry.lookup(connection_id)
        if participant is None:
            logger.debug(f"Floor request from {connection_id} without a channel ignored")
            return Outcome()

        with self.directory.locked(participant.channel_code) as channel:
            if channel is None or not floor.request_floor(channel, connection_id):
                return Outcome()
            nickname = channel.display_name_of(connection_id)

        outcome = Outcome()
        outcome.add(SpeakerChanged(speaker_id=connection_id, nickname=nickname), Scope.channel(participant.channel_code))
        return outcome

    def release_floor(self, connection_id: str) -> Outcome:
        participant = self.registry.lookup(connection_id)
        if participant is None:
            logger.debug(f"Floor release from {connection_id} without a channel ignored")
            return Outcome()

        with self.directory.locked(participant.channel_code) as channel:
            if channel is None or not floor.release_floor(channel, connection_id):
                return Outcome()

        outcome = Outcome()
        outcome.add(SpeakerChanged(), Scope.channel(participant.channel_code))
        return outcome

    def relay(self, kind: str, from_connection_id: str, to_connection_id: Optional[str], payload: Any) -> Outcome:
        """Forward an opaque negotiation payload to one connection.

        Silently dropped when either end has no session.
        """
        if kind not in RELAY_EVENTS:
            logger.warning(f"Unknown relay kind {kind!r} from {from_connection_id} dropped")
            return Outcome()
        if self.registry.lookup(from_connection_id) is None:
            logger.debug(f"Relay {kind} from {from_connection_id} without a channel dropped")
            return Outcome()
        if self.registry.lookup(to_connection_id) is None:
            logger.debug(f"Relay {kind} from {from_connection_id} to unknown target {to_connection_id} dropped")
            return Outcome()

        logger.debug(f"Relaying {kind} from {from_connection_id} to {to_connection_id}")
        delivery = Delivery(
            kind,
            {"fromUserId": from_connection_id, RELAY_PAYLOAD_FIELDS[kind]: payload},
            Scope.connection(to_connection_id),
        )
        return Outcome(deliveries=[delivery])

    def disconnect(self, connection_id: str) -> Outcome:
        outcome = Outcome()
        participant = self.registry.remove(connection_id)
        if participant is None:
            logger.debug(f"Connection {connection_id} closed without joining a channel")
            return outcome
        self._leave(connection_id, participant.channel_code, outcome)
        return outcome

    def channel_details(self, channel_code: Optional[str]) -> Optional[ChannelSnapshot]:
        with self.directory.locked(channel_code) as channel:
            if channel is None:
                return None
            return ChannelSnapshot(
                code=channel.code,
                members=channel.snapshot(),
                speaker_id=channel.floor_holder,
                speaker_nickname=channel.display_name_of(channel.floor_holder),
                floor=floor.floor_state(channel),
            )

    def list_channels(self) -> List[ChannelSnapshot]:
        snapshots = (self.channel_details(code) for code in self.directory.channel_codes())
        return [snapshot for snapshot in snapshots if snapshot is not None]

    def _leave(self, connection_id: str, channel_code: str, outcome: Outcome) -> None:
        with self.directory.locked(channel_code) as channel:
            if channel is None:
                return
            released = floor.force_release(channel, connection_id)
            was_member = self.directory.leave(channel_code, connection_id)

        outcome.left_channel = channel_code
        if released:
            outcome.add(SpeakerChanged(), Scope.channel_except(channel_code, connection_id))
        if was_member:
            outcome.add(UserLeft(user_id=connection_id), Scope.channel_except(channel_code, connection_id))
