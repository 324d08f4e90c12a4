import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, NamedTuple, Optional

from constants import DEFAULT_CHANNEL
from logging_config import get_logger

logger = get_logger(__name__)


class Member(NamedTuple):
    connection_id: str
    display_name: Any


@dataclass(frozen=True)
class Participant:
    connection_id: str
    display_name: Any
    channel_code: str


@dataclass(eq=False)
class Channel:
    """One channel's membership and floor state.

    `lock` must be held for every read-modify-write of `members` or
    `floor_holder`. A channel whose `closed` flag is set has been removed from
    the directory and must not be mutated again.
    """

    code: str
    members: Dict[str, Any] = field(default_factory=dict)
    floor_holder: Optional[str] = None
    closed: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def snapshot(self, exclude: Optional[str] = None) -> List[Member]:
        with self.lock:
            return [Member(conn_id, name) for conn_id, name in self.members.items() if conn_id != exclude]

    def display_name_of(self, connection_id: Optional[str]) -> Any:
        if connection_id is None:
            return None
        return self.members.get(connection_id)


class SessionRegistry:
    """Maps each live connection to its display name and current channel."""

    def __init__(self):
        self._participants: Dict[str, Participant] = {}
        self._lock = threading.Lock()

    def register(self, connection_id: str, display_name: Any, channel_code: str) -> Optional[str]:
        """Record (or overwrite) the connection's session.

        Returns the channel code the connection was in before, if any, so the
        caller can perform the implicit leave.
        """
        with self._lock:
            previous = self._participants.get(connection_id)
            self._participants[connection_id] = Participant(connection_id, display_name, channel_code)
        logger.debug(f"Registered session {connection_id} ({display_name}) in channel {channel_code}")
        return previous.channel_code if previous else None

    def lookup(self, connection_id: Optional[str]) -> Optional[Participant]:
        if connection_id is None:
            return None
        with self._lock:
            return self._participants.get(connection_id)

    def remove(self, connection_id: str) -> Optional[Participant]:
        with self._lock:
            participant = self._participants.pop(connection_id, None)
        if participant:
            logger.debug(f"Removed session {connection_id} from registry")
        return participant

    def __contains__(self, connection_id) -> bool:
        with self._lock:
            return connection_id in self._participants

    def __len__(self) -> int:
        with self._lock:
            return len(self._participants)


class ChannelDirectory:
    """Channel code -> Channel table. Channels exist only while they have members."""

    def __init__(self, default_channel: str = DEFAULT_CHANNEL):
        self.default_channel = default_channel
        self._channels: Dict[str, Channel] = {}
        # Lock order: a channel's lock may be held while taking this one, never the reverse
        self._lock = threading.Lock()

    def resolve_code(self, channel_code: Optional[str]) -> str:
        return channel_code or self.default_channel

    def get(self, channel_code: Optional[str]) -> Optional[Channel]:
        with self._lock:
            return self._channels.get(self.resolve_code(channel_code))

    def get_or_create(self, channel_code: Optional[str]) -> Channel:
        code = self.resolve_code(channel_code)
        with self._lock:
            channel = self._channels.get(code)
            if channel is None:
                channel = Channel(code)
                self._channels[code] = channel
                logger.info(f"Created channel {code}")
            return channel

    @contextmanager
    def locked(self, channel_code: Optional[str], create: bool = False) -> Iterator[Optional[Channel]]:
        """Yield the live channel for `channel_code` with its lock held.

        Yields None when the channel does not exist and `create` is False. A
        channel deleted between lookup and lock acquisition is never yielded;
        the lookup is retried instead.
        """
        code = self.resolve_code(channel_code)
        while True:
            channel = self.get_or_create(code) if create else self.get(code)
            if channel is None:
                break
            channel.lock.acquire()
            if not channel.closed:
                break
            channel.lock.release()
        try:
            yield channel
        finally:
            if channel is not None:
                channel.lock.release()

    def join(self, channel_code: Optional[str], connection_id: str, display_name: Any) -> List[Member]:
        """Add the connection to the channel, creating it if needed.

        Returns the members that were already present (joiner excluded).
        """
        with self.locked(channel_code, create=True) as channel:
            existing = channel.snapshot(exclude=connection_id)
            channel.members[connection_id] = display_name
            logger.info(f"{display_name} ({connection_id}) joined channel {channel.code} ({len(channel.members)} members)")
            return existing

    def leave(self, channel_code: Optional[str], connection_id: str) -> bool:
        """Remove the connection; deletes the channel once it is empty.

        Returns True if the connection was a member.
        """
        with self.locked(channel_code) as channel:
            if channel is None:
                return False
            # display names may be None, so test membership rather than the popped value
            removed = connection_id in channel.members
            channel.members.pop(connection_id, None)
            if channel.floor_holder == connection_id:
                channel.floor_holder = None
            if removed:
                logger.info(f"{connection_id} left channel {channel.code} ({len(channel.members)} members)")
            if not channel.members:
                self._discard(channel)
            return removed

    def snapshot_members(self, channel_code: Optional[str], exclude: Optional[str] = None) -> List[Member]:
        with self.locked(channel_code) as channel:
            if channel is None:
                return []
            return channel.snapshot(exclude=exclude)

    def channel_codes(self) -> List[str]:
        with self._lock:
            return list(self._channels)

    def _discard(self, channel: Channel) -> None:
        # Caller holds channel.lock
        with self._lock:
            if self._channels.get(channel.code) is channel:
                del self._channels[channel.code]
        channel.closed = True
        logger.info(f"Channel {channel.code} is empty, deleted")

    def __contains__(self, channel_code) -> bool:
        with self._lock:
            return channel_code in self._channels

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)
