"""Per-channel floor control.

A channel's floor is either FREE or HELD by exactly one of its members. The
first requester wins; everyone else is turned away silently until the holder
releases it or leaves the channel. All transitions take the channel lock, so
a grant is never decided on a stale FREE reading.
"""
from enum import Enum

from backend import Channel
from logging_config import get_logger

logger = get_logger(__name__)


class FloorState(str, Enum):
    FREE = "free"
    HELD = "held"


def floor_state(channel: Channel) -> FloorState:
    with channel.lock:
        return FloorState.HELD if channel.floor_holder is not None else FloorState.FREE


def request_floor(channel: Channel, connection_id: str) -> bool:
    """Grant the floor if it is free. Returns True only on a FREE -> HELD transition."""
    with channel.lock:
        if connection_id not in channel.members:
            logger.debug(f"Floor request from non-member {connection_id} in channel {channel.code} ignored")
            return False
        if channel.floor_holder is None:
            channel.floor_holder = connection_id
            logger.info(f"Floor in channel {channel.code} granted to {connection_id}")
            return True
        if channel.floor_holder == connection_id:
            logger.debug(f"{connection_id} already holds the floor in channel {channel.code}")
        else:
            logger.debug(f"Floor request from {connection_id} in channel {channel.code} rejected, held by {channel.floor_holder}")
        return False


def release_floor(channel: Channel, connection_id: str) -> bool:
    """Free the floor if `connection_id` holds it. Returns True only on a HELD -> FREE transition."""
    with channel.lock:
        if channel.floor_holder != connection_id or connection_id is None:
            logger.debug(f"Floor release from non-holder {connection_id} in channel {channel.code} ignored")
            return False
        channel.floor_holder = None
        logger.info(f"Floor in channel {channel.code} released by {connection_id}")
        return True


def force_release(channel: Channel, connection_id: str) -> bool:
    """Release on behalf of a connection that is leaving the channel."""
    with channel.lock:
        if channel.floor_holder != connection_id or connection_id is None:
            return False
        channel.floor_holder = None
        logger.info(f"Floor in channel {channel.code} force-released from departing {connection_id}")
        return True
