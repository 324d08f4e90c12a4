from fastapi import APIRouter, HTTPException, Request
from schemas.channels import ChannelDetailsResponse, ChannelMember, ChannelSummary, HealthResponse
from coordinator import Coordinator
from logging_config import get_logger

logger = get_logger(__name__)

channels_router = APIRouter(prefix="/channels", tags=["channels"])
health_router = APIRouter(tags=["health"])


def get_coordinator(request: Request) -> Coordinator:
    return request.app.state.coordinator


@health_router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    coordinator = get_coordinator(request)
    return HealthResponse(
        status="ok",
        channels=len(coordinator.directory),
        connections=len(coordinator.registry),
    )


@channels_router.get("", response_model=list[ChannelSummary])
async def list_channels(request: Request):
    """List every live channel with its member count and current speaker."""
    coordinator = get_coordinator(request)
    channels = coordinator.list_channels()
    logger.debug(f"Channel list request: {len(channels)} channels")
    return [
        ChannelSummary(
            channel_code=channel.code,
            member_count=len(channel.members),
            floor=channel.floor.value,
            speaker_id=channel.speaker_id,
        )
        for channel in channels
    ]


@channels_router.get("/{channel_code}", response_model=ChannelDetailsResponse)
async def get_channel_details(channel_code: str, request: Request):
    """
    Get channel details.

    Returns:
    - channel_code: The channel's code
    - member_count: Number of connections in the channel
    - members: connection_id / nickname for every member (unordered)
    - floor: "free" or "held"
    - speaker_id / speaker_nickname: current floor holder, null when the floor is free
    """
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Channel details request for {channel_code} from {client_host}")

    channel = get_coordinator(request).channel_details(channel_code)
    if channel is None:
        logger.warning(f"Channel details failed: Channel {channel_code} not found")
        raise HTTPException(status_code=404, detail="Channel not found")

    return ChannelDetailsResponse(
        channel_code=channel.code,
        member_count=len(channel.members),
        members=[ChannelMember(connection_id=m.connection_id, nickname=m.display_name) for m in channel.members],
        floor=channel.floor.value,
        speaker_id=channel.speaker_id,
        speaker_nickname=channel.speaker_nickname,
    )
