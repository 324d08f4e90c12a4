from pydantic import BaseModel
from typing import Any, Optional


class ChannelMember(BaseModel):
    connection_id: str
    nickname: Any = None

class ChannelSummary(BaseModel):
    channel_code: str
    member_count: int
    floor: str
    speaker_id: Optional[str] = None

class ChannelDetailsResponse(BaseModel):
    channel_code: str
    member_count: int
    members: list[ChannelMember]
    floor: str
    speaker_id: Optional[str] = None
    speaker_nickname: Any = None

class HealthResponse(BaseModel):
    status: str
    channels: int
    connections: int
