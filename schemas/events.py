"""Wire payloads for the channel events.

Field names on the wire are camelCase and must stay byte-for-byte compatible
with existing clients; the models use snake_case attributes with aliases.
Relay payloads (`offer`, `answer`, `candidate`) are opaque and typed `Any`.
"""
from typing import Any, ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

from event_names import (
    ANSWER,
    ICE_CANDIDATE,
    JOIN_CHANNEL,
    OFFER,
    RELEASE_SPEAK,
    REQUEST_SPEAK,
    SPEAKER_CHANGED,
    USER_JOINED,
    USER_LEFT,
    WELCOME,
)


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event: ClassVar[str]


# Inbound (client -> server)

class JoinChannel(WireModel):
    event: ClassVar[str] = JOIN_CHANNEL

    # Echoed back to other members as given
    nickname: Any = None
    channel_code: Optional[str] = Field(default=None, alias="channelCode")

    @field_validator("channel_code", mode="before")
    @classmethod
    def coerce_channel_code(cls, value: Any) -> Optional[str]:
        # Falsy codes fall back to the default channel; anything else is used as its string form
        if not value:
            return None
        return value if isinstance(value, str) else str(value)


class RequestSpeak(WireModel):
    event: ClassVar[str] = REQUEST_SPEAK


class ReleaseSpeak(WireModel):
    event: ClassVar[str] = RELEASE_SPEAK


class RelaySignal(WireModel):
    to_user_id: str = Field(alias="toUserId")


class Offer(RelaySignal):
    event: ClassVar[str] = OFFER

    offer: Any = None


class Answer(RelaySignal):
    event: ClassVar[str] = ANSWER

    answer: Any = None


class IceCandidate(RelaySignal):
    event: ClassVar[str] = ICE_CANDIDATE

    candidate: Any = None


INBOUND_EVENTS: Dict[str, Type[WireModel]] = {
    model.event: model
    for model in (JoinChannel, RequestSpeak, ReleaseSpeak, Offer, Answer, IceCandidate)
}


# Outbound (server -> client)

class OutboundEvent(WireModel):
    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class MemberInfo(BaseModel):
    id: str
    nickname: Any = None


class Welcome(OutboundEvent):
    event: ClassVar[str] = WELCOME

    user_id: str = Field(alias="userId")
    users: List[MemberInfo] = Field(default_factory=list)
    channel_code: str = Field(alias="channelCode")


class UserJoined(OutboundEvent):
    event: ClassVar[str] = USER_JOINED

    user_id: str = Field(alias="userId")
    nickname: Any = None


class UserLeft(OutboundEvent):
    event: ClassVar[str] = USER_LEFT

    user_id: str = Field(alias="userId")


class SpeakerChanged(OutboundEvent):
    """speakerId and nickname are both null when the floor becomes free."""

    event: ClassVar[str] = SPEAKER_CHANGED

    speaker_id: Optional[str] = Field(default=None, alias="speakerId")
    nickname: Any = None
