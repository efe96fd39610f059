"""
Connection Models

Speaker identity and the platform events delivered to a channel session.
"""
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class SpeakerIdentity:
    """Who a transcript is attributed to when posted to the sink."""
    speaker_id: int
    display_name: str
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class SpeakingChanged:
    """A speaker started or stopped producing voice audio."""
    speaker_id: int
    is_speaking: bool


@dataclass(frozen=True)
class SpeakerLeft:
    """A member left (or moved out of) the tracked voice channel."""
    speaker_id: int


@dataclass(frozen=True)
class ConnectionDropped:
    """The voice connection was closed by the platform."""
    pass


ChannelEvent = Union[SpeakingChanged, SpeakerLeft, ConnectionDropped]
