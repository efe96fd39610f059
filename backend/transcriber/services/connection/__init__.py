"""
Connection Module

Platform events and the Discord bindings (voice receive, transcript webhook).
"""
from .models import (
    ChannelEvent,
    ConnectionDropped,
    SpeakerIdentity,
    SpeakerLeft,
    SpeakingChanged,
)
from .voice import DiscordVoiceConnection, DiscordVoicePlatform, SpeakerFanoutSink
from .webhook import WebhookSinkFactory, WebhookTranscriptSink

__all__ = [
    "ChannelEvent",
    "ConnectionDropped",
    "DiscordVoiceConnection",
    "DiscordVoicePlatform",
    "SpeakerFanoutSink",
    "SpeakerIdentity",
    "SpeakerLeft",
    "SpeakingChanged",
    "WebhookSinkFactory",
    "WebhookTranscriptSink",
]
