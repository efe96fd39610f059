"""
Session management module.

Provides the session lifecycle core: registry → channel → speaker → recognition.
"""
from .exceptions import (
    AlreadyActiveError,
    EngineError,
    NotActiveError,
    PreconditionFailedError,
    TranscriptionSessionError,
)
from .recognition import RecognitionSession
from .speaker import SpeakerSession, SpeakerState
from .channel import ChannelSession
from .registry import SessionRegistry

__all__ = [
    "AlreadyActiveError",
    "ChannelSession",
    "EngineError",
    "NotActiveError",
    "PreconditionFailedError",
    "RecognitionSession",
    "SessionRegistry",
    "SpeakerSession",
    "SpeakerState",
    "TranscriptionSessionError",
]
