"""
Protocol definitions for the collaborators around the session core.

This module defines interfaces (Python Protocols) that allow:
- Swapping implementations (e.g., Discord → another voice platform)
- Testing without a live gateway or real API credentials
- Clear contracts between the session core and its bindings

Usage:
    from transcriber.services.protocols import VoicePlatformProtocol

    async def begin(platform: VoicePlatformProtocol, channel):
        connection = await platform.join(channel)
        source = connection.create_audio_source(speaker_id)
"""

from typing import Any, AsyncIterable, AsyncIterator, Protocol

from transcriber.services.audio.source import AudioSource
from transcriber.services.connection.models import ChannelEvent, SpeakerIdentity


class SpeechClientProtocol(Protocol):
    """
    Interface for a streaming speech-to-text engine.

    One call is one bounded recognition stream. The engine closes the stream
    once the audio iterator is exhausted and pending results are delivered.
    """

    async def streaming_recognize(self, audio_chunks: AsyncIterator[bytes]) -> AsyncIterable[Any]:
        """
        Open a bidirectional recognition stream.

        Args:
            audio_chunks: Async iterator of raw PCM chunks. Exhausting it
                          half-closes the outbound side of the stream.

        Returns:
            Async iterable of response events shaped like
            {error?, results: [{is_final, alternatives: [{transcript}]}]}
        """
        ...


class ChannelListener(Protocol):
    """Receiver of platform events for one voice channel."""

    def submit(self, event: ChannelEvent) -> None:
        ...


class VoiceConnectionProtocol(Protocol):
    """
    Interface for a joined voice channel.
    """

    @property
    def channel_id(self) -> int:
        ...

    def listen(self, listener: ChannelListener) -> None:
        """Start delivering SpeakingChanged events for this channel to listener."""
        ...

    def create_audio_source(self, speaker_id: int) -> AudioSource:
        """
        Return the speaker's decoded audio stream (48kHz stereo PCM16).

        The same source is returned until it has been ended.
        """
        ...

    async def resolve_speaker(self, speaker_id: int) -> SpeakerIdentity:
        """Resolve display name and avatar for a speaker."""
        ...

    def forget_speaker(self, speaker_id: int) -> None:
        """Stop emitting events for a speaker who left and end their audio source."""
        ...

    def is_connected(self) -> bool:
        ...

    async def disconnect(self) -> None:
        ...


class VoicePlatformProtocol(Protocol):
    """Interface for joining voice channels."""

    async def join(self, channel: Any) -> VoiceConnectionProtocol:
        ...


class TranscriptSinkProtocol(Protocol):
    """A named endpoint that receives final transcripts."""

    async def send(self, text: str, speaker: SpeakerIdentity) -> None:
        ...

    async def delete(self, reason: str) -> None:
        ...


class TranscriptSinkFactoryProtocol(Protocol):
    """Creates transcript sinks owned by a text channel."""

    async def create(self, owner: Any, name: str, reason: str) -> TranscriptSinkProtocol:
        ...
