"""
Discord Voice Binding

Joins voice channels through py-cord and turns its per-user PCM stream into
AudioSources and speaking-state events.

py-cord decodes voice packets on a recorder thread and calls Sink.write(data,
user) there; every packet is handed to the event loop before touching any
session state. py-cord does not surface the gateway's speaking opcode, so a
speaker is reported as speaking on the first packet after silence and as
stopped once no packet arrived for SPEAKING_RELEASE_MS.
"""
import asyncio
import logging
from typing import Dict, Optional

import discord

from transcriber.config.constants import AUDIO_BYTES_PER_MS
from transcriber.config.settings import Settings
from transcriber.services.audio.source import AudioSource
from transcriber.services.connection.models import SpeakerIdentity, SpeakingChanged

logger = logging.getLogger(__name__)


class SpeakerFanoutSink(discord.sinks.Sink):
    """Recording sink that forwards every decoded packet to the connection."""

    def __init__(self, connection: "DiscordVoiceConnection"):
        super().__init__()
        self._connection = connection

    def write(self, data, user):
        # Called on py-cord's recorder thread
        self._connection.loop.call_soon_threadsafe(self._connection.feed, user, data)

    def cleanup(self):
        self.finished = True


class DiscordVoiceConnection:
    """A joined voice channel (VoiceConnectionProtocol)."""

    def __init__(
        self,
        voice_client: discord.VoiceClient,
        speaking_release: float,
        backlog_bytes: int,
    ):
        self.voice_client = voice_client
        self.loop = asyncio.get_running_loop()
        self._speaking_release = speaking_release
        self._backlog_bytes = backlog_bytes
        self._sources: Dict[int, AudioSource] = {}
        self._release_timers: Dict[int, asyncio.TimerHandle] = {}
        self._listener = None

    @property
    def channel_id(self) -> int:
        return self.voice_client.channel.id

    @property
    def guild(self) -> discord.Guild:
        return self.voice_client.guild

    def listen(self, listener):
        self._listener = listener
        self.voice_client.start_recording(SpeakerFanoutSink(self), self._on_recording_finished)
        logger.info(f"Listening to voice channel {self.channel_id}")

    def create_audio_source(self, speaker_id: int) -> AudioSource:
        source = self._sources.get(speaker_id)
        if source is None or source.ended:
            source = AudioSource(speaker_id, max_backlog_bytes=self._backlog_bytes)
            self._sources[speaker_id] = source
        return source

    async def resolve_speaker(self, speaker_id: int) -> SpeakerIdentity:
        member = self.guild.get_member(speaker_id)
        if member is None:
            try:
                member = await self.guild.fetch_member(speaker_id)
            except discord.HTTPException as e:
                logger.warning(f"Could not resolve member {speaker_id}: {e}")
                return SpeakerIdentity(speaker_id=speaker_id, display_name=str(speaker_id))

        return SpeakerIdentity(
            speaker_id=speaker_id,
            display_name=member.display_name,
            avatar_url=member.display_avatar.url,
        )

    def feed(self, user_id: int, data: bytes):
        """Handle one decoded packet on the event loop."""
        me = self.guild.me
        if me is not None and user_id == me.id:
            return

        source = self.create_audio_source(user_id)

        timer = self._release_timers.pop(user_id, None)
        if timer is None:
            self._emit(SpeakingChanged(speaker_id=user_id, is_speaking=True))
        else:
            timer.cancel()

        source.write(data)
        self._release_timers[user_id] = self.loop.call_later(
            self._speaking_release, self._release, user_id
        )

    def _release(self, user_id: int):
        self._release_timers.pop(user_id, None)
        self._emit(SpeakingChanged(speaker_id=user_id, is_speaking=False))

    def forget_speaker(self, speaker_id: int):
        """Drop per-speaker state once the member has left the channel."""
        timer = self._release_timers.pop(speaker_id, None)
        if timer is not None:
            timer.cancel()

        source = self._sources.pop(speaker_id, None)
        if source is not None:
            source.end()

    def _emit(self, event):
        if self._listener is not None:
            self._listener.submit(event)

    def is_connected(self) -> bool:
        return self.voice_client.is_connected()

    async def disconnect(self):
        for timer in self._release_timers.values():
            timer.cancel()
        self._release_timers.clear()

        if self.voice_client.recording:
            try:
                self.voice_client.stop_recording()
            except Exception as e:
                logger.debug(f"Ignoring error stopping recording: {e}")

        await self.voice_client.disconnect(force=True)
        logger.info(f"Disconnected from voice channel {self.channel_id}")

    async def _on_recording_finished(self, sink, *args):
        logger.debug(f"Recording finished for channel {self.channel_id}")


class DiscordVoicePlatform:
    """Joins Discord voice channels (VoicePlatformProtocol)."""

    def __init__(self, settings: Settings):
        self._speaking_release = settings.speaking_release_seconds
        self._backlog_bytes = settings.AUDIO_BACKLOG_MS * AUDIO_BYTES_PER_MS

    async def join(self, channel: discord.VoiceChannel) -> DiscordVoiceConnection:
        voice_client = await channel.connect()
        return DiscordVoiceConnection(
            voice_client,
            speaking_release=self._speaking_release,
            backlog_bytes=self._backlog_bytes,
        )
