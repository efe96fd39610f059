"""
Session Registry - which voice channels are being transcribed.

The single source of truth for "is this channel already being transcribed".
Constructed once by the bot factory and handed to the command gateway and the
voice-state router; tests build fresh instances.

Usage:
    registry = SessionRegistry(platform, sink_factory, speech, settings)

    await registry.start(channel.id, channel, text_channel)
    await registry.stop(channel.id)
"""

import logging
from typing import Any, Dict, List, Optional, Set

from transcriber.config.constants import SINK_CREATE_REASON
from transcriber.config.settings import Settings
from transcriber.services.metrics import channel_sessions_gauge
from transcriber.services.protocols import (
    SpeechClientProtocol,
    TranscriptSinkFactoryProtocol,
    VoicePlatformProtocol,
)
from transcriber.services.session.channel import ChannelSession
from transcriber.services.session.exceptions import AlreadyActiveError, NotActiveError

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Enforces at most one ChannelSession per voice channel.

    Only touched from the event loop, so no locking is needed; the in-flight
    set covers the suspension points inside start().
    """

    def __init__(
        self,
        platform: VoicePlatformProtocol,
        sink_factory: TranscriptSinkFactoryProtocol,
        speech: SpeechClientProtocol,
        settings: Settings,
    ):
        self._platform = platform
        self._sink_factory = sink_factory
        self._speech = speech
        self._settings = settings
        self._sessions: Dict[int, ChannelSession] = {}
        self._starting: Set[int] = set()

    def get(self, channel_id: int) -> Optional[ChannelSession]:
        return self._sessions.get(channel_id)

    def __contains__(self, channel_id: int) -> bool:
        return channel_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def channel_ids(self) -> List[int]:
        return list(self._sessions)

    async def start(self, channel_id: int, channel: Any, sink_owner: Any) -> ChannelSession:
        """
        Join a voice channel and begin transcribing it.

        Args:
            channel_id: Voice channel id (registry key)
            channel: Platform voice channel to join
            sink_owner: Text channel that owns the transcript sink

        Raises:
            AlreadyActiveError: channel is tracked or a start is in flight
        """
        if channel_id in self._sessions or channel_id in self._starting:
            raise AlreadyActiveError()

        self._starting.add(channel_id)
        connection = None
        try:
            connection = await self._platform.join(channel)
            sink = await self._sink_factory.create(
                sink_owner,
                self._settings.TRANSCRIPT_SINK_NAME,
                SINK_CREATE_REASON
            )
            session = ChannelSession(
                channel_id=channel_id,
                connection=connection,
                sink=sink,
                speech=self._speech,
                streaming_limit=self._settings.streaming_limit_seconds,
                drain_timeout=self._settings.RECOGNITION_DRAIN_TIMEOUT_SEC,
                debug_streams=self._settings.DEBUG_STREAMS,
                registry=self,
            )
        except BaseException:
            # Includes cancellation of the command while joining
            if connection is not None:
                await self._abandon(connection)
            raise
        finally:
            self._starting.discard(channel_id)

        self._sessions[channel_id] = session
        channel_sessions_gauge.set(len(self._sessions))
        session.start()
        try:
            connection.listen(session)
        except BaseException:
            # Deletes the sink, disconnects and removes the entry again
            await session.close()
            raise

        logger.info(f"🎙️ Started transcribing channel {channel_id}")
        return session

    async def stop(self, channel_id: int):
        """
        Stop transcribing a channel.

        Raises:
            NotActiveError: no session is tracked for the channel
        """
        session = self._sessions.get(channel_id)
        if session is None:
            raise NotActiveError()

        # A connection drop may close and discard it concurrently; close() is idempotent
        await session.close()
        self.discard(session)
        logger.info(f"Stopped transcribing channel {channel_id}")

    def discard(self, session: ChannelSession) -> bool:
        """
        Remove `session` if it is still the registered one for its channel.

        Returns:
            True if this call removed it
        """
        if self._sessions.get(session.channel_id) is not session:
            return False
        del self._sessions[session.channel_id]
        channel_sessions_gauge.set(len(self._sessions))
        logger.debug(f"Removed channel {session.channel_id} from registry")
        return True

    async def shutdown(self):
        """Close every session (for process exit)."""
        sessions = list(self._sessions.values())
        if sessions:
            logger.info(f"Closing {len(sessions)} transcription session(s)...")
        for session in sessions:
            await session.close()

    async def _abandon(self, connection):
        try:
            if connection.is_connected():
                await connection.disconnect()
        except Exception as e:
            logger.debug(f"Ignoring error abandoning voice connection: {e}")
