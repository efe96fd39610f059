"""
Channel Session - all speakers of one voice channel.

Owns the voice connection, the transcript sink and the SpeakerSession map.
Platform events are submitted into an inbox and handled one at a time by a
worker task, so the speaker map is only ever touched by this channel.

Teardown order on close():
    1. speaker sessions (streams ended, audio sources ended)
    2. bounded wait for ended streams to flush their last results
    3. transcript sink deleted (late transcripts are dropped)
    4. voice connection disconnected, unless already gone
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, Optional

from transcriber.config.constants import SINK_DELETE_REASON
from transcriber.services.connection.models import (
    ChannelEvent,
    ConnectionDropped,
    SpeakerIdentity,
    SpeakerLeft,
    SpeakingChanged,
)
from transcriber.services.metrics import transcripts_total
from transcriber.services.protocols import (
    SpeechClientProtocol,
    TranscriptSinkProtocol,
    VoiceConnectionProtocol,
)
from transcriber.services.session.recognition import RecognitionSession
from transcriber.services.session.speaker import SpeakerSession

if TYPE_CHECKING:
    from transcriber.services.session.registry import SessionRegistry

logger = logging.getLogger(__name__)


class ChannelSession:
    """
    Orchestrates transcription for one voice channel.
    Handles:
    - Lazy creation of speaker sessions on first speaking event
    - Forwarding final transcripts to the sink
    - Cascading teardown when speakers leave or the connection drops
    """

    def __init__(
        self,
        channel_id: int,
        connection: VoiceConnectionProtocol,
        sink: TranscriptSinkProtocol,
        speech: SpeechClientProtocol,
        streaming_limit: float,
        drain_timeout: float = 5.0,
        debug_streams: bool = False,
        registry: Optional["SessionRegistry"] = None,
    ):
        self.channel_id = channel_id
        self.connection = connection
        self.sink = sink
        self.speakers: Dict[int, SpeakerSession] = {}
        self._speech = speech
        self._streaming_limit = streaming_limit
        self._drain_timeout = drain_timeout
        self._debug_streams = debug_streams
        self._registry = registry
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._sink_deleted = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # === Event inbox ===

    def start(self):
        """Start the worker that processes submitted platform events."""
        if self._worker is None and not self._closed:
            self._worker = asyncio.create_task(
                self._run(),
                name=f"channel:{self.channel_id}"
            )

    def submit(self, event: ChannelEvent):
        """Queue a platform event (ChannelListener interface)."""
        if self._closed:
            return
        self._inbox.put_nowait(event)

    async def drain(self):
        """Wait until every submitted event has been handled."""
        await self._inbox.join()

    async def _run(self):
        while not self._closed:
            event = await self._inbox.get()
            try:
                await self._dispatch(event)
            except Exception as e:
                logger.error(f"[Channel {self.channel_id}] Error handling {event}: {e}", exc_info=True)
            finally:
                self._inbox.task_done()

    async def _dispatch(self, event: ChannelEvent):
        if self._closed:
            return
        if isinstance(event, SpeakingChanged):
            await self.on_speaking_state_changed(event.speaker_id, event.is_speaking)
        elif isinstance(event, SpeakerLeft):
            await self.on_speaker_left(event.speaker_id)
        elif isinstance(event, ConnectionDropped):
            await self.on_connection_dropped()
        else:
            logger.warning(f"[Channel {self.channel_id}] Unknown event: {event}")

    # === Event handlers ===

    async def on_speaking_state_changed(self, speaker_id: int, is_speaking: bool):
        if self._closed:
            return

        speaker = self.speakers.get(speaker_id)
        if speaker is None:
            # A stop for an untracked speaker never opens a session
            if not is_speaking:
                return
            speaker = await self._create_speaker(speaker_id)
            if speaker is None:
                return

        if is_speaking:
            speaker.on_speaking_start()
        else:
            speaker.on_speaking_stop()

    async def on_speaker_left(self, speaker_id: int):
        if self._closed:
            return

        speaker = self.speakers.pop(speaker_id, None)
        if speaker is not None:
            logger.info(f"[Channel {self.channel_id}] {speaker.speaker.display_name} left")
            speaker.close()

        try:
            self.connection.forget_speaker(speaker_id)
        except Exception as e:
            logger.debug(f"Ignoring error forgetting speaker {speaker_id}: {e}")

        if not self.speakers:
            logger.info(f"[Channel {self.channel_id}] No speakers left, closing")
            await self.close()

    async def on_connection_dropped(self):
        logger.info(f"[Channel {self.channel_id}] Voice connection dropped")
        if self._registry is not None:
            self._registry.discard(self)
        await self.close()

    async def _create_speaker(self, speaker_id: int) -> Optional[SpeakerSession]:
        identity = await self.connection.resolve_speaker(speaker_id)

        # Re-check after suspending: a concurrent handler may have won, or we closed
        existing = self.speakers.get(speaker_id)
        if existing is not None:
            return existing
        if self._closed:
            return None

        source = self.connection.create_audio_source(speaker_id)
        speaker = SpeakerSession(
            speaker=identity,
            source=source,
            recognition_factory=self._new_recognition,
            streaming_limit=self._streaming_limit,
        )
        self.speakers[speaker_id] = speaker
        logger.info(f"[Channel {self.channel_id}] Tracking speaker {identity.display_name}")
        return speaker

    def _new_recognition(self, speaker: SpeakerIdentity) -> RecognitionSession:
        return RecognitionSession(
            speech=self._speech,
            speaker=speaker,
            on_final=self.forward_transcript,
            drain_timeout=self._drain_timeout,
            debug=self._debug_streams,
        )

    # === Transcript sink ===

    async def forward_transcript(self, speaker: SpeakerIdentity, text: str):
        """Post a final transcript. Best effort: failures are logged, never raised."""
        if self._sink_deleted:
            transcripts_total.labels(outcome='dropped').inc()
            logger.debug(f"[Channel {self.channel_id}] Sink gone, dropping transcript from {speaker.display_name}")
            return

        try:
            await self.sink.send(text, speaker)
            transcripts_total.labels(outcome='sent').inc()
        except Exception as e:
            transcripts_total.labels(outcome='failed').inc()
            logger.warning(f"[Channel {self.channel_id}] Failed to post transcript: {e}")

    # === Teardown ===

    async def close(self):
        """Close speakers, delete the sink and disconnect. Idempotent, never raises."""
        if self._closed:
            return
        self._closed = True
        logger.info(f"🛑 Closing transcription for channel {self.channel_id}")

        if self._registry is not None:
            self._registry.discard(self)

        self._discard_pending_events()

        speakers = list(self.speakers.values())
        self.speakers.clear()
        for speaker in speakers:
            try:
                speaker.close()
            except Exception as e:
                logger.debug(f"Ignoring error closing speaker {speaker.speaker.speaker_id}: {e}")

        draining = [task for speaker in speakers for task in speaker.draining_tasks()]
        if draining:
            await asyncio.wait(draining, timeout=self._drain_timeout)

        self._sink_deleted = True
        try:
            await self.sink.delete(SINK_DELETE_REASON)
        except Exception as e:
            logger.warning(f"[Channel {self.channel_id}] Failed to delete transcript sink: {e}")

        try:
            if self.connection.is_connected():
                await self.connection.disconnect()
        except Exception as e:
            logger.debug(f"Ignoring error disconnecting from channel {self.channel_id}: {e}")

        worker = self._worker
        if worker is not None and worker is not asyncio.current_task() and not worker.done():
            worker.cancel()

    def _discard_pending_events(self):
        while True:
            try:
                self._inbox.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._inbox.task_done()
