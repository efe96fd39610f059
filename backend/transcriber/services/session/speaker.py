"""
Speaker Session - speaking state and stream rotation for one speaker.

Maps speaking-state transitions onto recognition-session attachment and keeps
a recognition session continuously available while the speaker talks, despite
the engine's per-stream duration ceiling.

States:
    IDLE   - no recognition session attached
    ACTIVE - recognition session attached, audio piped, rotation timer armed

Transitions:
    IDLE   --on_speaking_start-->      ACTIVE (create stream, arm timer)
    ACTIVE --on_speaking_stop-->       IDLE   (end stream, cancel timer)
    ACTIVE --on_rotation_timer_fire--> ACTIVE (end stream, create stream, re-arm timer)
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Set

from transcriber.services.audio.source import AudioSource
from transcriber.services.connection.models import SpeakerIdentity
from transcriber.services.metrics import stream_rotations
from transcriber.services.session.recognition import RecognitionSession

logger = logging.getLogger(__name__)


RecognitionFactory = Callable[[SpeakerIdentity], RecognitionSession]


class SpeakerState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class SpeakerSession:
    """
    Owns one AudioSource and the sequence of RecognitionSessions created
    against it. At most one RecognitionSession is live at any instant.

    All methods run on the event loop; the timer callback and a stop event are
    serialized by the loop and both check `state` before acting.
    """

    def __init__(
        self,
        speaker: SpeakerIdentity,
        source: AudioSource,
        recognition_factory: RecognitionFactory,
        streaming_limit: float,
    ):
        self.speaker = speaker
        self.source = source
        self.streaming_limit = streaming_limit
        self.state = SpeakerState.IDLE
        self.recognition: Optional[RecognitionSession] = None
        self.rotations = 0
        self._new_recognition = recognition_factory
        self._timer: Optional[asyncio.TimerHandle] = None
        self._draining: Set[RecognitionSession] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_active(self) -> bool:
        return self.state is SpeakerState.ACTIVE

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def on_speaking_start(self):
        if self._closed or self.state is SpeakerState.ACTIVE:
            return

        self._attach()
        self._arm_timer()
        self.state = SpeakerState.ACTIVE

    def on_speaking_stop(self):
        if self.state is SpeakerState.IDLE:
            return

        try:
            self._detach()
        finally:
            self._cancel_timer()
            self.state = SpeakerState.IDLE

    def on_rotation_timer_fire(self):
        # The handle has fired; it is re-armed below, never cancelled here
        self._timer = None
        if self._closed or self.state is not SpeakerState.ACTIVE:
            return

        logger.info(
            f"🔁 Rotating recognition stream for {self.speaker.display_name} "
            f"after {self.streaming_limit:.0f}s"
        )
        self._detach()
        self._attach()
        self._arm_timer()
        self.rotations += 1
        stream_rotations.inc()

    def close(self):
        """Stop recognition and end the audio source. Never raises."""
        if self._closed:
            return
        self._closed = True

        try:
            self.on_speaking_stop()
        except Exception as e:
            logger.debug(f"Ignoring error stopping stream for {self.speaker.display_name}: {e}")

        try:
            self.source.end()
        except Exception as e:
            logger.debug(f"Ignoring error ending audio for {self.speaker.display_name}: {e}")

    def draining_tasks(self) -> List[asyncio.Task]:
        """Engine calls that were ended but are still flushing results."""
        return [
            session.task for session in self._draining
            if session.task is not None and not session.task.done()
        ]

    def _attach(self):
        recognition = self._new_recognition(self.speaker)
        recognition.start(self.source)
        self.recognition = recognition

    def _detach(self):
        recognition, self.recognition = self.recognition, None
        if recognition is None:
            return

        recognition.end()
        self._draining.add(recognition)
        recognition.add_done_callback(self._draining.discard)

    def _arm_timer(self):
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.streaming_limit, self.on_rotation_timer_fire)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
