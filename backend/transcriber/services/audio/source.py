"""
Audio Source - Per-speaker PCM stream with a single pluggable consumer.

The platform writes decoded packets into the source for as long as the speaker
is in the channel. A recognition session is attached with pipe() and detached
with unpipe(); while nothing is attached a bounded backlog of the most recent
audio is kept and flushed into the next consumer.

Usage:
    from transcriber.services.audio.source import AudioSource

    source = AudioSource(speaker_id, max_backlog_bytes=192000)
    source.pipe(recognition)
    source.write(pcm_bytes)
    source.unpipe(recognition)
    source.end()
"""

import logging
from collections import deque
from typing import Deque, Optional, Protocol

logger = logging.getLogger(__name__)


class AudioConsumer(Protocol):
    def write(self, chunk: bytes) -> None:
        ...


class AudioSource:
    """
    Continuously available audio for one speaker.

    Outlives every recognition session piped from it; only end() stops it.
    At most one consumer is attached at a time.
    """

    def __init__(self, speaker_id: int, max_backlog_bytes: int = 0):
        self.speaker_id = speaker_id
        self.max_backlog_bytes = max_backlog_bytes
        self._consumer: Optional[AudioConsumer] = None
        self._backlog: Deque[bytes] = deque()
        self._backlog_bytes = 0
        self._ended = False

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def consumer(self) -> Optional[AudioConsumer]:
        return self._consumer

    @property
    def backlog_bytes(self) -> int:
        return self._backlog_bytes

    def write(self, chunk: bytes):
        """Push one decoded packet. Ignored once the source has ended."""
        if self._ended or not chunk:
            return

        if self._consumer is not None:
            self._consumer.write(chunk)
            return

        if self.max_backlog_bytes <= 0:
            return

        self._backlog.append(chunk)
        self._backlog_bytes += len(chunk)
        # Drop oldest packets first
        while self._backlog_bytes > self.max_backlog_bytes and self._backlog:
            dropped = self._backlog.popleft()
            self._backlog_bytes -= len(dropped)

    def pipe(self, consumer: AudioConsumer):
        """
        Attach a consumer and flush the backlog into it.

        Raises:
            RuntimeError: if the source has ended or another consumer is attached
        """
        if self._ended:
            raise RuntimeError(f"Audio source for {self.speaker_id} has ended")
        if self._consumer is consumer:
            return
        if self._consumer is not None:
            raise RuntimeError(f"Audio source for {self.speaker_id} is already piped")

        self._consumer = consumer
        while self._backlog:
            consumer.write(self._backlog.popleft())
        self._backlog_bytes = 0

    def unpipe(self, consumer: Optional[AudioConsumer] = None) -> bool:
        """
        Detach the current consumer (or only `consumer`, if given).

        Returns:
            True if a consumer was detached
        """
        if self._consumer is None:
            return False
        if consumer is not None and self._consumer is not consumer:
            return False
        self._consumer = None
        return True

    def end(self):
        """Stop the source for good. Safe to call repeatedly."""
        if self._ended:
            return
        self._ended = True
        self._consumer = None
        self._backlog.clear()
        self._backlog_bytes = 0
        logger.debug(f"Audio source for {self.speaker_id} ended")
