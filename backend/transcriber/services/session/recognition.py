"""
Recognition Session - one bounded streaming recognition call.

Audio written by the attached AudioSource is queued and fed to the engine as an
async iterator. Ending the session unpipes the source and half-closes the
request stream so the engine can flush pending results; if it has not finished
within the drain timeout the call is cancelled.

Flow:
    AudioSource.write → RecognitionSession.write → queue → engine
    engine results → handle_response → on_final(speaker, transcript)
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from transcriber.services.audio.source import AudioSource
from transcriber.services.connection.models import SpeakerIdentity
from transcriber.services.metrics import engine_errors, recognition_streams_gauge
from transcriber.services.protocols import SpeechClientProtocol
from transcriber.services.session.exceptions import EngineError

logger = logging.getLogger(__name__)


# Signature: (speaker, transcript) -> Awaitable[None]
FinalTranscriptCallback = Callable[[SpeakerIdentity, str], Awaitable[None]]


class RecognitionSession:
    """Wraps a single streaming call to the recognition engine."""

    def __init__(
        self,
        speech: SpeechClientProtocol,
        speaker: SpeakerIdentity,
        on_final: FinalTranscriptCallback,
        drain_timeout: float = 5.0,
        debug: bool = False,
    ):
        self.speaker = speaker
        self.created_at = time.monotonic()
        self._speech = speech
        self._on_final = on_final
        self._drain_timeout = drain_timeout
        self._debug = debug
        self._audio: asyncio.Queue = asyncio.Queue()
        self._source: Optional[AudioSource] = None
        self._task: Optional[asyncio.Task] = None
        self._abort_handle: Optional[asyncio.TimerHandle] = None
        self._ended = False
        self._broken = False

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def broken(self) -> bool:
        """True once the engine failed; audio is dropped until the owner replaces us."""
        return self._broken

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    @property
    def age(self) -> float:
        return time.monotonic() - self.created_at

    def _log_stream(self, message: str):
        if self._debug:
            logger.info(f"{self.speaker.display_name} {message}")
        else:
            logger.debug(f"{self.speaker.display_name} {message}")

    def start(self, source: AudioSource):
        """Open the engine stream and pipe the speaker's audio into it."""
        if self._task is not None or self._ended:
            raise RuntimeError("Recognition session can only be started once")

        self._log_stream("CREATE STREAM")
        source.pipe(self)
        self._source = source
        self._task = asyncio.create_task(
            self._run(),
            name=f"recognize:{self.speaker.speaker_id}"
        )
        self._task.add_done_callback(self._on_task_done)
        recognition_streams_gauge.inc()

    def write(self, chunk: bytes):
        """Queue audio for the engine (AudioConsumer interface)."""
        if self._ended or self._broken:
            return
        self._audio.put_nowait(chunk)

    def end(self):
        """Detach audio and half-close the stream. Safe to call repeatedly."""
        if self._ended:
            return
        self._ended = True
        self._log_stream("DESTROY STREAM")

        if self._source is not None:
            self._source.unpipe(self)
            self._source = None

        # Sentinel ends the request iterator
        self._audio.put_nowait(None)

        if self._task is not None:
            recognition_streams_gauge.dec()
            if not self._task.done():
                loop = asyncio.get_running_loop()
                self._abort_handle = loop.call_later(self._drain_timeout, self._abort)

    def add_done_callback(self, callback: Callable[["RecognitionSession"], Any]):
        """Invoke callback(self) once the engine call has fully finished."""
        if self._task is None or self._task.done():
            callback(self)
            return
        self._task.add_done_callback(lambda _t: callback(self))

    async def wait_closed(self):
        """Wait for the engine call to finish (never raises)."""
        if self._task is None:
            return
        await asyncio.wait([self._task])

    def _abort(self):
        self._abort_handle = None
        if self._task is not None and not self._task.done():
            logger.warning(
                f"Recognition stream for {self.speaker.display_name} did not drain "
                f"within {self._drain_timeout}s, cancelling"
            )
            self._task.cancel()

    def _on_task_done(self, task: asyncio.Task):
        if self._abort_handle is not None:
            self._abort_handle.cancel()
            self._abort_handle = None

    async def _audio_chunks(self):
        while True:
            chunk = await self._audio.get()
            if chunk is None:
                return
            yield chunk

    async def _run(self):
        try:
            responses = await self._speech.streaming_recognize(self._audio_chunks())
            async for response in responses:
                await self.handle_response(response)
        except asyncio.CancelledError:
            logger.debug(f"Recognition stream for {self.speaker.display_name} cancelled")
            raise
        except Exception as e:
            # Transport failures (deadline, 305s limit, network) end this stream only
            self._fail(EngineError.from_exception(e))

    def _fail(self, error: EngineError):
        engine_errors.inc()
        self._broken = True
        logger.error(f"❌ Recognition error for {self.speaker.display_name}: {error}")

    async def handle_response(self, response: Any):
        """Interpret one result event from the engine."""
        error = getattr(response, "error", None)
        if error is not None and getattr(error, "code", 0):
            # The engine closes the stream itself; the owner replaces us on rotation or stop
            engine_errors.inc()
            logger.error(
                f"❌ Recognition error for {self.speaker.display_name}: "
                f"{EngineError(error.code, error.message)}"
            )
            return

        for result in getattr(response, "results", None) or []:
            if not result.alternatives:
                continue

            transcript = result.alternatives[0].transcript.strip()

            if not result.is_final:
                if self._debug and transcript:
                    logger.info(f"📝 {self.speaker.display_name} (interim): {transcript}")
                continue

            if not transcript:
                continue

            logger.debug(f"✅ {self.speaker.display_name}: {transcript}")
            await self._on_final(self.speaker, transcript)
