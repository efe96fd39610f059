"""Fakes for the voice platform, speech engine and transcript sink."""
import asyncio
from types import SimpleNamespace

from transcriber.services.audio.source import AudioSource
from transcriber.services.connection.models import SpeakerIdentity


async def settle(rounds: int = 10):
    """Let scheduled tasks and callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_response(transcript: str = "", is_final: bool = True, error_code: int = 0, error_message: str = ""):
    """Build a response shaped like StreamingRecognizeResponse."""
    error = SimpleNamespace(code=error_code, message=error_message) if error_code else None
    results = []
    if transcript is not None:
        results.append(SimpleNamespace(
            is_final=is_final,
            alternatives=[SimpleNamespace(transcript=transcript)],
        ))
    return SimpleNamespace(error=error, results=results)


class FakeStream:
    """
    One fake streaming call. Consumes audio like the engine would and ends its
    response stream once the audio iterator is exhausted (unless hung).
    """

    def __init__(self, audio_chunks, hang: bool = False):
        self.audio = []
        self.half_closed = False
        self._hang = hang
        self._responses: asyncio.Queue = asyncio.Queue()
        self._reader = asyncio.create_task(self._read(audio_chunks))

    async def _read(self, audio_chunks):
        async for chunk in audio_chunks:
            self.audio.append(chunk)
        self.half_closed = True
        if not self._hang:
            self._responses.put_nowait(None)

    def emit(self, response):
        self._responses.put_nowait(response)

    def fail(self, error: Exception):
        self._responses.put_nowait(error)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._responses.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item


class FakeSpeechClient:
    def __init__(self):
        self.streams = []
        self.fail_with = None
        self.hang = False

    async def streaming_recognize(self, audio_chunks):
        if self.fail_with is not None:
            raise self.fail_with
        stream = FakeStream(audio_chunks, hang=self.hang)
        self.streams.append(stream)
        return stream


class FakeConnection:
    def __init__(self, channel_id: int, log=None):
        self.channel_id = channel_id
        self.connected = True
        self.listener = None
        self.listen_error = None
        self.sources = {}
        self.forgotten = []
        self.disconnect_calls = 0
        self._log = log if log is not None else []

    def listen(self, listener):
        if self.listen_error is not None:
            raise self.listen_error
        self.listener = listener

    def create_audio_source(self, speaker_id: int) -> AudioSource:
        source = self.sources.get(speaker_id)
        if source is None or source.ended:
            source = AudioSource(speaker_id)
            self.sources[speaker_id] = source
        return source

    async def resolve_speaker(self, speaker_id: int) -> SpeakerIdentity:
        return SpeakerIdentity(speaker_id=speaker_id, display_name=f"user-{speaker_id}")

    def forget_speaker(self, speaker_id: int):
        self.forgotten.append(speaker_id)
        source = self.sources.pop(speaker_id, None)
        if source is not None:
            source.end()

    def is_connected(self) -> bool:
        return self.connected

    async def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False
        self._log.append("disconnected")


class FakePlatform:
    def __init__(self):
        self.connections = []
        self.gate = None
        self.join_error = None
        self.listen_error = None

    async def join(self, channel):
        if self.gate is not None:
            await self.gate.wait()
        if self.join_error is not None:
            raise self.join_error
        connection = FakeConnection(channel.id)
        connection.listen_error = self.listen_error
        self.connections.append(connection)
        return connection


class FakeSink:
    def __init__(self, log=None):
        self.sent = []
        self.deleted_reason = None
        self.delete_calls = 0
        self.fail_send = False
        self.delete_gate = None
        self._log = log if log is not None else []

    async def send(self, text: str, speaker: SpeakerIdentity):
        if self.fail_send:
            raise RuntimeError("webhook unavailable")
        self.sent.append((text, speaker.display_name))

    async def delete(self, reason: str):
        if self.delete_gate is not None:
            await self.delete_gate.wait()
        self.delete_calls += 1
        self.deleted_reason = reason
        self._log.append("sink_deleted")


class FakeSinkFactory:
    def __init__(self):
        self.sinks = []
        self.calls = []
        self.error = None

    async def create(self, owner, name: str, reason: str):
        self.calls.append((owner, name, reason))
        if self.error is not None:
            raise self.error
        sink = FakeSink()
        self.sinks.append(sink)
        return sink
