import asyncio

import pytest

from transcriber.services.audio.source import AudioSource
from transcriber.services.connection.models import SpeakerIdentity
from transcriber.services.session.recognition import RecognitionSession
from tests.helpers import make_response, settle

pytestmark = pytest.mark.asyncio


def make_session(speech, finals, drain_timeout=0.5):
    async def on_final(speaker, text):
        finals.append((speaker.speaker_id, text))

    return RecognitionSession(
        speech=speech,
        speaker=SpeakerIdentity(speaker_id=7, display_name="Alice"),
        on_final=on_final,
        drain_timeout=drain_timeout,
    )


async def test_only_non_empty_final_results_are_forwarded(speech):
    """Interim and whitespace-only results never reach the sink; finals are trimmed."""
    finals = []
    source = AudioSource(7)
    recognition = make_session(speech, finals)

    recognition.start(source)
    source.write(b"pcm-1")
    await settle()

    stream = speech.streams[0]
    stream.emit(make_response("partial words", is_final=False))
    stream.emit(make_response("  hello world  ", is_final=True))
    stream.emit(make_response("   ", is_final=True))
    stream.emit(make_response(None))

    recognition.end()
    await recognition.wait_closed()

    assert finals == [(7, "hello world")]
    assert stream.audio == [b"pcm-1"]
    assert stream.half_closed


async def test_end_detaches_audio_and_is_idempotent(speech):
    source = AudioSource(7)
    recognition = make_session(speech, [])

    recognition.start(source)
    assert source.consumer is recognition

    recognition.end()
    recognition.end()

    assert recognition.ended
    assert source.consumer is None
    assert not source.ended

    await recognition.wait_closed()
    assert recognition.task.done()


async def test_results_delivered_before_close_are_flushed(speech):
    """A final result that arrives while draining is still forwarded."""
    finals = []
    source = AudioSource(7)
    recognition = make_session(speech, finals)

    recognition.start(source)
    await settle()

    recognition.end()
    speech.streams[0].emit(make_response("last words"))
    await recognition.wait_closed()

    assert finals == [(7, "last words")]


async def test_error_event_is_not_forwarded(speech):
    finals = []
    source = AudioSource(7)
    recognition = make_session(speech, finals)

    recognition.start(source)
    await settle()

    speech.streams[0].emit(make_response(None, error_code=11, error_message="Exceeded maximum allowed stream duration"))
    recognition.end()
    await recognition.wait_closed()

    assert finals == []
    assert recognition.task.exception() is None


async def test_engine_failure_marks_session_broken(speech):
    """Transport errors end this stream only and never propagate."""
    speech.fail_with = RuntimeError("deadline exceeded")
    source = AudioSource(7)
    recognition = make_session(speech, [])

    recognition.start(source)
    await recognition.wait_closed()

    assert recognition.broken
    assert recognition.task.exception() is None

    # Audio is dropped until the owner replaces the session
    source.write(b"ignored")
    recognition.end()


async def test_stream_failure_mid_call(speech):
    finals = []
    source = AudioSource(7)
    recognition = make_session(speech, finals)

    recognition.start(source)
    await settle()

    speech.streams[0].emit(make_response("before failure"))
    speech.streams[0].fail(RuntimeError("connection reset"))
    await recognition.wait_closed()

    assert finals == [(7, "before failure")]
    assert recognition.broken
    recognition.end()


async def test_hung_stream_is_cancelled_after_drain_timeout(speech):
    speech.hang = True
    source = AudioSource(7)
    recognition = make_session(speech, [], drain_timeout=0.05)

    recognition.start(source)
    await settle()

    recognition.end()
    await asyncio.wait_for(recognition.wait_closed(), timeout=2)

    assert recognition.task.cancelled()


async def test_start_twice_raises(speech):
    source = AudioSource(7)
    recognition = make_session(speech, [])
    recognition.start(source)

    with pytest.raises(RuntimeError):
        recognition.start(source)

    recognition.end()
    await recognition.wait_closed()


async def test_done_callback_runs_immediately_when_never_started(speech):
    recognition = make_session(speech, [])
    seen = []

    recognition.add_done_callback(seen.append)

    assert seen == [recognition]
