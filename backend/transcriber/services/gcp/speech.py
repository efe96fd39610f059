"""
GCP Speech Service

Handles Google Cloud Speech-to-Text streaming recognition.
"""

import logging
import os
from typing import AsyncIterable, AsyncIterator, Optional

from google.cloud import speech

from transcriber.config.constants import (
    AUDIO_CHANNEL_COUNT,
    AUDIO_SAMPLE_RATE,
    SPEECH_PHRASE_HINTS,
)
from transcriber.config.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class GCPSpeechService:
    """Opens streaming recognition calls with the fixed voice-channel configuration."""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self._ensure_credentials()
        self._client: Optional[speech.SpeechAsyncClient] = None
        self._streaming_config = self.build_streaming_config()

    def _ensure_credentials(self):
        """Ensure Google credentials are set in environment."""
        creds_path = self._settings.GOOGLE_APPLICATION_CREDENTIALS
        if creds_path and "GOOGLE_APPLICATION_CREDENTIALS" not in os.environ:
            creds_path = os.path.abspath(os.path.expanduser(creds_path))
            if not os.path.exists(creds_path):
                logger.warning(f"Google credentials file not found: {creds_path}")
            os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = creds_path

    @property
    def streaming_config(self) -> speech.StreamingRecognitionConfig:
        return self._streaming_config

    def build_streaming_config(self) -> speech.StreamingRecognitionConfig:
        """Recognition config for Discord voice: 48kHz stereo LINEAR16 with interim results."""
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            audio_channel_count=AUDIO_CHANNEL_COUNT,
            sample_rate_hertz=AUDIO_SAMPLE_RATE,
            enable_automatic_punctuation=True,
            language_code=self._settings.SPEECH_LANG,
            model=self._settings.GOOGLE_SPEECH_MODEL,
            use_enhanced=self._settings.GOOGLE_SPEECH_USE_ENHANCED_MODEL,
            speech_contexts=[speech.SpeechContext(phrases=list(SPEECH_PHRASE_HINTS))],
        )

        return speech.StreamingRecognitionConfig(
            config=config,
            interim_results=True
        )

    def _get_client(self) -> speech.SpeechAsyncClient:
        # Created lazily so the gRPC channel binds to the running event loop
        if self._client is None:
            self._client = speech.SpeechAsyncClient()
        return self._client

    async def streaming_recognize(
        self,
        audio_chunks: AsyncIterator[bytes],
    ) -> AsyncIterable[speech.StreamingRecognizeResponse]:
        """
        Open a streaming recognition call fed from an async audio iterator.

        Args:
            audio_chunks: Async iterator that yields PCM chunks. When it is
                          exhausted the request stream is half-closed.

        Returns:
            Async iterable of StreamingRecognizeResponse.
        """
        streaming_config = self._streaming_config

        # Generator to yield StreamingRecognizeRequest; config goes first
        async def request_generator():
            yield speech.StreamingRecognizeRequest(streaming_config=streaming_config)
            async for chunk in audio_chunks:
                yield speech.StreamingRecognizeRequest(audio_content=chunk)

        return await self._get_client().streaming_recognize(requests=request_generator())
