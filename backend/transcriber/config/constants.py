"""
Application-wide constants for audio format and recognition tuning.

Environment-dependent settings (tokens, language, limits) belong in settings.py.
This file is for values fixed by the platform or the recognition engine.
"""

# ==============================================================================
# AUDIO CONFIGURATION (Discord voice receive format)
# ==============================================================================

# Sample rate of decoded voice packets (Hz)
AUDIO_SAMPLE_RATE: int = 48000

# Decoded packets are interleaved stereo
AUDIO_CHANNEL_COUNT: int = 2

# Bytes per sample (16-bit PCM = 2 bytes)
AUDIO_BYTES_PER_SAMPLE: int = 2

# Bytes per millisecond of audio (192 at 48kHz stereo)
AUDIO_BYTES_PER_MS: int = AUDIO_SAMPLE_RATE * AUDIO_CHANNEL_COUNT * AUDIO_BYTES_PER_SAMPLE // 1000

# ==============================================================================
# RECOGNITION ENGINE
# ==============================================================================

# Hard ceiling the engine enforces on a single streaming call (ms)
ENGINE_MAX_STREAMING_MS: int = 305000

# Rotation interval used when none is configured (ms)
DEFAULT_STREAMING_LIMIT_MS: int = 290000

# Domain vocabulary hints passed as a speech context
SPEECH_PHRASE_HINTS: tuple = (
    "cuz",
    "naw",
    "200s",
    "400s",
    "401s",
    "403s",
    "500s",
    "IDs",
)

# ==============================================================================
# TRANSCRIPT SINK
# ==============================================================================

# Discord rejects message content longer than this
MAX_MESSAGE_LENGTH: int = 2000

# Audit log reasons for webhook lifecycle
SINK_CREATE_REASON: str = "Voice channel transcription started"
SINK_DELETE_REASON: str = "Voice channel transcription ended"

# ==============================================================================
# COMMAND RESPONSES
# ==============================================================================

SUCCESS_RESPONSE: str = "✅"
FAILURE_PREFIX: str = "❌"
