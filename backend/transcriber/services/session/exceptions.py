"""
Transcription Session Exceptions

Custom exceptions for session lifecycle errors. Messages are shown to the
command caller, so keep the first line short and human readable.
"""


class TranscriptionSessionError(Exception):
    """Base exception for transcription session errors"""
    pass


class AlreadyActiveError(TranscriptionSessionError):
    """Raised when start is requested for a channel that is already tracked"""

    def __init__(self, message: str = "Already transcribing this voice channel"):
        super().__init__(message)


class NotActiveError(TranscriptionSessionError):
    """Raised when stop is requested for a channel that is not tracked"""

    def __init__(self, message: str = "Not transcribing this voice channel"):
        super().__init__(message)


class PreconditionFailedError(TranscriptionSessionError):
    """Raised when the caller is not in a voice channel"""

    def __init__(self, message: str = "Please join a voice channel"):
        super().__init__(message)


class EngineError(TranscriptionSessionError):
    """Error reported by the speech recognition engine. Logged, never propagated."""

    def __init__(self, code: int, message: str):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message

    @classmethod
    def from_exception(cls, exc: Exception) -> "EngineError":
        code = getattr(exc, "code", None)
        # google.api_core exceptions expose the HTTP-style status as .code
        code = code if isinstance(code, int) else -1
        return cls(code, str(exc).splitlines()[0] if str(exc) else type(exc).__name__)
