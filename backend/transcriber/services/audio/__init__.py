"""
Audio Module

- AudioSource: per-speaker PCM stream that recognition sessions are piped from

Usage:
    from transcriber.services.audio import AudioSource
"""

from transcriber.services.audio.source import AudioSource, AudioConsumer

__all__ = [
    "AudioSource",
    "AudioConsumer",
]
