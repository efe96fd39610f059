"""
GCP Services Package

Exports the streaming speech service.
"""

from transcriber.services.gcp.speech import GCPSpeechService

__all__ = [
    "GCPSpeechService",
]
