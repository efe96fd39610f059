"""Business Logic Services.

This package contains the service modules that implement live transcription
of Discord voice channels.

Service Categories:
- Audio: per-speaker PCM sources
- Session: registry, channel, speaker and recognition session lifecycle
- Connection: Discord voice receive and transcript webhooks

External integrations:
- gcp: Google Cloud Speech streaming recognition
- metrics: Prometheus instrumentation
"""
