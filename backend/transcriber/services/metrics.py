"""Prometheus metrics instrumentation for transcription sessions.

Exposes gauges for live channel and recognition sessions plus counters for
stream rotations, forwarded transcripts and recognition engine errors.
Metrics are exposed via HTTP when METRICS_PORT is configured.

Metrics exported:
- transcriber_channel_sessions: Gauge of channels currently being transcribed
- transcriber_recognition_streams: Gauge of open recognition streams
- transcriber_stream_rotations_total: Counter of streams replaced at the duration limit
- transcriber_transcripts_total: Counter of final transcripts by outcome
- transcriber_engine_errors_total: Counter of recognition engine errors

Usage:
    from transcriber.services.metrics import start_metrics_server, transcripts_total

    start_metrics_server(port=8001)
    transcripts_total.labels(outcome='sent').inc()
"""

from prometheus_client import Counter, Gauge, start_http_server
import logging

logger = logging.getLogger(__name__)

# Channel sessions held by the registry
channel_sessions_gauge = Gauge(
    'transcriber_channel_sessions',
    'Number of voice channels currently being transcribed'
)

# Recognition streams that still accept audio
recognition_streams_gauge = Gauge(
    'transcriber_recognition_streams',
    'Number of open streaming recognition calls'
)

stream_rotations = Counter(
    'transcriber_stream_rotations_total',
    'Recognition streams replaced before hitting the engine duration limit'
)

transcripts_total = Counter(
    'transcriber_transcripts_total',
    'Final transcripts handed to the transcript sink',
    labelnames=['outcome']  # outcome: sent, failed, dropped
)

engine_errors = Counter(
    'transcriber_engine_errors_total',
    'Errors reported by the speech recognition engine'
)


def start_metrics_server(port: int = 8001):
    """Start Prometheus metrics HTTP server."""
    try:
        start_http_server(port)
        logger.info(f"✅ Metrics server started on port {port}")
    except Exception as e:
        logger.error(f"❌ Failed to start metrics server: {e}")
