import sys
from pathlib import Path

import pytest

# Add backend/ (1 level up from tests/) to sys.path so tests can import 'transcriber'
root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from transcriber.config.settings import Settings
from tests.helpers import FakePlatform, FakeSinkFactory, FakeSpeechClient


@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        STREAMING_LIMIT_MS=60000,
        RECOGNITION_DRAIN_TIMEOUT_SEC=0.5,
        TRANSCRIPT_SINK_NAME="Transcriber",
    )


@pytest.fixture
def speech():
    return FakeSpeechClient()


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def sink_factory():
    return FakeSinkFactory()
