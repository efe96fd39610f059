from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from transcriber.config.constants import DEFAULT_STREAMING_LIMIT_MS, ENGINE_MAX_STREAMING_MS


class Settings(BaseSettings):
    # Discord
    DISCORD_TOKEN: str | None = Field(None)
    DEBUG_GUILDS: List[int] = Field(default_factory=list)

    # Google Cloud
    GOOGLE_APPLICATION_CREDENTIALS: str | None = Field(None)

    # Speech recognition
    SPEECH_LANG: str = Field("en-US")
    GOOGLE_SPEECH_MODEL: str = Field("default")
    GOOGLE_SPEECH_USE_ENHANCED_MODEL: bool = Field(False)
    STREAMING_LIMIT_MS: int = Field(DEFAULT_STREAMING_LIMIT_MS)
    RECOGNITION_DRAIN_TIMEOUT_SEC: float = Field(5.0)

    # Voice receive
    SPEAKING_RELEASE_MS: int = Field(250)
    AUDIO_BACKLOG_MS: int = Field(1000)

    # Transcript sink
    TRANSCRIPT_SINK_NAME: str = Field("Transcriber")

    # App
    DEBUG_STREAMS: bool = Field(False)
    LOG_LEVEL: str = Field("INFO")
    METRICS_PORT: int | None = Field(None)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_file_encoding="utf-8"
    )

    @field_validator("STREAMING_LIMIT_MS")
    @classmethod
    def _below_engine_ceiling(cls, value: int) -> int:
        if value <= 0 or value >= ENGINE_MAX_STREAMING_MS:
            raise ValueError(
                f"STREAMING_LIMIT_MS must be between 0 and {ENGINE_MAX_STREAMING_MS} (exclusive)"
            )
        return value

    @property
    def streaming_limit_seconds(self) -> float:
        return self.STREAMING_LIMIT_MS / 1000.0

    @property
    def speaking_release_seconds(self) -> float:
        return self.SPEAKING_RELEASE_MS / 1000.0


settings = Settings()
