"""
Voice Channel Transcriber - Main Application

This is the entry point for the Discord bot.
It handles:
- Slash commands (/start, /stop) for joining and leaving voice channels
- Voice state events that cascade session teardown
- Streaming transcription of every speaker into a channel webhook

Usage:
    python -m transcriber.main
"""
import asyncio
import logging
from typing import Optional

import discord

from transcriber.api.commands import CommandGateway
from transcriber.api.events import VoiceStateRouter
from transcriber.config.settings import Settings, settings as default_settings
from transcriber.services.connection.voice import DiscordVoicePlatform
from transcriber.services.connection.webhook import WebhookSinkFactory
from transcriber.services.gcp.speech import GCPSpeechService
from transcriber.services.metrics import start_metrics_server
from transcriber.services.session.registry import SessionRegistry

logger = logging.getLogger(__name__)


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict):
    exc = context.get("exception")
    logger.error(f"Unhandled error in event loop: {context.get('message')}", exc_info=exc)


class TranscriberBot(discord.Bot):
    """py-cord bot wired to a SessionRegistry."""

    def __init__(self, settings: Settings, registry: Optional[SessionRegistry] = None):
        intents = discord.Intents.default()
        intents.voice_states = True
        super().__init__(intents=intents, debug_guilds=settings.DEBUG_GUILDS or None)

        self.registry = registry or SessionRegistry(
            platform=DiscordVoicePlatform(settings),
            sink_factory=WebhookSinkFactory(),
            speech=GCPSpeechService(settings),
            settings=settings,
        )
        self.router = VoiceStateRouter(self.registry)
        self.gateway = CommandGateway(self.registry)
        self.gateway.register(self)

    async def on_ready(self):
        asyncio.get_running_loop().set_exception_handler(_log_loop_exception)
        self.router.bot_user_id = self.user.id
        logger.info(f"🚀 Ready as {self.user} in {len(self.guilds)} guild(s)")

    async def on_voice_state_update(self, member, before, after):
        self.router.on_voice_state_update(member, before, after)

    async def close(self):
        logger.info("🛑 Shutting down...")
        await self.registry.shutdown()
        await super().close()


def create_bot(settings: Settings = default_settings) -> TranscriberBot:
    return TranscriberBot(settings)


def main():
    settings = default_settings

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not settings.DISCORD_TOKEN:
        raise SystemExit("DISCORD_TOKEN is not set")

    if settings.METRICS_PORT:
        start_metrics_server(settings.METRICS_PORT)

    bot = create_bot(settings)
    bot.run(settings.DISCORD_TOKEN)


if __name__ == "__main__":
    main()
