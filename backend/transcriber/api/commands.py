"""
Slash Commands

/start and /stop. Both defer with an ephemeral acknowledgement right away,
run the registry operation, then report ✅ or ❌ with the first line of the
failure.
"""
import logging
from typing import Awaitable, Callable

import discord

from transcriber.config.constants import FAILURE_PREFIX, SUCCESS_RESPONSE
from transcriber.services.session.exceptions import (
    NotActiveError,
    PreconditionFailedError,
    TranscriptionSessionError,
)
from transcriber.services.session.registry import SessionRegistry

logger = logging.getLogger(__name__)


CommandOperation = Callable[[discord.ApplicationContext], Awaitable[None]]


class CommandGateway:
    """Translates slash commands into SessionRegistry operations."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def register(self, bot: discord.Bot):
        @bot.slash_command(name="start", description="Join your voice channel and begin transcribing")
        async def start(ctx: discord.ApplicationContext):
            await self.respond(ctx, self.start_transcribing)

        @bot.slash_command(name="stop", description="Stop transcribing and leave the voice channel")
        async def stop(ctx: discord.ApplicationContext):
            await self.respond(ctx, self.stop_transcribing)

    async def respond(self, ctx: discord.ApplicationContext, operation: CommandOperation):
        await ctx.defer(ephemeral=True)

        try:
            await operation(ctx)
            content = SUCCESS_RESPONSE
        except TranscriptionSessionError as e:
            content = self._failure(e)
        except Exception as e:
            logger.exception(f"Command /{ctx.command.name if ctx.command else '?'} failed")
            content = self._failure(e)

        await ctx.followup.send(content, ephemeral=True)

    async def start_transcribing(self, ctx: discord.ApplicationContext):
        voice = getattr(ctx.author, "voice", None)
        if voice is None or voice.channel is None:
            raise PreconditionFailedError()

        channel = voice.channel
        await self.registry.start(channel.id, channel, ctx.channel)

    async def stop_transcribing(self, ctx: discord.ApplicationContext):
        voice = getattr(ctx.author, "voice", None)
        if voice is not None and voice.channel is not None:
            channel_id = voice.channel.id
        else:
            # Caller already left; fall back to wherever the bot is in this guild
            voice_client = ctx.guild.voice_client if ctx.guild else None
            if voice_client is None or voice_client.channel is None:
                raise NotActiveError()
            channel_id = voice_client.channel.id

        await self.registry.stop(channel_id)

    @staticmethod
    def _failure(error: Exception) -> str:
        message = str(error).split("\n")[0] or type(error).__name__
        return f"{FAILURE_PREFIX} {message}"
