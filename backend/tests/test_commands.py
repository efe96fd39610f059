from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from transcriber.api.commands import CommandGateway
from transcriber.services.session.exceptions import AlreadyActiveError, NotActiveError

pytestmark = pytest.mark.asyncio


def make_ctx(voice_channel=None, bot_channel=None):
    ctx = MagicMock()
    ctx.defer = AsyncMock()
    ctx.followup.send = AsyncMock()
    ctx.author.voice = SimpleNamespace(channel=voice_channel) if voice_channel else None
    ctx.guild.voice_client = SimpleNamespace(channel=bot_channel) if bot_channel else None
    return ctx


@pytest.fixture
def registry():
    registry = MagicMock()
    registry.start = AsyncMock()
    registry.stop = AsyncMock()
    return registry


@pytest.fixture
def gateway(registry):
    return CommandGateway(registry)


async def test_start_success(gateway, registry):
    channel = SimpleNamespace(id=10)
    ctx = make_ctx(voice_channel=channel)

    await gateway.respond(ctx, gateway.start_transcribing)

    ctx.defer.assert_awaited_once_with(ephemeral=True)
    registry.start.assert_awaited_once_with(10, channel, ctx.channel)
    ctx.followup.send.assert_awaited_once_with("✅", ephemeral=True)


async def test_start_requires_voice_channel(gateway, registry):
    ctx = make_ctx()

    await gateway.respond(ctx, gateway.start_transcribing)

    registry.start.assert_not_awaited()
    ctx.followup.send.assert_awaited_once_with("❌ Please join a voice channel", ephemeral=True)


async def test_start_already_active(gateway, registry):
    registry.start.side_effect = AlreadyActiveError()
    ctx = make_ctx(voice_channel=SimpleNamespace(id=10))

    await gateway.respond(ctx, gateway.start_transcribing)

    ctx.followup.send.assert_awaited_once_with("❌ Already transcribing this voice channel", ephemeral=True)


async def test_unexpected_error_reports_first_line(gateway, registry):
    registry.start.side_effect = RuntimeError("403 Forbidden\nMissing Permissions")
    ctx = make_ctx(voice_channel=SimpleNamespace(id=10))

    await gateway.respond(ctx, gateway.start_transcribing)

    ctx.followup.send.assert_awaited_once_with("❌ 403 Forbidden", ephemeral=True)


async def test_stop_uses_callers_channel(gateway, registry):
    ctx = make_ctx(voice_channel=SimpleNamespace(id=10), bot_channel=SimpleNamespace(id=99))

    await gateway.respond(ctx, gateway.stop_transcribing)

    registry.stop.assert_awaited_once_with(10)
    ctx.followup.send.assert_awaited_once_with("✅", ephemeral=True)


async def test_stop_falls_back_to_bot_channel(gateway, registry):
    """Caller already left voice: stop wherever the bot is connected."""
    ctx = make_ctx(bot_channel=SimpleNamespace(id=99))

    await gateway.respond(ctx, gateway.stop_transcribing)

    registry.stop.assert_awaited_once_with(99)


async def test_stop_when_not_active(gateway, registry):
    ctx = make_ctx()

    await gateway.respond(ctx, gateway.stop_transcribing)

    registry.stop.assert_not_awaited()
    ctx.followup.send.assert_awaited_once_with("❌ Not transcribing this voice channel", ephemeral=True)


async def test_stop_untracked_channel(gateway, registry):
    registry.stop.side_effect = NotActiveError()
    ctx = make_ctx(voice_channel=SimpleNamespace(id=10))

    await gateway.respond(ctx, gateway.stop_transcribing)

    ctx.followup.send.assert_awaited_once_with("❌ Not transcribing this voice channel", ephemeral=True)


async def test_register_adds_slash_commands(gateway):
    bot = MagicMock()

    gateway.register(bot)

    names = [call.kwargs["name"] for call in bot.slash_command.call_args_list]
    assert names == ["start", "stop"]
