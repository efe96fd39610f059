"""
Voice State Router

Maps gateway voice-state updates onto the channel session that tracks the
channel being left.
"""
import logging
from typing import Optional

import discord

from transcriber.services.connection.models import ConnectionDropped, SpeakerLeft
from transcriber.services.session.registry import SessionRegistry

logger = logging.getLogger(__name__)


class VoiceStateRouter:
    """Delivers SpeakerLeft / ConnectionDropped events to channel sessions."""

    def __init__(self, registry: SessionRegistry, bot_user_id: Optional[int] = None):
        self.registry = registry
        self.bot_user_id = bot_user_id

    def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ):
        old_channel_id = before.channel.id if before.channel else None
        new_channel_id = after.channel.id if after.channel else None

        # Mute/deafen updates keep the same channel
        if old_channel_id == new_channel_id or old_channel_id is None:
            return

        session = self.registry.get(old_channel_id)
        if session is None:
            return

        if self.bot_user_id is not None and member.id == self.bot_user_id:
            logger.info(f"Bot left voice channel {old_channel_id}")
            session.submit(ConnectionDropped())
        else:
            session.submit(SpeakerLeft(speaker_id=member.id))
