"""
Webhook Transcript Sink

Final transcripts are posted through a channel webhook so each line shows
the speaker's name and avatar.
"""
import logging

import discord

from transcriber.config.constants import MAX_MESSAGE_LENGTH
from transcriber.services.connection.models import SpeakerIdentity

logger = logging.getLogger(__name__)


class WebhookTranscriptSink:
    """Posts transcripts as the speaker (TranscriptSinkProtocol)."""

    def __init__(self, webhook: discord.Webhook):
        self.webhook = webhook

    async def send(self, text: str, speaker: SpeakerIdentity):
        await self.webhook.send(
            content=text[:MAX_MESSAGE_LENGTH],
            username=speaker.display_name,
            avatar_url=speaker.avatar_url,
            allowed_mentions=discord.AllowedMentions.none(),
        )

    async def delete(self, reason: str):
        await self.webhook.delete(reason=reason)
        logger.info(f"Deleted transcript webhook {self.webhook.name}")


class WebhookSinkFactory:
    """Creates transcript webhooks (TranscriptSinkFactoryProtocol)."""

    async def create(self, owner: discord.abc.GuildChannel, name: str, reason: str) -> WebhookTranscriptSink:
        webhook = await owner.create_webhook(name=name, reason=reason)
        logger.info(f"Created transcript webhook '{name}' in #{owner.name}")
        return WebhookTranscriptSink(webhook)
