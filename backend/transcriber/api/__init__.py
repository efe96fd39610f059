"""
Discord-facing surface: slash commands and gateway event routing.
"""
from .commands import CommandGateway
from .events import VoiceStateRouter

__all__ = ["CommandGateway", "VoiceStateRouter"]
