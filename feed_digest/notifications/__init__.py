"""Outbound notifications for new articles."""

from .discord import DiscordNotifier

__all__ = ["DiscordNotifier"]
