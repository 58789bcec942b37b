"""Outbound notifications about answered questions."""

from aposbot.notifications.slack import SlackConversationLogger

__all__ = ["SlackConversationLogger"]
