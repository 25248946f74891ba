"""
Chat application configuration.

This app provides the chat system with:
- Private (1:1) and group chats
- Per-participant archive, mute and pin state
- Replies, forwards, reactions and per-viewer deletion
- Realtime fan-out of every state change
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
