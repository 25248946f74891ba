"""
Chat system models.

This module defines the data models for the chat system supporting:
- Private chats between exactly two users
- Group chats with one or more participants

Models:
    Chat: Container for messages between participants
    ChatParticipant: Membership edge carrying the per-user chat state
                     (archived, muted/muted_until, pinned)
    Message: Individual message within a chat
    MessageHiddenForUser: Per-viewer "delete for me" marker
    MessageReaction: Emoji reaction, unique per (message, user, emoji)
    MessageRead: Read marker, unique per (message, user)

Design Decisions:
    - Participant state lives on the membership row so that one participant's
      flags never leak into another participant's view of the same chat
    - Message content is immutable; the two deletion flags only go false -> true
    - Hiding a message "for me" is per viewer (MessageHiddenForUser); hiding
      "for everyone" is the shared deleted_for_all flag
    - reply_to / forwarded_from are links, not ownership (SET_NULL)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel
from chat.state import is_effectively_muted


class ChatKind(models.TextChoices):
    """
    Kind of chat.

    PRIVATE: Exactly two participants
    GROUP: One or more participants, named
    """

    PRIVATE = "private", "Private"
    GROUP = "group", "Group"


class MessageType(models.TextChoices):
    """Type of message content. Everything except TEXT carries a blob reference."""

    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    FILE = "file", "File"
    VOICE = "voice", "Voice"
    DOCUMENT = "document", "Document"
    AUDIO = "audio", "Audio"


class DeleteScope(models.TextChoices):
    """Scope of a message deletion request."""

    FOR_ME = "for_me", "For me"
    FOR_EVERYONE = "for_everyone", "For everyone"


class Chat(BaseModel):
    """
    A private or group chat.

    Fields:
        kind: private or group
        name: Display name (groups; private chats show the other participant)
        avatar: Optional avatar reference
        created_by: User who created the chat (kept as NULL if deleted)
        last_message: Latest message, shown as the list preview
        last_activity_at: Time of the most recent message, for list ordering
        participants: Users linked through ChatParticipant
    """

    kind = models.CharField(
        max_length=10,
        choices=ChatKind.choices,
        default=ChatKind.PRIVATE,
        help_text="Private (two users) or group chat",
    )
    name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Group display name",
    )
    avatar = models.CharField(
        max_length=500,
        blank=True,
        help_text="Avatar reference (URL or storage key)",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_chats",
        help_text="User who created the chat",
    )
    last_message = models.ForeignKey(
        "Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message, for list previews",
    )
    last_activity_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Timestamp of the latest message (or creation)",
    )
    participants = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="ChatParticipant",
        related_name="chats",
        help_text="Users participating in this chat",
    )

    class Meta:
        db_table = "chat_chat"
        ordering = ["-last_activity_at", "-id"]

    def __str__(self) -> str:
        if self.kind == ChatKind.GROUP and self.name:
            return f"Group: {self.name}"
        return f"{self.get_kind_display()}({self.pk})"

    @property
    def is_private(self) -> bool:
        return self.kind == ChatKind.PRIVATE


class ChatParticipant(BaseModel):
    """
    Membership of a user in a chat, plus that user's own chat state.

    Removing a participant deletes this row; the chat and its messages stay.

    Fields:
        is_archived: Hidden from the user's default chat list
        is_muted / muted_until: Stored mute flag and optional expiry
            (None = indefinite). Read it through is_muted_now.
        is_pinned / pinned_at: Pinned to the top of the user's list
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="memberships",
        help_text="Chat this membership belongs to",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_memberships",
        help_text="Participating user",
    )
    joined_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the user joined the chat",
    )
    is_archived = models.BooleanField(default=False)
    is_muted = models.BooleanField(default=False)
    muted_until = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Mute expiry; NULL means muted indefinitely",
    )
    is_pinned = models.BooleanField(default=False)
    pinned_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "chat_participant"
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["chat", "user"],
                name="unique_chat_participant",
            ),
        ]
        indexes = [
            models.Index(
                fields=["user", "is_archived"],
                name="chat_part_user_archived_idx",
            ),
            models.Index(
                fields=["user", "is_pinned"],
                name="chat_part_user_pinned_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Participant(chat={self.chat_id}, user={self.user_id})"

    @property
    def is_muted_now(self) -> bool:
        """Effective mute state, accounting for expiry."""
        return is_effectively_muted(self.is_muted, self.muted_until, timezone.now())


class Message(BaseModel):
    """
    A message within a chat.

    Lifecycle:
        Active -> deleted_for_sender and/or deleted_for_all. Both flags are
        monotonic. deleted_for_all hides the message for every participant.
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Chat this message belongs to",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_messages",
        help_text="User who sent the message",
    )
    content = models.TextField(
        blank=True,
        help_text="Message text (caption for non-text messages)",
    )
    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
    )
    blob_ref = models.CharField(
        max_length=500,
        blank=True,
        help_text="Opaque reference to attached binary content",
    )
    reply_to = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="replies",
        help_text="Message this one replies to (same chat)",
    )
    forwarded_from = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="forwards",
        help_text="Original message this one was forwarded from",
    )
    deleted_for_sender = models.BooleanField(
        default=False,
        help_text="Sender removed the message from their own view",
    )
    deleted_for_all = models.BooleanField(
        default=False,
        help_text="Message removed for every participant",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["chat", "created_at", "id"],
                name="chat_msg_chat_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Message({self.pk}) in chat {self.chat_id}"


class MessageHiddenForUser(BaseModel):
    """Marks a message as deleted for a single viewer ("delete for me")."""

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="hidden_for",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="hidden_messages",
    )

    class Meta:
        db_table = "chat_message_hidden"
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_message_hidden_for_user",
            ),
        ]

    def __str__(self) -> str:
        return f"Hidden(message={self.message_id}, user={self.user_id})"


class MessageReaction(BaseModel):
    """An emoji reaction. A user may hold several per message, one per emoji."""

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="reactions",
        help_text="Message this reaction belongs to",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="message_reactions",
        help_text="User who reacted",
    )
    emoji = models.CharField(
        max_length=8,
        help_text="Emoji from the reaction allowlist",
    )

    class Meta:
        db_table = "chat_message_reaction"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user", "emoji"],
                name="unique_message_user_emoji",
            ),
        ]

    def __str__(self) -> str:
        return f"Reaction({self.emoji}) by {self.user_id} on {self.message_id}"


class MessageRead(BaseModel):
    """Records that a user has seen a message."""

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="reads",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="message_reads",
    )
    read_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_message_read"
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_message_read",
            ),
        ]

    def __str__(self) -> str:
        return f"Read(message={self.message_id}, user={self.user_id})"
