"""
Serializers for chat API.

This module provides serializers for the chat system:
- Chat serializers (summary, per-user list/detail, create)
- Message serializers (read, create, delete, forward)
- Reaction and search result serializers
- Small request serializers that build service commands

Serializer Hierarchy:
    ChatSummarySerializer: Viewer-neutral chat snapshot (events)
    ChatListSerializer: A ChatParticipant row rendered as the caller's chat
    ChatCreateSerializer: Private/group chat creation

    MessageSerializer: Message with sender, reply preview and reaction counts
    MessageCreateSerializer: Send new message (incl. reply)
    MessagePreviewSerializer: Minimal message for list preview

Design Decisions:
    - Read and write serializers are separate for clarity
    - Write serializers only check request shape and build a command;
      business rules live in chat.services
    - Content of messages deleted for everyone is never rendered
    - Mute state is always the effective state (expiry applied on read)
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from chat.commands import (
    CreateChatCommand,
    ExportCommand,
    ForwardManyCommand,
    ForwardMessageCommand,
    MuteChatCommand,
    SearchCommand,
    SendMessageCommand,
)
from chat.constants import MESSAGE_CONFIG, REACTION_CONFIG
from chat.models import (
    Chat,
    ChatKind,
    ChatParticipant,
    DeleteScope,
    Message,
    MessageReaction,
    MessageType,
)

__all__ = [
    "UserSummarySerializer",
    "MessagePreviewSerializer",
    "MessageSerializer",
    "MessageCreateSerializer",
    "MessageDeleteSerializer",
    "ForwardMessageSerializer",
    "ForwardMultipleSerializer",
    "MessageReactionSerializer",
    "ReactionWriteSerializer",
    "SearchQuerySerializer",
    "SearchResultSerializer",
    "ChatSummarySerializer",
    "ChatListSerializer",
    "ChatCreateSerializer",
    "MuteChatSerializer",
    "ParticipantIdsSerializer",
    "PresenceSerializer",
    "ExportQuerySerializer",
]


# =============================================================================
# Message Serializers
# =============================================================================


class MessagePreviewSerializer(serializers.ModelSerializer):
    """
    Minimal message serializer for chat list previews and reply quotes.

    Content is null once the message is deleted for everyone.
    """

    sender = UserSummarySerializer(read_only=True)
    content = serializers.SerializerMethodField()
    is_deleted = serializers.BooleanField(source="deleted_for_all", read_only=True)

    class Meta:
        model = Message
        fields = ["id", "sender", "content", "message_type", "is_deleted", "created_at"]
        read_only_fields = fields

    def get_content(self, obj: Message) -> str | None:
        return None if obj.deleted_for_all else obj.content


class MessageSerializer(serializers.ModelSerializer):
    """
    Full message representation.

    Used for list/detail responses and as the message.sent event payload.
    """

    chat_id = serializers.IntegerField(read_only=True)
    sender = UserSummarySerializer(read_only=True)
    reply_to = MessagePreviewSerializer(read_only=True)
    forwarded_from_id = serializers.IntegerField(read_only=True, allow_null=True)
    is_forwarded = serializers.SerializerMethodField()
    reactions = serializers.SerializerMethodField(
        help_text="Reaction counts keyed by emoji"
    )

    class Meta:
        model = Message
        fields = [
            "id",
            "chat_id",
            "sender",
            "content",
            "message_type",
            "blob_ref",
            "reply_to",
            "forwarded_from_id",
            "is_forwarded",
            "reactions",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_is_forwarded(self, obj: Message) -> bool:
        return obj.forwarded_from_id is not None

    def get_reactions(self, obj: Message) -> dict[str, int]:
        counts: dict[str, int] = {}
        for reaction in obj.reactions.all():
            counts[reaction.emoji] = counts.get(reaction.emoji, 0) + 1
        return counts


class MessageCreateSerializer(serializers.Serializer):
    """Request body for POST /chats/{id}/messages/."""

    content = serializers.CharField(
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
        allow_blank=True,
        trim_whitespace=False,
        default="",
    )
    message_type = serializers.ChoiceField(
        choices=MessageType.choices,
        default=MessageType.TEXT,
    )
    blob_ref = serializers.CharField(
        max_length=MESSAGE_CONFIG.MAX_BLOB_REF_LENGTH,
        allow_blank=True,
        default="",
    )
    reply_to_id = serializers.IntegerField(required=False, allow_null=True)

    def to_command(self, chat_id: int) -> SendMessageCommand:
        data = self.validated_data
        return SendMessageCommand(
            chat_id=chat_id,
            content=data["content"],
            message_type=data["message_type"],
            blob_ref=data["blob_ref"],
            reply_to_id=data.get("reply_to_id"),
        )


class MessageDeleteSerializer(serializers.Serializer):
    delete_type = serializers.ChoiceField(
        choices=DeleteScope.choices,
        default=DeleteScope.FOR_ME,
    )


class ForwardMessageSerializer(serializers.Serializer):
    chat_id = serializers.IntegerField()

    def to_command(self, message_id: int) -> ForwardMessageCommand:
        return ForwardMessageCommand(
            message_id=message_id,
            target_chat_id=self.validated_data["chat_id"],
        )


class ForwardMultipleSerializer(serializers.Serializer):
    message_ids = serializers.ListField(
        child=serializers.IntegerField(),
        min_length=1,
        max_length=MESSAGE_CONFIG.MAX_FORWARD_BATCH,
    )
    chat_id = serializers.IntegerField()

    def to_command(self) -> ForwardManyCommand:
        return ForwardManyCommand(
            message_ids=tuple(self.validated_data["message_ids"]),
            target_chat_id=self.validated_data["chat_id"],
        )


# =============================================================================
# Reaction Serializers
# =============================================================================


class MessageReactionSerializer(serializers.ModelSerializer):
    message_id = serializers.IntegerField(read_only=True)
    chat_id = serializers.IntegerField(source="message.chat_id", read_only=True)
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = MessageReaction
        fields = ["id", "message_id", "chat_id", "user", "emoji", "created_at"]
        read_only_fields = fields


class ReactionWriteSerializer(serializers.Serializer):
    """
    Emoji for add/update.

    Allowlist membership is checked by ReactionService so that it is reported
    as INVALID_EMOJI.
    """

    emoji = serializers.CharField(
        max_length=REACTION_CONFIG.MAX_EMOJI_LENGTH * 4,
        trim_whitespace=True,
    )


# =============================================================================
# Search Serializers
# =============================================================================


class SearchQuerySerializer(serializers.Serializer):
    """Query parameters for GET /messages/search/."""

    q = serializers.CharField(allow_blank=True)
    chat_id = serializers.IntegerField(required=False)
    page = serializers.IntegerField(min_value=1, default=1)
    per_page = serializers.IntegerField(
        min_value=1,
        max_value=MESSAGE_CONFIG.SEARCH_MAX_PAGE_SIZE,
        default=MESSAGE_CONFIG.SEARCH_DEFAULT_PAGE_SIZE,
    )

    def to_command(self) -> SearchCommand:
        data = self.validated_data
        return SearchCommand(
            query=data["q"],
            chat_id=data.get("chat_id"),
            page=data["page"],
            per_page=data["per_page"],
        )


class SearchChatSerializer(serializers.ModelSerializer):
    class Meta:
        model = Chat
        fields = ["id", "kind", "name"]
        read_only_fields = fields


class SearchResultSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(source="sender", read_only=True)
    chat = SearchChatSerializer(read_only=True)
    occurrences = serializers.IntegerField(read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "content",
            "message_type",
            "occurrences",
            "user",
            "chat",
            "created_at",
        ]
        read_only_fields = fields


# =============================================================================
# Chat Serializers
# =============================================================================


class ChatSummarySerializer(serializers.ModelSerializer):
    """Viewer-neutral chat snapshot used in chat.created events."""

    created_by_id = serializers.IntegerField(read_only=True, allow_null=True)
    participants = UserSummarySerializer(many=True, read_only=True)
    last_message = MessagePreviewSerializer(read_only=True)

    class Meta:
        model = Chat
        fields = [
            "id",
            "kind",
            "name",
            "avatar",
            "created_by_id",
            "participants",
            "last_message",
            "last_activity_at",
            "created_at",
        ]
        read_only_fields = fields


class ChatListSerializer(serializers.ModelSerializer):
    """
    A chat as seen by one participant.

    Serializes the caller's ChatParticipant row: chat fields come from the
    related chat, flags are the caller's own.
    """

    id = serializers.IntegerField(source="chat.id", read_only=True)
    kind = serializers.CharField(source="chat.kind", read_only=True)
    name = serializers.SerializerMethodField(
        help_text="Group name, or the other participant's name for private chats"
    )
    avatar = serializers.SerializerMethodField()
    participants = UserSummarySerializer(
        source="chat.participants", many=True, read_only=True
    )
    last_message = MessagePreviewSerializer(source="chat.last_message", read_only=True)
    last_activity_at = serializers.DateTimeField(
        source="chat.last_activity_at", read_only=True
    )
    is_muted = serializers.BooleanField(source="is_muted_now", read_only=True)
    muted_until = serializers.SerializerMethodField()
    unread_count = serializers.SerializerMethodField()

    class Meta:
        model = ChatParticipant
        fields = [
            "id",
            "kind",
            "name",
            "avatar",
            "participants",
            "last_message",
            "last_activity_at",
            "is_archived",
            "is_muted",
            "muted_until",
            "is_pinned",
            "pinned_at",
            "unread_count",
            "joined_at",
        ]
        read_only_fields = fields

    def _other_participant(self, obj: ChatParticipant):
        return next(
            (user for user in obj.chat.participants.all() if user.pk != obj.user_id),
            None,
        )

    def get_name(self, obj: ChatParticipant) -> str:
        if obj.chat.kind == ChatKind.PRIVATE:
            other = self._other_participant(obj)
            if other is not None:
                return other.get_full_name()
        return obj.chat.name

    def get_avatar(self, obj: ChatParticipant) -> str:
        if obj.chat.kind == ChatKind.PRIVATE and not obj.chat.avatar:
            other = self._other_participant(obj)
            if other is not None:
                return other.avatar
        return obj.chat.avatar

    def get_muted_until(self, obj: ChatParticipant):
        if not obj.is_muted_now or obj.muted_until is None:
            return None
        return serializers.DateTimeField().to_representation(obj.muted_until)

    def get_unread_count(self, obj: ChatParticipant) -> int:
        annotated = getattr(obj, "unread_count", None)
        if annotated is not None:
            return annotated

        from chat.services import ReadMarkerService

        return ReadMarkerService.unread_messages(obj.chat_id, obj.user).count()


class ChatCreateSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=ChatKind.choices, default=ChatKind.PRIVATE)
    participant_ids = serializers.ListField(
        child=serializers.IntegerField(),
        allow_empty=True,
        default=list,
    )
    name = serializers.CharField(max_length=255, allow_blank=True, default="")
    avatar = serializers.CharField(max_length=500, allow_blank=True, default="")

    def to_command(self) -> CreateChatCommand:
        data = self.validated_data
        return CreateChatCommand(
            kind=data["kind"],
            participant_ids=tuple(data["participant_ids"]),
            name=data["name"],
            avatar=data["avatar"],
        )


class MuteChatSerializer(serializers.Serializer):
    muted_until = serializers.DateTimeField(required=False, allow_null=True)

    def to_command(self, chat_id: int) -> MuteChatCommand:
        return MuteChatCommand(
            chat_id=chat_id,
            until=self.validated_data.get("muted_until"),
        )


class ParticipantIdsSerializer(serializers.Serializer):
    user_ids = serializers.ListField(child=serializers.IntegerField(), min_length=1)


class PresenceSerializer(serializers.Serializer):
    is_online = serializers.BooleanField()


class ExportQuerySerializer(serializers.Serializer):
    """
    Query parameters for GET /chats/{id}/export/.

    ``format`` is validated by the exporter so that an unknown value is
    reported as UNSUPPORTED_FORMAT.
    """

    format = serializers.CharField(default="json")
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    page = serializers.IntegerField(min_value=1, default=1)
    per_page = serializers.IntegerField(
        min_value=1,
        default=MESSAGE_CONFIG.EXPORT_DEFAULT_PAGE_SIZE,
    )

    def to_command(self, chat_id: int) -> ExportCommand:
        data = self.validated_data
        return ExportCommand(
            chat_id=chat_id,
            format=data["format"].lower(),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            page=data["page"],
            per_page=data["per_page"],
        )
