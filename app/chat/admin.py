"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Chat management with participant inline
- Message moderation
- Reaction viewing
"""

from django.contrib import admin

from chat.models import Chat, ChatParticipant, Message, MessageReaction


class ChatParticipantInline(admin.TabularInline):
    """Inline display of participants in chat admin."""

    model = ChatParticipant
    extra = 0
    readonly_fields = ["joined_at", "pinned_at"]
    raw_id_fields = ["user"]


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ["id", "kind", "name", "created_by", "last_activity_at", "created_at"]
    list_filter = ["kind", "created_at"]
    search_fields = ["name", "id"]
    readonly_fields = ["created_at", "updated_at", "last_activity_at"]
    raw_id_fields = ["created_by", "last_message"]
    inlines = [ChatParticipantInline]
    ordering = ["-last_activity_at"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "chat",
        "sender",
        "message_type",
        "content_preview",
        "deleted_for_all",
        "created_at",
    ]
    list_filter = ["message_type", "deleted_for_all", "created_at"]
    search_fields = ["content", "sender__email"]
    readonly_fields = ["created_at", "updated_at"]
    raw_id_fields = ["chat", "sender", "reply_to", "forwarded_from"]
    ordering = ["-created_at"]

    @admin.display(description="Content Preview")
    def content_preview(self, obj: Message) -> str:
        """Return truncated content for list display."""
        max_length = 50
        if len(obj.content) > max_length:
            return obj.content[:max_length] + "..."
        return obj.content


@admin.register(MessageReaction)
class MessageReactionAdmin(admin.ModelAdmin):
    list_display = ["id", "message", "user", "emoji", "created_at"]
    raw_id_fields = ["message", "user"]
