"""
Chat system service layer.

This module provides the business logic for the chat system, encapsulating
all operations on chats, participants, messages and reactions.

Services:
    ParticipantRegistry: Membership lookups and add/remove
    ParticipantStateService: Per-user archive/mute/pin flags and chat lists
    ChatService: Chat creation and detail
    MessageService: Send, forward, delete, list and reply threads
    ReactionService: Emoji reactions
    MessageSearchService: Ranked substring search
    ReadMarkerService: Read markers
    TypingService / PresenceService: Ephemeral realtime signals

Design Principles:
    - Services are stateless (use class methods)
    - The acting user is always passed explicitly as ``caller``
    - Expected failures return ServiceResult.failure() with an ERROR_CODES value
    - Unexpected failures raise exceptions
    - Every successful mutation publishes one ChatEvent after commit

Usage:
    from chat.commands import SendMessageCommand
    from chat.services import MessageService

    result = MessageService.send(
        SendMessageCommand(chat_id=chat.id, content="Hello everyone!"),
        caller=user,
    )
    if result.success:
        message = result.data
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from django.core.paginator import Paginator
from django.db import IntegrityError, transaction
from django.db.models import (
    Count,
    ExpressionWrapper,
    IntegerField,
    OuterRef,
    Subquery,
    Value,
)
from django.db.models.functions import Coalesce, Length, Lower, Replace
from django.utils import timezone

from core.services import BaseService, ServiceResult

from chat.constants import (
    ERROR_CODES,
    MESSAGE_CONFIG,
    REACTION_CONFIG,
    chat_setting,
)
from chat.events import ChatEvent, EventBroadcaster, EventName
from chat.models import (
    Chat,
    ChatKind,
    ChatParticipant,
    DeleteScope,
    Message,
    MessageHiddenForUser,
    MessageReaction,
    MessageRead,
    MessageType,
)
from chat.state import CHAT_VIEWS, order_for_list, visible_messages

if TYPE_CHECKING:
    from authentication.models import User
    from chat.commands import (
        CreateChatCommand,
        DeleteMessageCommand,
        ForwardManyCommand,
        ForwardMessageCommand,
        MuteChatCommand,
        SearchCommand,
        SendMessageCommand,
    )

logger = logging.getLogger(__name__)


def _snapshot(serializer_name: str, instance, **context) -> dict:
    """Serialize ``instance`` with a chat serializer for an event payload."""
    from chat import serializers

    serializer_class = getattr(serializers, serializer_name)
    return serializer_class(instance, context=context).data


# =============================================================================
# Participant Registry
# =============================================================================


class ParticipantRegistry(BaseService):
    """
    Membership lookups and changes.

    Methods:
        is_participant: Whether a user belongs to a chat
        participants_of: IDs of a chat's participants
        resolve_chat: Load a chat for a caller (not found vs. forbidden)
        add: Add users to a group chat
        remove: Remove users from a group chat
    """

    @classmethod
    def is_participant(cls, chat: Chat | int, user: User | int) -> bool:
        chat_id = getattr(chat, "pk", chat)
        user_id = getattr(user, "pk", user)
        return ChatParticipant.objects.filter(
            chat_id=chat_id, user_id=user_id
        ).exists()

    @classmethod
    def participants_of(cls, chat: Chat | int) -> set[int]:
        chat_id = getattr(chat, "pk", chat)
        return set(
            ChatParticipant.objects.filter(chat_id=chat_id).values_list(
                "user_id", flat=True
            )
        )

    @classmethod
    def resolve_chat(cls, chat_id: int, caller: User) -> ServiceResult[Chat]:
        """
        Load a chat on behalf of ``caller``.

        Error codes:
            CHAT_NOT_FOUND: No chat with this id
            NOT_PARTICIPANT: The chat exists but caller is not a member
        """
        try:
            chat = Chat.objects.get(pk=chat_id)
        except Chat.DoesNotExist:
            return ServiceResult.failure(
                "Chat not found",
                error_code=ERROR_CODES.CHAT_NOT_FOUND,
            )

        if not cls.is_participant(chat, caller):
            return ServiceResult.failure(
                "You are not a participant in this chat",
                error_code=ERROR_CODES.NOT_PARTICIPANT,
            )

        return ServiceResult.success(chat)

    @classmethod
    def membership(cls, chat_id: int, caller: User) -> ServiceResult[ChatParticipant]:
        """Like resolve_chat, but return the caller's ChatParticipant row."""
        result = cls.resolve_chat(chat_id, caller)
        if not result:
            return result
        return ServiceResult.success(
            ChatParticipant.objects.select_related("chat").get(
                chat=result.data, user=caller
            )
        )

    @classmethod
    def add(
        cls,
        chat_id: int,
        user_ids: list[int],
        actor: User,
    ) -> ServiceResult[list[ChatParticipant]]:
        """
        Add users to a group chat.

        Users already in the chat are skipped. One chat.participant.joined
        event is published per newly added user.

        Error codes:
            PRIVATE_CHAT_MEMBERSHIP: Private chats have a fixed pair
            UNKNOWN_USER: An id does not match an active user
        """
        from authentication.models import User

        result = cls.resolve_chat(chat_id, actor)
        if not result:
            return result
        chat = result.data

        if chat.is_private:
            return ServiceResult.failure(
                "Participants of a private chat cannot be changed",
                error_code=ERROR_CODES.PRIVATE_CHAT_MEMBERSHIP,
            )

        wanted = list(dict.fromkeys(user_ids))
        users = User.objects.in_bulk(wanted)
        missing = [uid for uid in wanted if uid not in users or not users[uid].is_active]
        if missing:
            return ServiceResult.failure(
                f"Users not found: {missing}",
                error_code=ERROR_CODES.UNKNOWN_USER,
            )

        existing = cls.participants_of(chat)
        added = []
        with cls.atomic():
            for user_id in wanted:
                if user_id in existing:
                    continue
                participant = ChatParticipant.objects.create(
                    chat=chat, user=users[user_id]
                )
                added.append(participant)
                EventBroadcaster.publish(
                    ChatEvent(
                        name=EventName.PARTICIPANT_JOINED,
                        chat_id=chat.id,
                        actor_id=actor.id,
                        payload={
                            "chat_id": chat.id,
                            "user": _snapshot("UserSummarySerializer", users[user_id]),
                            "added_by": actor.id,
                        },
                    )
                )

        cls.get_logger().info(
            f"User {actor.id} added {len(added)} participant(s) to chat {chat.id}"
        )
        return ServiceResult.success(added)

    @classmethod
    def remove(
        cls,
        chat_id: int,
        user_ids: list[int],
        actor: User,
    ) -> ServiceResult[list[int]]:
        """
        Remove users from a group chat.

        Only the membership rows are deleted; messages the users sent stay in
        the chat. Ids that are not participants are skipped. The removed users
        also receive the chat.participant.left event.

        Error codes:
            PRIVATE_CHAT_MEMBERSHIP: Private chats have a fixed pair
        """
        result = cls.resolve_chat(chat_id, actor)
        if not result:
            return result
        chat = result.data

        if chat.is_private:
            return ServiceResult.failure(
                "Participants of a private chat cannot be changed",
                error_code=ERROR_CODES.PRIVATE_CHAT_MEMBERSHIP,
            )

        with cls.atomic():
            removed = list(
                ChatParticipant.objects.filter(
                    chat=chat, user_id__in=user_ids
                ).values_list("user_id", flat=True)
            )
            ChatParticipant.objects.filter(chat=chat, user_id__in=removed).delete()

            for user_id in removed:
                EventBroadcaster.publish(
                    ChatEvent(
                        name=EventName.PARTICIPANT_LEFT,
                        chat_id=chat.id,
                        actor_id=actor.id,
                        payload={
                            "chat_id": chat.id,
                            "user_id": user_id,
                            "removed_by": actor.id,
                        },
                        extra_recipient_ids=(user_id,),
                    )
                )

        cls.get_logger().info(
            f"User {actor.id} removed participants {removed} from chat {chat.id}"
        )
        return ServiceResult.success(removed)


# =============================================================================
# Participant State
# =============================================================================


class ParticipantStateService(BaseService):
    """
    Per-participant chat flags: archived, muted (with optional expiry), pinned.

    Each flag belongs to the caller's own ChatParticipant row; the four flags
    are independent of each other and of other participants.
    """

    @classmethod
    def _publish_state(
        cls, name: str, membership: ChatParticipant, **flags
    ) -> None:
        EventBroadcaster.publish(
            ChatEvent(
                name=name,
                chat_id=membership.chat_id,
                actor_id=membership.user_id,
                payload={
                    "chat_id": membership.chat_id,
                    "user_id": membership.user_id,
                    **flags,
                },
            )
        )

    @classmethod
    def _set_archived(
        cls, chat_id: int, caller: User, archived: bool
    ) -> ServiceResult[ChatParticipant]:
        result = ParticipantRegistry.membership(chat_id, caller)
        if not result:
            return result
        membership = result.data

        with cls.atomic():
            membership.is_archived = archived
            membership.save(update_fields=["is_archived", "updated_at"])
            cls._publish_state(
                EventName.CHAT_ARCHIVED, membership, is_archived=archived
            )

        cls.get_logger().info(
            f"User {caller.id} {'archived' if archived else 'unarchived'} chat {chat_id}"
        )
        return ServiceResult.success(membership)

    @classmethod
    def archive(cls, chat_id: int, caller: User) -> ServiceResult[ChatParticipant]:
        return cls._set_archived(chat_id, caller, True)

    @classmethod
    def unarchive(cls, chat_id: int, caller: User) -> ServiceResult[ChatParticipant]:
        return cls._set_archived(chat_id, caller, False)

    @classmethod
    def validate_mute_until(cls, until, now) -> str | None:
        """Return an error message if ``until`` is outside the allowed window."""
        if until is None:
            return None

        min_minutes = chat_setting("CHAT_MUTE_MIN_MINUTES")
        max_days = chat_setting("CHAT_MUTE_MAX_DAYS")
        if until <= now:
            return "Mute expiry must be in the future"
        if until < now + timedelta(minutes=min_minutes):
            return f"Mute duration must be at least {min_minutes} minutes"
        if until > now + timedelta(days=max_days):
            return f"Mute duration cannot exceed {max_days} days"
        return None

    @classmethod
    def mute(
        cls, command: MuteChatCommand, caller: User
    ) -> ServiceResult[ChatParticipant]:
        """
        Mute a chat for the caller, until a time or indefinitely.

        Error codes:
            INVALID_MUTE_UNTIL: ``until`` outside the allowed window
        """
        result = ParticipantRegistry.membership(command.chat_id, caller)
        if not result:
            return result
        membership = result.data

        error = cls.validate_mute_until(command.until, timezone.now())
        if error:
            return ServiceResult.failure(
                error,
                error_code=ERROR_CODES.INVALID_MUTE_UNTIL,
            )

        with cls.atomic():
            membership.is_muted = True
            membership.muted_until = command.until
            membership.save(update_fields=["is_muted", "muted_until", "updated_at"])
            cls._publish_state(
                EventName.CHAT_MUTED,
                membership,
                is_muted=True,
                muted_until=command.until,
            )

        cls.get_logger().info(
            f"User {caller.id} muted chat {command.chat_id} "
            f"until {command.until or 'further notice'}"
        )
        return ServiceResult.success(membership)

    @classmethod
    def unmute(cls, chat_id: int, caller: User) -> ServiceResult[ChatParticipant]:
        result = ParticipantRegistry.membership(chat_id, caller)
        if not result:
            return result
        membership = result.data

        with cls.atomic():
            membership.is_muted = False
            membership.muted_until = None
            membership.save(update_fields=["is_muted", "muted_until", "updated_at"])
            cls._publish_state(
                EventName.CHAT_MUTED, membership, is_muted=False, muted_until=None
            )

        cls.get_logger().info(f"User {caller.id} unmuted chat {chat_id}")
        return ServiceResult.success(membership)

    @classmethod
    def pin(cls, chat_id: int, caller: User) -> ServiceResult[ChatParticipant]:
        """
        Pin a chat to the top of the caller's list.

        The caller's membership rows are locked while counting so that
        concurrent pins cannot exceed the limit. Pinning an already pinned
        chat succeeds without changing pinned_at.

        Error codes:
            PIN_LIMIT_REACHED: Caller already has the maximum pinned chats
        """
        result = ParticipantRegistry.resolve_chat(chat_id, caller)
        if not result:
            return result

        max_pinned = chat_setting("CHAT_MAX_PINNED")
        with cls.atomic():
            rows = list(
                ChatParticipant.objects.select_for_update()
                .filter(user=caller)
                .order_by("id")
            )
            membership = next(row for row in rows if row.chat_id == result.data.id)
            if membership.is_pinned:
                return ServiceResult.success(membership)

            pinned_count = sum(1 for row in rows if row.is_pinned)
            if pinned_count >= max_pinned:
                return ServiceResult.failure(
                    "Maximum number of pinned chats reached",
                    error_code=ERROR_CODES.PIN_LIMIT_REACHED,
                )

            membership.is_pinned = True
            membership.pinned_at = timezone.now()
            membership.save(update_fields=["is_pinned", "pinned_at", "updated_at"])
            cls._publish_state(
                EventName.CHAT_PINNED,
                membership,
                is_pinned=True,
                pinned_at=membership.pinned_at,
            )

        cls.get_logger().info(f"User {caller.id} pinned chat {chat_id}")
        return ServiceResult.success(membership)

    @classmethod
    def unpin(cls, chat_id: int, caller: User) -> ServiceResult[ChatParticipant]:
        result = ParticipantRegistry.membership(chat_id, caller)
        if not result:
            return result
        membership = result.data

        with cls.atomic():
            membership.is_pinned = False
            membership.pinned_at = None
            membership.save(update_fields=["is_pinned", "pinned_at", "updated_at"])
            cls._publish_state(
                EventName.CHAT_PINNED, membership, is_pinned=False, pinned_at=None
            )

        cls.get_logger().info(f"User {caller.id} unpinned chat {chat_id}")
        return ServiceResult.success(membership)

    @classmethod
    def list_for(cls, caller: User, view: str = "default"):
        """
        The caller's memberships for one chat list view.

        Ordered pinned first, then by latest activity, then newest chat.
        Unknown view names fall back to the default list. Each row carries
        ``unread_count`` and has the chat's participants prefetched.
        """
        view_filter = CHAT_VIEWS.get(view, CHAT_VIEWS["default"])
        unread = (
            ReadMarkerService.unread_messages(OuterRef("chat_id"), caller)
            .order_by()
            .values("chat_id")
            .annotate(total=Count("id"))
            .values("total")
        )
        memberships = (
            ChatParticipant.objects.filter(user=caller)
            .select_related("chat", "chat__last_message", "chat__last_message__sender")
            .prefetch_related("chat__participants")
            .annotate(
                unread_count=Coalesce(
                    Subquery(unread, output_field=IntegerField()), Value(0)
                )
            )
        )
        return order_for_list(view_filter(memberships, timezone.now()))


# =============================================================================
# Chat Service
# =============================================================================


class ChatService(BaseService):
    """
    Chat lifecycle operations.

    Methods:
        create: Create a group chat, or get-or-create a private chat
        detail: The caller's membership row for one chat
    """

    @classmethod
    def find_private_chat(cls, user: User, other: User) -> Chat | None:
        return (
            Chat.objects.filter(kind=ChatKind.PRIVATE, memberships__user=user)
            .filter(memberships__user=other)
            .first()
        )

    @classmethod
    def create(
        cls, command: CreateChatCommand, caller: User
    ) -> ServiceResult[tuple[Chat, bool]]:
        """
        Create a chat with the caller as creator and participant.

        Private chats are unique per user pair: if one already exists it is
        returned with ``created=False``.

        Returns:
            ServiceResult with (chat, created)

        Error codes:
            INVALID_PARTICIPANTS: Private chat without exactly one other user
            MISSING_GROUP_NAME: Group chat without a name
            UNKNOWN_USER: Unknown or inactive participant id
        """
        from authentication.models import User

        other_ids = [uid for uid in dict.fromkeys(command.participant_ids) if uid != caller.id]
        users = User.objects.filter(pk__in=other_ids, is_active=True).in_bulk()
        missing = [uid for uid in other_ids if uid not in users]
        if missing:
            return ServiceResult.failure(
                f"Users not found: {missing}",
                error_code=ERROR_CODES.UNKNOWN_USER,
            )

        if command.kind == ChatKind.PRIVATE:
            if len(other_ids) != 1:
                return ServiceResult.failure(
                    "A private chat needs exactly one other participant",
                    error_code=ERROR_CODES.INVALID_PARTICIPANTS,
                )

            other = users[other_ids[0]]
            existing = cls.find_private_chat(caller, other)
            if existing:
                cls.get_logger().debug(
                    f"Found existing private chat {existing.id} "
                    f"between users {caller.id} and {other.id}"
                )
                return ServiceResult.success((existing, False))
            name = ""
        else:
            name = (command.name or "").strip()
            if not name:
                return ServiceResult.failure(
                    "Group name is required",
                    error_code=ERROR_CODES.MISSING_GROUP_NAME,
                )

        with cls.atomic():
            chat = Chat.objects.create(
                kind=command.kind,
                name=name,
                avatar=command.avatar or "",
                created_by=caller,
            )
            ChatParticipant.objects.create(chat=chat, user=caller)
            for user_id in other_ids:
                ChatParticipant.objects.create(chat=chat, user=users[user_id])

            EventBroadcaster.publish(
                ChatEvent(
                    name=EventName.CHAT_CREATED,
                    chat_id=chat.id,
                    actor_id=caller.id,
                    payload=_snapshot("ChatSummarySerializer", chat),
                )
            )

        cls.get_logger().info(
            f"User {caller.id} created {command.kind} chat {chat.id} "
            f"with {1 + len(other_ids)} participants"
        )
        return ServiceResult.success((chat, True))

    @classmethod
    def detail(cls, chat_id: int, caller: User) -> ServiceResult[ChatParticipant]:
        return ParticipantRegistry.membership(chat_id, caller)


# =============================================================================
# Message Service
# =============================================================================


class MessageService(BaseService):
    """
    Message operations.

    Message content is immutable once sent. Deleting only flips the
    monotonic deleted_for_sender / deleted_for_all flags or hides the message
    for the caller.
    """

    @classmethod
    def _base_queryset(cls):
        return Message.objects.select_related(
            "sender", "reply_to", "reply_to__sender", "forwarded_from"
        )

    @classmethod
    def _create(cls, chat: Chat, sender: User, **fields) -> Message:
        """Insert a message and move the chat's last-message pointer."""
        message = Message.objects.create(chat=chat, sender=sender, **fields)
        Chat.objects.filter(pk=chat.pk).update(
            last_message=message,
            last_activity_at=message.created_at,
            updated_at=timezone.now(),
        )
        EventBroadcaster.publish(
            ChatEvent(
                name=EventName.MESSAGE_SENT,
                chat_id=chat.id,
                actor_id=sender.id,
                payload=_snapshot("MessageSerializer", message),
            )
        )
        return message

    @classmethod
    def send(
        cls, command: SendMessageCommand, caller: User
    ) -> ServiceResult[Message]:
        """
        Send a message (optionally as a reply) to a chat.

        Error codes:
            CHAT_NOT_FOUND / NOT_PARTICIPANT: See resolve_chat
            EMPTY_CONTENT: Text message with blank content
            CONTENT_TOO_LONG: Content above MAX_CONTENT_LENGTH
            MISSING_BLOB_REF: Non-text message without a blob reference
            INVALID_REPLY: Reply target missing, in another chat or deleted
        """
        result = ParticipantRegistry.resolve_chat(command.chat_id, caller)
        if not result:
            return result
        chat = result.data

        if command.message_type not in MessageType.values:
            return ServiceResult.failure(
                f"Unknown message type '{command.message_type}'",
                error_code=ERROR_CODES.INVALID_MESSAGE_TYPE,
            )

        content = command.content or ""
        if command.message_type == MessageType.TEXT and not content.strip():
            return ServiceResult.failure(
                "Message content cannot be empty",
                error_code=ERROR_CODES.EMPTY_CONTENT,
            )
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message content cannot exceed {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code=ERROR_CODES.CONTENT_TOO_LONG,
            )
        if command.message_type != MessageType.TEXT and not command.blob_ref:
            return ServiceResult.failure(
                f"A {command.message_type} message requires a blob reference",
                error_code=ERROR_CODES.MISSING_BLOB_REF,
            )

        reply_to = None
        if command.reply_to_id is not None:
            reply_to = Message.objects.filter(
                pk=command.reply_to_id, chat=chat, deleted_for_all=False
            ).first()
            if reply_to is None:
                return ServiceResult.failure(
                    "Reply target does not exist in this chat",
                    error_code=ERROR_CODES.INVALID_REPLY,
                )

        with cls.atomic():
            message = cls._create(
                chat,
                caller,
                content=content,
                message_type=command.message_type,
                blob_ref=command.blob_ref or "",
                reply_to=reply_to,
            )

        cls.get_logger().info(
            f"User {caller.id} sent {command.message_type} message {message.id} "
            f"to chat {chat.id}"
        )
        return ServiceResult.success(message)

    @classmethod
    def _forwardable(cls, message_id: int, caller: User) -> ServiceResult[Message]:
        """The original of a forward, if the caller can read it."""
        try:
            original = Message.objects.get(pk=message_id)
        except Message.DoesNotExist:
            return ServiceResult.failure(
                "Message not found",
                error_code=ERROR_CODES.MESSAGE_NOT_FOUND,
            )
        if not ParticipantRegistry.is_participant(original.chat_id, caller):
            return ServiceResult.failure(
                "You are not a participant in this chat",
                error_code=ERROR_CODES.NOT_PARTICIPANT,
            )
        if not visible_messages(Message.objects.filter(pk=original.pk), caller).exists():
            return ServiceResult.failure(
                "This message is no longer available",
                error_code=ERROR_CODES.MESSAGE_UNAVAILABLE,
            )
        return ServiceResult.success(original)

    @classmethod
    def _copy(cls, original: Message, target: Chat, caller: User) -> Message:
        return cls._create(
            target,
            caller,
            content=original.content,
            message_type=original.message_type,
            blob_ref=original.blob_ref,
            forwarded_from=original,
        )

    @classmethod
    def forward(
        cls, command: ForwardMessageCommand, caller: User
    ) -> ServiceResult[Message]:
        """
        Forward a message between two chats the caller participates in.

        Error codes:
            MESSAGE_NOT_FOUND: Original does not exist
            NOT_PARTICIPANT: Caller is not in the original's chat
            MESSAGE_UNAVAILABLE: Original was deleted for everyone or
                hidden by the caller
            CHAT_NOT_FOUND / NOT_PARTICIPANT: Target chat checks
        """
        result = cls._forwardable(command.message_id, caller)
        if not result:
            return result
        original = result.data

        target_result = ParticipantRegistry.resolve_chat(command.target_chat_id, caller)
        if not target_result:
            return target_result

        with cls.atomic():
            message = cls._copy(original, target_result.data, caller)

        cls.get_logger().info(
            f"User {caller.id} forwarded message {original.id} "
            f"to chat {command.target_chat_id} as {message.id}"
        )
        return ServiceResult.success(message)

    @classmethod
    def forward_many(
        cls, command: ForwardManyCommand, caller: User
    ) -> ServiceResult[list[Message]]:
        """
        Forward several messages, preserving input order.

        Ids that do not exist, sit in a chat the caller is not in, or are not
        visible to the caller are skipped.
        """
        target_result = ParticipantRegistry.resolve_chat(command.target_chat_id, caller)
        if not target_result:
            return target_result
        target = target_result.data

        readable = visible_messages(
            Message.objects.filter(chat__memberships__user=caller), caller
        )
        originals = readable.in_bulk(list(command.message_ids))
        forwarded = []
        with cls.atomic():
            for message_id in command.message_ids:
                original = originals.get(message_id)
                if original is None:
                    continue
                forwarded.append(cls._copy(original, target, caller))

        cls.get_logger().info(
            f"User {caller.id} forwarded {len(forwarded)}/{len(command.message_ids)} "
            f"messages to chat {target.id}"
        )
        return ServiceResult.success(forwarded)

    @classmethod
    def delete(
        cls, command: DeleteMessageCommand, caller: User
    ) -> ServiceResult[Message]:
        """
        Delete a message for the caller only, or for everyone.

        Only the sender may delete, whatever the scope.

        Error codes:
            MESSAGE_NOT_FOUND: No such message
            NOT_PARTICIPANT: Caller is not in the message's chat
            NOT_MESSAGE_OWNER: Caller is not the sender
        """
        try:
            message = Message.objects.get(pk=command.message_id)
        except Message.DoesNotExist:
            return ServiceResult.failure(
                "Message not found",
                error_code=ERROR_CODES.MESSAGE_NOT_FOUND,
            )

        if not ParticipantRegistry.is_participant(message.chat_id, caller):
            return ServiceResult.failure(
                "You are not a participant in this chat",
                error_code=ERROR_CODES.NOT_PARTICIPANT,
            )

        if message.sender_id != caller.id:
            return ServiceResult.failure(
                "You can only delete your own messages",
                error_code=ERROR_CODES.NOT_MESSAGE_OWNER,
            )

        with cls.atomic():
            if command.scope == DeleteScope.FOR_EVERYONE:
                message.deleted_for_all = True
                message.save(update_fields=["deleted_for_all", "updated_at"])
            else:
                message.deleted_for_sender = True
                message.save(update_fields=["deleted_for_sender", "updated_at"])
                MessageHiddenForUser.objects.get_or_create(message=message, user=caller)

            EventBroadcaster.publish(
                ChatEvent(
                    name=EventName.MESSAGE_DELETED,
                    chat_id=message.chat_id,
                    actor_id=caller.id,
                    payload={
                        "message_id": message.id,
                        "chat_id": message.chat_id,
                        "delete_type": command.scope,
                    },
                )
            )

        cls.get_logger().info(
            f"User {caller.id} deleted message {message.id} ({command.scope})"
        )
        return ServiceResult.success(message)

    @classmethod
    def get(cls, message_id: int, caller: User) -> ServiceResult[Message]:
        """
        Load a single message visible to the caller.

        Messages deleted for everyone or hidden for the caller are reported
        as MESSAGE_NOT_FOUND.
        """
        message = cls._base_queryset().filter(pk=message_id).first()
        if message is None:
            return ServiceResult.failure(
                "Message not found",
                error_code=ERROR_CODES.MESSAGE_NOT_FOUND,
            )

        if not ParticipantRegistry.is_participant(message.chat_id, caller):
            return ServiceResult.failure(
                "You are not a participant in this chat",
                error_code=ERROR_CODES.NOT_PARTICIPANT,
            )

        if not visible_messages(Message.objects.filter(pk=message.pk), caller).exists():
            return ServiceResult.failure(
                "Message not found",
                error_code=ERROR_CODES.MESSAGE_NOT_FOUND,
            )

        return ServiceResult.success(message)

    @classmethod
    def list_visible(cls, chat_id: int, caller: User):
        """Visible messages of a chat, newest first (-created_at, -id)."""
        result = ParticipantRegistry.resolve_chat(chat_id, caller)
        if not result:
            return result

        messages = visible_messages(
            cls._base_queryset().filter(chat=result.data), caller
        ).order_by("-created_at", "-id")
        return ServiceResult.success(messages)

    @classmethod
    def replies(cls, message_id: int, caller: User):
        """Direct replies to a visible message, oldest first."""
        result = cls.get(message_id, caller)
        if not result:
            return result

        replies = visible_messages(
            cls._base_queryset().filter(reply_to=result.data), caller
        ).order_by("created_at", "id")
        return ServiceResult.success(replies)


# =============================================================================
# Reaction Service
# =============================================================================


class ReactionService(BaseService):
    """
    Emoji reactions.

    A user may hold several reactions on one message but only one per emoji.
    Uniqueness is enforced by the database constraint; IntegrityError is
    caught inside a savepoint and reported as DUPLICATE_REACTION.
    """

    @classmethod
    def is_allowed_emoji(cls, emoji: str) -> bool:
        return bool(emoji) and emoji in REACTION_CONFIG.ALLOWED_EMOJIS

    @classmethod
    def _invalid_emoji(cls) -> ServiceResult:
        return ServiceResult.failure(
            "Emoji is not in the allowed reaction set",
            error_code=ERROR_CODES.INVALID_EMOJI,
        )

    @classmethod
    def _duplicate(cls) -> ServiceResult:
        return ServiceResult.failure(
            "You have already reacted with this emoji",
            error_code=ERROR_CODES.DUPLICATE_REACTION,
        )

    @classmethod
    def _publish(cls, name: str, reaction: MessageReaction, caller: User, **extra):
        EventBroadcaster.publish(
            ChatEvent(
                name=name,
                chat_id=reaction.message.chat_id,
                actor_id=caller.id,
                payload={
                    **_snapshot("MessageReactionSerializer", reaction),
                    **extra,
                },
            )
        )

    @classmethod
    def _owned_reaction(
        cls, reaction_id: int, caller: User, message_id: int | None = None
    ) -> ServiceResult[MessageReaction]:
        reactions = MessageReaction.objects.select_related("message", "user")
        if message_id is not None:
            reactions = reactions.filter(message_id=message_id)
        reaction = reactions.filter(pk=reaction_id).first()
        if reaction is None:
            return ServiceResult.failure(
                "Reaction not found",
                error_code=ERROR_CODES.REACTION_NOT_FOUND,
            )
        if reaction.user_id != caller.id:
            return ServiceResult.failure(
                "You can only change your own reactions",
                error_code=ERROR_CODES.NOT_REACTION_OWNER,
            )
        return ServiceResult.success(reaction)

    @classmethod
    def add(
        cls, message_id: int, caller: User, emoji: str
    ) -> ServiceResult[MessageReaction]:
        """
        React to a message.

        Error codes:
            MESSAGE_NOT_FOUND / NOT_PARTICIPANT: See MessageService.get
            INVALID_EMOJI: Emoji outside the allowlist
            DUPLICATE_REACTION: Caller already reacted with this emoji
        """
        result = MessageService.get(message_id, caller)
        if not result:
            return result
        message = result.data

        if not cls.is_allowed_emoji(emoji):
            return cls._invalid_emoji()

        try:
            with transaction.atomic():
                reaction = MessageReaction.objects.create(
                    message=message, user=caller, emoji=emoji
                )
                cls._publish(EventName.REACTION_ADDED, reaction, caller)
        except IntegrityError:
            return cls._duplicate()

        cls.get_logger().info(
            f"User {caller.id} reacted {emoji} to message {message.id}"
        )
        return ServiceResult.success(reaction)

    @classmethod
    def update(
        cls,
        reaction_id: int,
        caller: User,
        emoji: str,
        message_id: int | None = None,
    ) -> ServiceResult[MessageReaction]:
        """
        Change the emoji of one of the caller's reactions.

        Error codes:
            REACTION_NOT_FOUND: No such reaction (on this message)
            NOT_REACTION_OWNER: Reaction belongs to another user
            INVALID_EMOJI: Emoji outside the allowlist
            DUPLICATE_REACTION: Caller already has the new emoji on the message
        """
        result = cls._owned_reaction(reaction_id, caller, message_id)
        if not result:
            return result
        reaction = result.data

        if not cls.is_allowed_emoji(emoji):
            return cls._invalid_emoji()

        if emoji == reaction.emoji:
            return ServiceResult.success(reaction)

        previous = reaction.emoji
        try:
            with transaction.atomic():
                reaction.emoji = emoji
                reaction.save(update_fields=["emoji", "updated_at"])
                cls._publish(
                    EventName.REACTION_UPDATED,
                    reaction,
                    caller,
                    previous_emoji=previous,
                )
        except IntegrityError:
            reaction.emoji = previous
            return cls._duplicate()

        cls.get_logger().info(
            f"User {caller.id} changed reaction {reaction.id} {previous} -> {emoji}"
        )
        return ServiceResult.success(reaction)

    @classmethod
    def remove(
        cls, reaction_id: int, caller: User, message_id: int | None = None
    ) -> ServiceResult[None]:
        result = cls._owned_reaction(reaction_id, caller, message_id)
        if not result:
            return result
        reaction = result.data

        with cls.atomic():
            payload = {
                "id": reaction.id,
                "message_id": reaction.message_id,
                "chat_id": reaction.message.chat_id,
                "user_id": caller.id,
                "emoji": reaction.emoji,
            }
            reaction.delete()
            EventBroadcaster.publish(
                ChatEvent(
                    name=EventName.REACTION_REMOVED,
                    chat_id=payload["chat_id"],
                    actor_id=caller.id,
                    payload=payload,
                )
            )

        cls.get_logger().info(
            f"User {caller.id} removed reaction {payload['id']} "
            f"from message {payload['message_id']}"
        )
        return ServiceResult.success(None)

    @classmethod
    def list(cls, message_id: int, caller: User) -> ServiceResult[dict]:
        """
        All reactions on a message, oldest first, with per-emoji counts.

        Returns:
            ServiceResult containing {"reactions": QuerySet, "counts": {emoji: n}}
        """
        result = MessageService.get(message_id, caller)
        if not result:
            return result

        reactions = (
            MessageReaction.objects.filter(message=result.data)
            .select_related("user", "message")
            .order_by("created_at", "id")
        )
        counts: dict[str, int] = {}
        for emoji in reactions.values_list("emoji", flat=True):
            counts[emoji] = counts.get(emoji, 0) + 1

        return ServiceResult.success({"reactions": reactions, "counts": counts})


# =============================================================================
# Search Service
# =============================================================================


class MessageSearchService(BaseService):
    """
    Substring search across the caller's chats.

    Matching is case-insensitive (icontains). Results are ranked by how many
    times the query occurs in the message, computed in SQL as
    (len(content) - len(content with query removed)) / len(query), then by
    recency.
    """

    @classmethod
    def occurrences(cls, query: str) -> ExpressionWrapper:
        stripped = Replace(Lower("content"), Value(query.lower()), Value(""))
        return ExpressionWrapper(
            (Length(Lower("content")) - Length(stripped))
            / Value(len(query)),
            output_field=IntegerField(),
        )

    @classmethod
    def search(cls, command: SearchCommand, caller: User) -> ServiceResult[dict]:
        """
        Search visible messages.

        Returns:
            ServiceResult containing:
            {
                "results": [Message, ...],
                "page": int,
                "per_page": int,
                "total": int,
                "last_page": int,
            }

        Error codes:
            QUERY_TOO_SHORT: Stripped query below the minimum length
            CHAT_NOT_FOUND / NOT_PARTICIPANT: When scoped to a chat
        """
        query = (command.query or "").strip()
        min_length = chat_setting("CHAT_SEARCH_MIN_QUERY_LENGTH")
        if len(query) < min_length:
            return ServiceResult.failure(
                f"Search query must be at least {min_length} characters",
                error_code=ERROR_CODES.QUERY_TOO_SHORT,
            )

        per_page = max(1, min(command.per_page, MESSAGE_CONFIG.SEARCH_MAX_PAGE_SIZE))
        page_number = max(1, command.page)

        if command.chat_id is not None:
            result = ParticipantRegistry.resolve_chat(command.chat_id, caller)
            if not result:
                return result
            messages = Message.objects.filter(chat=result.data)
        else:
            messages = Message.objects.filter(
                chat_id__in=ChatParticipant.objects.filter(user=caller).values("chat_id")
            )

        messages = (
            visible_messages(messages, caller)
            .filter(content__icontains=query)
            .select_related("sender", "chat")
            .annotate(occurrences=cls.occurrences(query))
            .order_by("-occurrences", "-created_at", "-id")
        )

        paginator = Paginator(messages, per_page)
        results = []
        if page_number <= paginator.num_pages:
            results = list(paginator.page(page_number).object_list)

        cls.get_logger().debug(
            f"User {caller.id} searched '{query}' ({paginator.count} matches)"
        )
        return ServiceResult.success(
            {
                "results": results,
                "page": page_number,
                "per_page": per_page,
                "total": paginator.count,
                "last_page": paginator.num_pages,
            }
        )


# =============================================================================
# Read markers
# =============================================================================


class ReadMarkerService(BaseService):
    """Read markers, one per (message, user)."""

    @classmethod
    def _publish(cls, chat_id: int, caller: User, message_ids: list[int], read_at):
        EventBroadcaster.publish(
            ChatEvent(
                name=EventName.MESSAGE_READ,
                chat_id=chat_id,
                actor_id=caller.id,
                payload={
                    "chat_id": chat_id,
                    "user_id": caller.id,
                    "message_ids": message_ids,
                    "read_at": read_at,
                },
            )
        )

    @classmethod
    def mark_read(cls, message_id: int, caller: User) -> ServiceResult[MessageRead]:
        """Mark one visible message as read. Repeat calls keep the first read_at."""
        result = MessageService.get(message_id, caller)
        if not result:
            return result
        message = result.data

        with cls.atomic():
            read, created = MessageRead.objects.get_or_create(
                message=message, user=caller
            )
            if created:
                cls._publish(message.chat_id, caller, [message.id], read.read_at)

        return ServiceResult.success(read)

    @classmethod
    def mark_chat_read(cls, chat_id: int, caller: User) -> ServiceResult[int]:
        """
        Mark every visible message from other users in a chat as read.

        Returns:
            ServiceResult with the number of newly read messages
        """
        result = ParticipantRegistry.resolve_chat(chat_id, caller)
        if not result:
            return result

        message_ids = list(
            cls.unread_messages(result.data, caller)
            .order_by("created_at", "id")
            .values_list("id", flat=True)
        )
        if not message_ids:
            return ServiceResult.success(0)

        read_at = timezone.now()
        with cls.atomic():
            MessageRead.objects.bulk_create(
                [
                    MessageRead(message_id=mid, user=caller, read_at=read_at)
                    for mid in message_ids
                ],
                ignore_conflicts=True,
            )
            cls._publish(chat_id, caller, message_ids, read_at)

        cls.get_logger().info(
            f"User {caller.id} read {len(message_ids)} messages in chat {chat_id}"
        )
        return ServiceResult.success(len(message_ids))

    @classmethod
    def unread_messages(cls, chat: Chat | int, caller: User):
        """Visible messages from others that the caller has not read."""
        chat_id = getattr(chat, "pk", chat)
        return (
            visible_messages(Message.objects.filter(chat_id=chat_id), caller)
            .exclude(sender=caller)
            .exclude(reads__user=caller)
        )


# =============================================================================
# Typing and presence
# =============================================================================


class TypingService(BaseService):
    """Typing indicators. Nothing is stored; the event is the whole effect."""

    @classmethod
    def set_typing(
        cls, chat_id: int, caller: User, is_typing: bool
    ) -> ServiceResult[dict]:
        result = ParticipantRegistry.resolve_chat(chat_id, caller)
        if not result:
            return result

        payload = {
            "chat_id": chat_id,
            "user": _snapshot("UserSummarySerializer", caller),
            "is_typing": is_typing,
        }
        EventBroadcaster.publish(
            ChatEvent(
                name=EventName.USER_TYPING,
                chat_id=chat_id,
                actor_id=caller.id,
                payload=payload,
            )
        )
        return ServiceResult.success(payload)


class PresenceService(BaseService):
    """Online status, stored on the user and announced to all their chats."""

    @classmethod
    def set_online(cls, caller: User, is_online: bool) -> ServiceResult[dict]:
        now = timezone.now()
        with cls.atomic():
            type(caller).objects.filter(pk=caller.pk).update(
                is_online=is_online, last_seen=now
            )
            caller.is_online = is_online
            caller.last_seen = now

            payload = {
                "user_id": caller.id,
                "is_online": is_online,
                "last_seen": now,
            }
            chat_ids = ChatParticipant.objects.filter(user=caller).values_list(
                "chat_id", flat=True
            )
            for chat_id in chat_ids:
                EventBroadcaster.publish(
                    ChatEvent(
                        name=EventName.USER_ONLINE_STATUS,
                        chat_id=chat_id,
                        actor_id=caller.id,
                        payload=payload,
                    )
                )

        cls.get_logger().debug(
            f"User {caller.id} is now {'online' if is_online else 'offline'}"
        )
        return ServiceResult.success(payload)
