"""
Realtime event fan-out for chat state changes.

Every successful mutation publishes one ChatEvent to its chat's channel
group. Events carry the full resulting resource so subscribers never need a
follow-up fetch, and an explicit recipient set (the chat's participants minus
the actor) so delivery is "to others" regardless of transport.

Flow:
    service mutation
        -> EventBroadcaster.publish(event)      (inside the transaction)
        -> transaction.on_commit                (nothing fires on rollback)
        -> chat.tasks.deliver_chat_event.delay  (Celery, async to the request)
        -> channel_layer.group_send("chat_<id>")
        -> ChatConsumer.chat_event              (filters on recipient_ids)

Publishing is fire-and-forget. A failure to enqueue or deliver is logged and
never propagates to the caller or rolls back the state change.

Usage:
    EventBroadcaster.publish(
        ChatEvent(
            name=EventName.MESSAGE_SENT,
            chat_id=message.chat_id,
            actor_id=caller.id,
            payload=MessageSerializer(message).data,
        )
    )
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

logger = logging.getLogger(__name__)


class EventName:
    """Event names published on chat channels."""

    MESSAGE_SENT = "message.sent"
    MESSAGE_DELETED = "message.deleted"
    MESSAGE_READ = "message.read"
    REACTION_ADDED = "message.reaction.added"
    REACTION_UPDATED = "message.reaction.updated"
    REACTION_REMOVED = "message.reaction.removed"
    USER_TYPING = "user.typing"
    USER_ONLINE_STATUS = "user.online_status"
    CHAT_CREATED = "chat.created"
    CHAT_ARCHIVED = "chat.archived"
    CHAT_MUTED = "chat.muted"
    CHAT_PINNED = "chat.pinned"
    PARTICIPANT_JOINED = "chat.participant.joined"
    PARTICIPANT_LEFT = "chat.participant.left"


@dataclass(frozen=True)
class ChatEvent:
    """
    A state change to announce on a chat's channel.

    Attributes:
        name: One of EventName
        chat_id: Chat whose channel carries the event
        actor_id: User who caused the change (excluded from recipients)
        payload: Resource snapshot
        extra_recipient_ids: Users to notify even though they are no longer
            participants (e.g. someone just removed from the chat)
    """

    name: str
    chat_id: int
    actor_id: int | None
    payload: dict[str, Any] = field(default_factory=dict)
    extra_recipient_ids: tuple[int, ...] = ()


class EventBroadcaster:
    """
    Sink-only publisher of ChatEvents.

    Never a source of truth: the recipient set is computed from the
    participant registry at publish time and nothing reads events back.
    """

    @classmethod
    def recipients_for(cls, event: ChatEvent) -> list[int]:
        """participants_of(chat) + extra recipients, minus the actor."""
        from chat.services import ParticipantRegistry

        recipients = ParticipantRegistry.participants_of(event.chat_id)
        recipients.update(event.extra_recipient_ids)
        recipients.discard(event.actor_id)
        return sorted(recipients)

    @classmethod
    def build_message(cls, event: ChatEvent) -> dict[str, Any]:
        """
        Build the JSON-safe message handed to the delivery task.

        Datetimes and other rich values in the payload are normalised with
        DjangoJSONEncoder.
        """
        return {
            "event": event.name,
            "chat_id": event.chat_id,
            "actor_id": event.actor_id,
            "recipient_ids": cls.recipients_for(event),
            "payload": json.loads(json.dumps(event.payload, cls=DjangoJSONEncoder)),
        }

    @classmethod
    def publish(cls, event: ChatEvent) -> None:
        """Schedule ``event`` for delivery once the current transaction commits."""
        transaction.on_commit(partial(cls._dispatch, event))

    @classmethod
    def _dispatch(cls, event: ChatEvent) -> None:
        from chat.tasks import deliver_chat_event

        try:
            message = cls.build_message(event)
            if not message["recipient_ids"]:
                logger.debug(f"No recipients for {event.name} in chat {event.chat_id}")
                return
            deliver_chat_event.delay(message)
        except Exception:
            logger.exception(
                f"Failed to publish {event.name} for chat {event.chat_id}"
            )
