"""
Celery tasks for chat app.

This module defines async tasks for:
- Realtime event delivery to the channel layer

Related files:
    - events.py: EventBroadcaster (enqueues deliver_chat_event on commit)
    - consumers.py: ChatConsumer.chat_event (receives the group message)

Usage:
    from chat.tasks import deliver_chat_event

    deliver_chat_event.delay(EventBroadcaster.build_message(event))
"""

import logging

from asgiref.sync import async_to_sync
from celery import shared_task
from channels.layers import get_channel_layer

from chat.constants import REALTIME_CONFIG, chat_group_name

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def deliver_chat_event(self, message: dict) -> bool:
    """
    Push a chat event to every socket subscribed to the chat's group.

    Consumers filter on ``recipient_ids`` so the actor's own sockets never
    receive their own event.

    Args:
        message: Output of EventBroadcaster.build_message

    Returns:
        True if the event was handed to the channel layer
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning(f"No channel layer configured, dropping {message['event']}")
        return False

    async_to_sync(channel_layer.group_send)(
        chat_group_name(message["chat_id"]),
        {"type": REALTIME_CONFIG.EVENT_HANDLER_TYPE, **message},
    )
    logger.debug(
        f"Delivered {message['event']} to chat {message['chat_id']} "
        f"({len(message['recipient_ids'])} recipients)"
    )
    return True
