"""
WebSocket consumers for the chat application.

This module implements the WebSocket consumer for real-time chat
functionality: connection management, delivery of chat events published by
the service layer, and client-originated typing/message frames.

Consumers:
    ChatConsumer: Handles WebSocket connections for one chat

Authentication:
    Users are authenticated via JWT token passed as query parameter.
    The JWTAuthMiddlewareStack attaches the user to self.scope["user"].

Channel Groups:
    Each chat has a channel group named "chat_{chat_id}". Services publish
    ChatEvents which the Celery task delivers to the group as "chat.event".
    Every event names its recipients; sockets of other users (including
    the actor) drop it.

Message Types (from client):
    - typing: {"type": "typing", "is_typing": true}
    - message: {"type": "message", "content": "Hi", "reply_to_id": 12}

Message Types (to client):
    - <event name>: {"type": "message.sent", "chat_id": 1, "payload": {...}}
    - message.ack: The caller's own message was stored
    - error: {"type": "error", "error": "...", "error_code": "..."}
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from core.services import ServiceResult

from chat.constants import chat_group_name
from chat.models import Chat
from chat.serializers import MessageCreateSerializer, MessageSerializer
from chat.services import (
    MessageService,
    ParticipantRegistry,
    PresenceService,
    TypingService,
)

logger = logging.getLogger(__name__)

CLOSE_UNAUTHENTICATED = 4001
CLOSE_NOT_PARTICIPANT = 4003
CLOSE_CHAT_NOT_FOUND = 4004


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat functionality.

    Handles:
        - Connection authentication and authorization
        - Joining/leaving the chat's channel group
        - Online status on connect/disconnect
        - Typing indicators and sending messages from the socket

    Attributes:
        chat_id: ID of the connected chat
        room_group_name: Channel layer group name for the chat
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.chat_id: int | None = None
        self.room_group_name: str | None = None

    async def connect(self):
        """
        Handle WebSocket connection.

        Validates:
            1. User is authenticated (else close 4001)
            2. Chat exists (else close 4004)
            3. User is a participant in the chat (else close 4003)

        On success, joins the channel group and accepts the connection.
        """
        self.chat_id = int(self.scope["url_route"]["kwargs"]["chat_id"])
        user = self.scope.get("user")

        if not user or isinstance(user, AnonymousUser):
            logger.warning(f"Rejected unauthenticated connection to chat {self.chat_id}")
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return

        if not await self._chat_exists():
            logger.warning(
                f"User {user.id} tried to connect to non-existent chat {self.chat_id}"
            )
            await self.close(code=CLOSE_CHAT_NOT_FOUND)
            return

        if not await self._is_participant(user):
            logger.warning(f"User {user.id} is not a participant in chat {self.chat_id}")
            await self.close(code=CLOSE_NOT_PARTICIPANT)
            return

        self.room_group_name = chat_group_name(self.chat_id)
        await self.channel_layer.group_add(self.room_group_name, self.channel_name)
        # An offered "jwt" subprotocol must be echoed back on accept
        subprotocol = "jwt" if "jwt" in self.scope.get("subprotocols", []) else None
        await self.accept(subprotocol=subprotocol)
        await self._set_online(user, True)
        logger.info(f"User {user.id} connected to chat {self.chat_id}")

    async def disconnect(self, close_code):
        """Leave the channel group and mark the user offline."""
        if not self.room_group_name:
            return

        await self.channel_layer.group_discard(self.room_group_name, self.channel_name)
        user = self.scope["user"]
        await self._set_online(user, False)
        logger.info(f"User {user.id} disconnected from chat {self.chat_id} ({close_code})")

    async def receive_json(self, content, **kwargs):
        """
        Handle incoming WebSocket frames.

        Expected message format:
            {"type": "typing", "is_typing": true}
            {"type": "message", "content": "Hello!", "reply_to_id": 123}
        """
        frame_type = content.get("type")
        user = self.scope["user"]

        if frame_type == "typing":
            result = await self._set_typing(user, bool(content.get("is_typing", False)))
        elif frame_type == "message":
            result = await self._send_message(user, content)
            if result:
                await self.send_json({"type": "message.ack", "message": result.data})
                return
        else:
            await self.send_json(
                {
                    "type": "error",
                    "error": f"Unknown message type: {frame_type}",
                    "error_code": "UNKNOWN_FRAME",
                }
            )
            return

        if not result:
            await self.send_json({"type": "error", **result.to_response()})

    async def chat_event(self, event):
        """
        Handle chat.event messages from the channel layer.

        Forwards the event to the client only when this socket's user is a
        recipient.
        """
        user = self.scope.get("user")
        if user is None or user.id not in event.get("recipient_ids", ()):
            return

        await self.send_json(
            {
                "type": event["event"],
                "chat_id": event["chat_id"],
                "actor_id": event["actor_id"],
                "payload": event["payload"],
            }
        )

    @database_sync_to_async
    def _chat_exists(self) -> bool:
        return Chat.objects.filter(pk=self.chat_id).exists()

    @database_sync_to_async
    def _is_participant(self, user) -> bool:
        return ParticipantRegistry.is_participant(self.chat_id, user)

    @database_sync_to_async
    def _set_online(self, user, is_online: bool):
        return PresenceService.set_online(user, is_online)

    @database_sync_to_async
    def _set_typing(self, user, is_typing: bool):
        return TypingService.set_typing(self.chat_id, user, is_typing)

    @database_sync_to_async
    def _send_message(self, user, content: dict):
        """Send a message through MessageService; data is the serialized message."""
        serializer = MessageCreateSerializer(data=content)
        if not serializer.is_valid():
            return ServiceResult.failure(
                "The given data was invalid.",
                error_code="VALIDATION_ERROR",
                errors=serializer.errors,
            )

        result = MessageService.send(serializer.to_command(self.chat_id), user)
        if result:
            result.data = MessageSerializer(result.data).data
        return result
