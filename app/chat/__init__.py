"""
Chat app for real-time messaging.

This app handles:
- Private and group chats with per-participant state
- Message sending, replies, forwarding and deletion
- Reactions, read markers, search and transcript export
- WebSocket delivery of chat events

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for WebSocket handlers.
    See routing.py for WebSocket URL patterns.
    See events.py for how services publish events.

Usage:
    from chat.commands import CreateChatCommand, SendMessageCommand
    from chat.services import ChatService, MessageService

    result = ChatService.create(
        CreateChatCommand(kind="private", participant_ids=(other_user.id,)),
        caller=user,
    )
    chat, created = result.data

    MessageService.send(
        SendMessageCommand(chat_id=chat.id, content="Hello!"),
        caller=user,
    )
"""
