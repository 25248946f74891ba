"""
Command objects for chat operations.

Each command enumerates exactly the fields an operation may set. Views build
them from validated serializer data and hand them to the service layer
together with the acting user, so services never read request state.

Usage:
    command = SendMessageCommand(chat_id=chat.id, content="Hi")
    result = MessageService.send(command, caller=request.user)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from chat.models import ChatKind, DeleteScope, MessageType


@dataclass(frozen=True)
class CreateChatCommand:
    kind: str = ChatKind.PRIVATE
    participant_ids: tuple[int, ...] = ()
    name: str = ""
    avatar: str = ""


@dataclass(frozen=True)
class SendMessageCommand:
    chat_id: int
    content: str = ""
    message_type: str = MessageType.TEXT
    blob_ref: str = ""
    reply_to_id: int | None = None


@dataclass(frozen=True)
class ForwardMessageCommand:
    message_id: int
    target_chat_id: int


@dataclass(frozen=True)
class ForwardManyCommand:
    message_ids: tuple[int, ...]
    target_chat_id: int


@dataclass(frozen=True)
class DeleteMessageCommand:
    message_id: int
    scope: str = DeleteScope.FOR_ME


@dataclass(frozen=True)
class MuteChatCommand:
    """``until`` of None requests an indefinite mute."""

    chat_id: int
    until: datetime | None = None


@dataclass(frozen=True)
class SearchCommand:
    query: str
    chat_id: int | None = None
    page: int = 1
    per_page: int = 15


@dataclass(frozen=True)
class ExportCommand:
    chat_id: int
    format: str = "json"
    start_date: date | None = None
    end_date: date | None = None
    page: int = 1
    per_page: int = 100
