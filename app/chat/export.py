"""
Chat transcript export.

Renders the messages a participant can see in one chat as JSON, CSV or
plain text. Messages deleted for everyone and messages the caller deleted
for themselves are never exported. Output is paginated and ascending by
(created_at, id).

Layouts:
    json: {"chat": {...}, "messages": [...], "pagination": {...}, "exported_at"}
    csv:  "Chat Information" block, blank line, "Messages" block with header
          Date,Time,Sender,Message,Type,Reply To
    txt:  header block, then one "[YYYY-MM-DD HH:MM:SS] Sender: content" line
          per message with "(Reply to: ...)" / "(File: ...)" continuation lines

Usage:
    result = TranscriptExportService.export(
        ExportCommand(chat_id=chat.id, format="csv"), caller=user
    )
    if result:
        export = result.data  # TranscriptExport
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.core.paginator import Paginator
from django.utils import timezone

from core.exceptions import ValidationError
from core.services import BaseService, ServiceResult

from chat.constants import ERROR_CODES, MESSAGE_CONFIG, chat_setting
from chat.models import Chat, Message, MessageType
from chat.services import ParticipantRegistry
from chat.state import visible_messages

if TYPE_CHECKING:
    from datetime import datetime

    from authentication.models import User
    from chat.commands import ExportCommand

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

CONTENT_TYPES = {
    "json": "application/json",
    "csv": "text/csv; charset=utf-8",
    "txt": "text/plain; charset=utf-8",
}


@dataclass
class TranscriptExport:
    """
    A rendered transcript page.

    ``data`` holds the JSON document for the json format; ``content`` holds
    the rendered text for csv/txt, which are served as attachments.
    """

    format: str
    filename: str
    content_type: str
    data: dict[str, Any] | None = None
    content: str = ""

    @property
    def is_attachment(self) -> bool:
        return self.format != "json"


def _stamp(value: datetime) -> str:
    return timezone.localtime(value).strftime(TIMESTAMP_FORMAT)


def _sender_name(message: Message) -> str:
    if message.sender is None:
        return "Deleted user"
    return message.sender.get_full_name()


def message_row(message: Message) -> dict[str, Any]:
    reply_to = message.reply_to
    reply_content = None
    if reply_to is not None and not reply_to.deleted_for_all:
        reply_content = reply_to.content
    return {
        "id": message.id,
        "content": message.content,
        "sender_id": message.sender_id,
        "sender_name": _sender_name(message),
        "message_type": message.message_type,
        "blob_ref": message.blob_ref or None,
        "reply_to_id": message.reply_to_id,
        "reply_to_content": reply_content,
        "created_at": _stamp(message.created_at),
    }


def chat_info(chat: Chat) -> dict[str, Any]:
    return {
        "id": chat.id,
        "kind": chat.kind,
        "name": chat.name or None,
        "created_at": _stamp(chat.created_at),
    }


def render_json(info: dict, rows: list[dict], pagination: dict) -> dict[str, Any]:
    return {
        "chat": info,
        "messages": rows,
        "pagination": pagination,
        "exported_at": _stamp(timezone.now()),
    }


def render_csv(info: dict, rows: list[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow(["Chat Information"])
    writer.writerow(["ID", "Type", "Name", "Created At"])
    writer.writerow([info["id"], info["kind"], info["name"] or "N/A", info["created_at"]])
    writer.writerow([])

    writer.writerow(["Messages"])
    writer.writerow(["Date", "Time", "Sender", "Message", "Type", "Reply To"])
    for row in rows:
        date, time = row["created_at"].split(" ")
        writer.writerow(
            [
                date,
                time,
                row["sender_name"],
                row["content"],
                row["message_type"],
                row["reply_to_content"] or "N/A",
            ]
        )
    return buffer.getvalue()


def render_txt(info: dict, rows: list[dict]) -> str:
    lines = [
        "Chat Export",
        "===========",
        "",
        "Chat Information:",
        f"ID: {info['id']}",
        f"Type: {info['kind']}",
        f"Name: {info['name'] or 'N/A'}",
        f"Created: {info['created_at']}",
        "",
        "Messages:",
        "=========",
        "",
    ]
    for row in rows:
        lines.append(f"[{row['created_at']}] {row['sender_name']}: {row['content']}")
        if row["reply_to_content"]:
            lines.append(f"  (Reply to: {row['reply_to_content']})")
        if row["message_type"] != MessageType.TEXT and row["blob_ref"]:
            lines.append(f"  (File: {row['blob_ref']})")
        lines.append("")
    return "\n".join(lines) + "\n"


def render(format: str, chat: Chat, messages: list[Message], pagination: dict) -> TranscriptExport:
    """
    Render one page of a transcript.

    Raises:
        ValidationError: ``format`` is not json, csv or txt
    """
    if format not in MESSAGE_CONFIG.EXPORT_FORMATS:
        raise ValidationError(
            f"Unsupported export format '{format}'",
            error_code=ERROR_CODES.UNSUPPORTED_FORMAT,
            details={"supported": list(MESSAGE_CONFIG.EXPORT_FORMATS)},
        )

    info = chat_info(chat)
    rows = [message_row(message) for message in messages]
    filename = f"chat_{chat.id}_{timezone.now():%Y%m%d_%H%M%S}.{format}"
    export = TranscriptExport(
        format=format,
        filename=filename,
        content_type=CONTENT_TYPES[format],
    )
    if format == "json":
        export.data = render_json(info, rows, pagination)
    elif format == "csv":
        export.content = render_csv(info, rows)
    else:
        export.content = render_txt(info, rows)
    return export


class TranscriptExportService(BaseService):
    """Paginated transcript export for chat participants."""

    @classmethod
    def export(
        cls, command: ExportCommand, caller: User
    ) -> ServiceResult[TranscriptExport]:
        """
        Export visible messages of a chat.

        Error codes:
            CHAT_NOT_FOUND / NOT_PARTICIPANT: See resolve_chat
            INVALID_DATE_RANGE: end_date before start_date
            INVALID_PAGE_SIZE: per_page above CHAT_EXPORT_MAX_PER_PAGE
            UNSUPPORTED_FORMAT: Format other than json/csv/txt
        """
        result = ParticipantRegistry.resolve_chat(command.chat_id, caller)
        if not result:
            return result
        chat = result.data

        if (
            command.start_date
            and command.end_date
            and command.end_date < command.start_date
        ):
            return ServiceResult.failure(
                "end_date must be on or after start_date",
                error_code=ERROR_CODES.INVALID_DATE_RANGE,
            )

        max_per_page = chat_setting("CHAT_EXPORT_MAX_PER_PAGE")
        if not 1 <= command.per_page <= max_per_page:
            return ServiceResult.failure(
                f"per_page must be between 1 and {max_per_page}",
                error_code=ERROR_CODES.INVALID_PAGE_SIZE,
            )

        messages = visible_messages(
            Message.objects.filter(chat=chat).select_related("sender", "reply_to"),
            caller,
        )
        if command.start_date:
            messages = messages.filter(created_at__date__gte=command.start_date)
        if command.end_date:
            messages = messages.filter(created_at__date__lte=command.end_date)
        messages = messages.order_by("created_at", "id")

        paginator = Paginator(messages, command.per_page)
        page_items: list[Message] = []
        if command.page <= paginator.num_pages:
            page_items = list(paginator.page(command.page).object_list)

        pagination = {
            "page": command.page,
            "per_page": command.per_page,
            "total": paginator.count,
            "last_page": paginator.num_pages,
        }

        try:
            export = render(command.format, chat, page_items, pagination)
        except ValidationError as exc:
            return ServiceResult.from_exception(exc)

        cls.get_logger().info(
            f"User {caller.id} exported {len(page_items)} messages from chat "
            f"{chat.id} as {command.format}"
        )
        return ServiceResult.success(export)
