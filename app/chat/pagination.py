"""
Pagination classes for chat API.

This module provides pagination for the chat system:
- MessageCursorPagination: For message lists (newest first)
- ReplyCursorPagination: For reply threads (oldest first)
- ChatListPagination: For chat lists (pinned first, then recent activity)

Design Decisions:
    - Message cursors include id after created_at for a stable order when
      several messages share a timestamp
    - Chat lists lead with the boolean is_pinned, which cannot anchor a
      cursor, so they use page numbers
    - Search and export paginate in their services and return
      page/per_page/total/last_page themselves
"""

from rest_framework.pagination import CursorPagination, PageNumberPagination


class MessageCursorPagination(CursorPagination):
    """
    Cursor pagination for message lists.

    Orders messages newest-first using (-created_at, -id).

    Default: 50 messages per page
    Maximum: 100 messages per page

    Query parameters:
        cursor: Encoded cursor for position
        page_size: Number of messages (optional override)
    """

    page_size = 50
    max_page_size = 100
    page_size_query_param = "page_size"
    ordering = ("-created_at", "-id")
    cursor_query_param = "cursor"


class ReplyCursorPagination(MessageCursorPagination):
    """Reply threads read top-down, oldest first."""

    ordering = ("created_at", "id")


class ChatListPagination(PageNumberPagination):
    """
    Page-number pagination for a user's chat list.

    Default: 20 chats per page
    Maximum: 50 chats per page
    """

    page_size = 20
    max_page_size = 50
    page_size_query_param = "per_page"
