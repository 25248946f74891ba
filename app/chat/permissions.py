"""
Permission classes for chat API.

This module provides DRF permission classes for the chat system:
- IsChatParticipant: The caller belongs to the chat named in the URL

Design Decisions:
    - Permissions check against ChatParticipant, not User
    - An unknown chat is 404 (CHAT_NOT_FOUND) and a chat the caller does not
      belong to is 403 (NOT_PARTICIPANT); the two are never conflated
    - Services repeat the membership check, so permissions are a fast
      rejection at the view boundary rather than the only guard
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

from core.exceptions import NotFoundError, PermissionDeniedError

from chat.constants import ERROR_CODES

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsChatParticipant(permissions.BasePermission):
    """
    Allows access only to participants of the chat in the URL.

    The chat id is read from ``view.chat_url_kwarg`` (default ``pk``).
    Raises instead of returning False so the response carries the
    machine-readable error_code.
    """

    message = "You are not a participant in this chat."

    def has_permission(self, request: Request, view: APIView) -> bool:
        from chat.services import ParticipantRegistry

        if not request.user or not request.user.is_authenticated:
            return False

        chat_id = view.kwargs.get(getattr(view, "chat_url_kwarg", "pk"))
        if chat_id is None:
            return True

        result = ParticipantRegistry.resolve_chat(chat_id, request.user)
        if result:
            return True
        if result.error_code == ERROR_CODES.CHAT_NOT_FOUND:
            raise NotFoundError(result.error, error_code=result.error_code)
        raise PermissionDeniedError(result.error, error_code=result.error_code)
