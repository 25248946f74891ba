"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Message operations (content limits, search, export)
- Reaction management (emoji allowlist)
- Per-participant state bounds (mute window, pin limit)
- Error code to HTTP status mapping used by the views

Tunables that operators may change per deployment are read from Django
settings through chat_setting(); the rest are fixed module constants.

Import example:
    from chat.constants import MESSAGE_CONFIG, REACTION_CONFIG, chat_setting
"""

from __future__ import annotations

from typing import Final

from django.conf import settings
from rest_framework import status


# =============================================================================
# Settings-backed tunables
# =============================================================================


CHAT_SETTING_DEFAULTS: Final[dict] = {
    "CHAT_MUTE_MIN_MINUTES": 15,
    "CHAT_MUTE_MAX_DAYS": 30,
    "CHAT_MAX_PINNED": 10,
    "CHAT_SEARCH_MIN_QUERY_LENGTH": 3,
    "CHAT_EXPORT_MAX_PER_PAGE": 1000,
}


def chat_setting(name: str) -> int:
    """
    Read a chat tunable from Django settings, falling back to the default.

    Read at call time so tests can override values with the ``settings``
    fixture.
    """
    return getattr(settings, name, CHAT_SETTING_DEFAULTS[name])


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits
    MAX_CONTENT_LENGTH: Final[int] = 1000  # Characters
    MAX_BLOB_REF_LENGTH: Final[int] = 500

    # Batch forward
    MAX_FORWARD_BATCH: Final[int] = 50

    # Search settings
    SEARCH_DEFAULT_PAGE_SIZE: Final[int] = 15
    SEARCH_MAX_PAGE_SIZE: Final[int] = 100

    # Export settings
    EXPORT_DEFAULT_PAGE_SIZE: Final[int] = 100
    EXPORT_FORMATS: Final[tuple] = ("json", "csv", "txt")


# =============================================================================
# Reaction Configuration
# =============================================================================


class REACTION_CONFIG:
    """Configuration for message reactions."""

    MAX_EMOJI_LENGTH: Final[int] = 8

    ALLOWED_EMOJIS: Final[tuple] = (
        "👍",
        "👎",
        "❤️",
        "😀",
        "😂",
        "😮",
        "😢",
        "😡",
        "👏",
        "🙏",
        "🔥",
        "💯",
        "💪",
        "🎉",
        "🎯",
        "💡",
        "⚡",
        "🚀",
        "💎",
        "🏆",
    )


# =============================================================================
# Realtime Configuration
# =============================================================================


class REALTIME_CONFIG:
    """Channel layer naming."""

    GROUP_PREFIX: Final[str] = "chat_"
    EVENT_HANDLER_TYPE: Final[str] = "chat.event"


def chat_group_name(chat_id: int) -> str:
    """Channel layer group for a chat."""
    return f"{REALTIME_CONFIG.GROUP_PREFIX}{chat_id}"


# =============================================================================
# Error codes
# =============================================================================


class ERROR_CODES:
    """Machine-readable error codes returned by chat services."""

    CHAT_NOT_FOUND: Final[str] = "CHAT_NOT_FOUND"
    MESSAGE_NOT_FOUND: Final[str] = "MESSAGE_NOT_FOUND"
    REACTION_NOT_FOUND: Final[str] = "REACTION_NOT_FOUND"
    UNKNOWN_USER: Final[str] = "UNKNOWN_USER"
    NOT_PARTICIPANT: Final[str] = "NOT_PARTICIPANT"
    NOT_MESSAGE_OWNER: Final[str] = "NOT_MESSAGE_OWNER"
    NOT_REACTION_OWNER: Final[str] = "NOT_REACTION_OWNER"
    EMPTY_CONTENT: Final[str] = "EMPTY_CONTENT"
    CONTENT_TOO_LONG: Final[str] = "CONTENT_TOO_LONG"
    MISSING_BLOB_REF: Final[str] = "MISSING_BLOB_REF"
    INVALID_MESSAGE_TYPE: Final[str] = "INVALID_MESSAGE_TYPE"
    INVALID_REPLY: Final[str] = "INVALID_REPLY"
    MESSAGE_UNAVAILABLE: Final[str] = "MESSAGE_UNAVAILABLE"
    INVALID_EMOJI: Final[str] = "INVALID_EMOJI"
    DUPLICATE_REACTION: Final[str] = "DUPLICATE_REACTION"
    INVALID_MUTE_UNTIL: Final[str] = "INVALID_MUTE_UNTIL"
    PIN_LIMIT_REACHED: Final[str] = "PIN_LIMIT_REACHED"
    QUERY_TOO_SHORT: Final[str] = "QUERY_TOO_SHORT"
    INVALID_PARTICIPANTS: Final[str] = "INVALID_PARTICIPANTS"
    PRIVATE_CHAT_MEMBERSHIP: Final[str] = "PRIVATE_CHAT_MEMBERSHIP"
    MISSING_GROUP_NAME: Final[str] = "MISSING_GROUP_NAME"
    INVALID_DATE_RANGE: Final[str] = "INVALID_DATE_RANGE"
    INVALID_PAGE_SIZE: Final[str] = "INVALID_PAGE_SIZE"
    UNSUPPORTED_FORMAT: Final[str] = "UNSUPPORTED_FORMAT"


ERROR_STATUS: Final[dict] = {
    ERROR_CODES.CHAT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ERROR_CODES.MESSAGE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ERROR_CODES.REACTION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ERROR_CODES.NOT_PARTICIPANT: status.HTTP_403_FORBIDDEN,
    ERROR_CODES.NOT_MESSAGE_OWNER: status.HTTP_403_FORBIDDEN,
    ERROR_CODES.NOT_REACTION_OWNER: status.HTTP_403_FORBIDDEN,
}


def error_status(error_code: str | None) -> int:
    """HTTP status for a service error code; unlisted codes are 422."""
    return ERROR_STATUS.get(error_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
