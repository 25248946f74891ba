"""
Per-participant chat state predicates.

Pure helpers with no model imports, so they can be used from models,
services and serializers alike:

- is_effectively_muted: the single definition of "muted right now"
- *_view: explicit filters over a user's ChatParticipant queryset that
  build the default/archived/muted/pinned chat lists
- visible_messages: the per-viewer message visibility filter

Stored mute flags are never rewritten on read. An expired mute simply stops
counting as muted; only an explicit unmute clears the stored flag.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db.models import Q

if TYPE_CHECKING:
    from datetime import datetime

    from django.db.models import QuerySet


def is_effectively_muted(
    is_muted: bool, muted_until: datetime | None, now: datetime
) -> bool:
    """
    Return whether a stored mute is in force at ``now``.

    ``muted_until`` of None means an indefinite mute.
    """
    return bool(is_muted) and (muted_until is None or muted_until > now)


def muted_now_q(now: datetime, prefix: str = "") -> Q:
    """Q object equivalent of is_effectively_muted for ORM filtering."""
    return Q(**{f"{prefix}is_muted": True}) & (
        Q(**{f"{prefix}muted_until__isnull": True})
        | Q(**{f"{prefix}muted_until__gt": now})
    )


# =============================================================================
# Chat list views (over ChatParticipant querysets)
# =============================================================================


def default_view(memberships: QuerySet, now: datetime) -> QuerySet:
    """Chats shown in the main list: everything not archived."""
    return memberships.filter(is_archived=False)


def archived_view(memberships: QuerySet, now: datetime) -> QuerySet:
    return memberships.filter(is_archived=True)


def muted_view(memberships: QuerySet, now: datetime) -> QuerySet:
    """Chats muted at ``now``; expired mutes are left out."""
    return memberships.filter(muted_now_q(now))


def pinned_view(memberships: QuerySet, now: datetime) -> QuerySet:
    return memberships.filter(is_pinned=True)


CHAT_VIEWS = {
    "default": default_view,
    "archived": archived_view,
    "muted": muted_view,
    "pinned": pinned_view,
}


def order_for_list(memberships: QuerySet) -> QuerySet:
    """Pinned first, then most recent activity, then newest chat id."""
    return memberships.order_by("-is_pinned", "-chat__last_activity_at", "-chat_id")


# =============================================================================
# Message visibility
# =============================================================================


def visible_messages(messages: QuerySet, viewer) -> QuerySet:
    """
    Restrict ``messages`` to the ones ``viewer`` can see.

    Drops messages deleted for everyone and messages the viewer deleted
    for themselves.
    """
    return messages.filter(deleted_for_all=False).exclude(hidden_for__user=viewer)
