"""
Tests for MessageSearchService.

Search is a case-insensitive substring match over messages the caller can
see, ranked by number of occurrences and then recency.
"""

import pytest

from chat.commands import DeleteMessageCommand, SearchCommand, SendMessageCommand
from chat.constants import ERROR_CODES
from chat.models import DeleteScope
from chat.services import MessageSearchService, MessageService
from chat.tests.factories import make_chat


def _send(chat, user, content):
    return MessageService.send(
        SendMessageCommand(chat_id=chat.id, content=content), caller=user
    ).data


def _search(user, query, **kwargs):
    return MessageSearchService.search(SearchCommand(query=query, **kwargs), user)


@pytest.mark.django_db
class TestMessageSearch:
    def test_query_too_short(self, alice):
        result = _search(alice, "  ab  ")

        assert result.success is False
        assert result.error_code == ERROR_CODES.QUERY_TOO_SHORT

    def test_minimum_length_follows_settings(self, private_chat, alice, settings):
        settings.CHAT_SEARCH_MIN_QUERY_LENGTH = 2
        _send(private_chat, alice, "ok then")

        result = _search(alice, "ok")

        assert result.data["total"] == 1

    def test_case_insensitive(self, private_chat, alice, bob):
        _send(private_chat, bob, "Meeting at NOON")

        result = _search(alice, "noon")

        assert [m.content for m in result.data["results"]] == ["Meeting at NOON"]

    def test_ranked_by_occurrences_then_recency(self, private_chat, alice, bob):
        once = _send(private_chat, alice, "cake")
        thrice = _send(private_chat, bob, "cake cake CAKE")
        once_newer = _send(private_chat, alice, "more cake")

        results = _search(alice, "cake").data["results"]

        assert [m.id for m in results] == [thrice.id, once_newer.id, once.id]
        assert results[0].occurrences == 3

    def test_only_callers_chats(self, private_chat, alice, carol):
        _send(private_chat, alice, "shared secret")
        other = make_chat(carol, alice, name="Other")
        _send(other, carol, "another secret")

        assert _search(carol, "secret").data["total"] == 1
        assert _search(alice, "secret").data["total"] == 2

    def test_hidden_and_deleted_messages_are_excluded(self, private_chat, alice, bob):
        mine = _send(private_chat, alice, "findme one")
        everyone = _send(private_chat, alice, "findme two")
        _send(private_chat, bob, "findme three")
        MessageService.delete(DeleteMessageCommand(message_id=mine.id), alice)
        MessageService.delete(
            DeleteMessageCommand(
                message_id=everyone.id, scope=DeleteScope.FOR_EVERYONE
            ),
            alice,
        )

        assert _search(alice, "findme").data["total"] == 1
        assert _search(bob, "findme").data["total"] == 2

    def test_scoped_to_chat(self, private_chat, group_chat, alice):
        _send(private_chat, alice, "hello there")
        _send(group_chat, alice, "hello team")

        result = _search(alice, "hello", chat_id=group_chat.id)

        assert [m.content for m in result.data["results"]] == ["hello team"]

    def test_scoped_to_foreign_chat(self, private_chat, outsider):
        result = _search(outsider, "hello", chat_id=private_chat.id)

        assert result.error_code == ERROR_CODES.NOT_PARTICIPANT

    def test_pagination(self, private_chat, alice):
        for i in range(5):
            _send(private_chat, alice, f"report {i}")

        result = _search(alice, "report", page=2, per_page=2)

        assert result.data["total"] == 5
        assert result.data["last_page"] == 3
        assert result.data["page"] == 2
        assert len(result.data["results"]) == 2

    def test_page_past_the_end_is_empty(self, private_chat, alice):
        _send(private_chat, alice, "report")

        result = _search(alice, "report", page=9)

        assert result.data["results"] == []
        assert result.data["total"] == 1
