"""
Tests for chat API endpoints.

Checks routing, status codes and response bodies; business rules are
covered in test_services.py.
"""

from datetime import timedelta

import pytest
from django.db import connection
from django.test.utils import CaptureQueriesContext
from django.utils import timezone
from rest_framework import status

from authentication.tests.factories import UserFactory
from chat.models import ChatParticipant, Message, MessageReaction
from chat.tests.factories import MessageFactory, MessageReactionFactory, make_chat

BASE = "/api/v1/chat"


def _post_message(client, chat, content="Hello", **extra):
    return client.post(
        f"{BASE}/chats/{chat.id}/messages/",
        {"content": content, **extra},
        format="json",
    )


# =============================================================================
# Chats
# =============================================================================


@pytest.mark.django_db
class TestChatEndpoints:
    def test_requires_authentication(self, api_client):
        response = api_client.get(f"{BASE}/chats/")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_list(self, alice_client, private_chat, group_chat, bob):
        response = alice_client.get(f"{BASE}/chats/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 2
        names = {row["name"] for row in response.data["results"]}
        assert names == {"Bob Jones", "Team"}

    def test_list_includes_unread_count(self, alice_client, bob_client, private_chat):
        _post_message(bob_client, private_chat, "one")
        _post_message(bob_client, private_chat, "two")

        row = alice_client.get(f"{BASE}/chats/").data["results"][0]

        assert row["unread_count"] == 2
        assert row["last_message"]["content"] == "two"

    def test_list_query_count_is_flat(self, alice_client, alice, private_chat, bob):
        """
        Listing more chats does not add queries per row.

        Why it matters: names, participants and unread counts come from one
        prefetch and one annotation.
        """
        MessageFactory(chat=private_chat, sender=bob)
        with CaptureQueriesContext(connection) as one_chat:
            alice_client.get(f"{BASE}/chats/")

        for _ in range(3):
            other = UserFactory()
            chat = make_chat(alice, other)
            MessageFactory(chat=chat, sender=other)
        with CaptureQueriesContext(connection) as four_chats:
            response = alice_client.get(f"{BASE}/chats/")

        assert response.data["count"] == 4
        assert all(row["unread_count"] == 1 for row in response.data["results"])
        assert len(four_chats.captured_queries) == len(one_chat.captured_queries)

    def test_create_private_then_existing(self, alice_client, bob_client, alice, bob):
        first = alice_client.post(
            f"{BASE}/chats/", {"participant_ids": [bob.id]}, format="json"
        )
        second = bob_client.post(
            f"{BASE}/chats/", {"participant_ids": [alice.id]}, format="json"
        )

        assert first.status_code == status.HTTP_201_CREATED
        assert second.status_code == status.HTTP_200_OK
        assert second.data["id"] == first.data["id"]

    def test_create_group(self, alice_client, bob, carol):
        response = alice_client.post(
            f"{BASE}/chats/",
            {"kind": "group", "name": "Weekend", "participant_ids": [bob.id, carol.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["name"] == "Weekend"
        assert len(response.data["participants"]) == 3

    def test_create_group_without_name(self, alice_client, bob):
        response = alice_client.post(
            f"{BASE}/chats/",
            {"kind": "group", "participant_ids": [bob.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "MISSING_GROUP_NAME"

    def test_create_with_unknown_user(self, alice_client):
        response = alice_client.post(
            f"{BASE}/chats/", {"participant_ids": [999999]}, format="json"
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "UNKNOWN_USER"

    def test_invalid_kind_is_validation_error(self, alice_client):
        response = alice_client.post(f"{BASE}/chats/", {"kind": "channel"}, format="json")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "VALIDATION_ERROR"
        assert "kind" in response.data["errors"]

    def test_retrieve(self, alice_client, group_chat):
        response = alice_client.get(f"{BASE}/chats/{group_chat.id}/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == group_chat.id
        assert response.data["is_pinned"] is False

    def test_retrieve_unknown_chat(self, alice_client):
        response = alice_client.get(f"{BASE}/chats/999999/")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "CHAT_NOT_FOUND"

    def test_retrieve_foreign_chat(self, outsider_client, private_chat):
        """
        A chat the caller is not in is 403, not 404.

        Why it matters: clients distinguish a missing chat from one they
        were removed from.
        """
        response = outsider_client.get(f"{BASE}/chats/{private_chat.id}/")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_PARTICIPANT"


@pytest.mark.django_db
class TestAuthenticationComesFirst:
    """
    Anonymous requests get 401 before any lookup.

    Why it matters: a 403 or 404 would tell an anonymous caller whether a
    chat or message exists.
    """

    ROUTES = [
        ("get", "/chats/{chat}/"),
        ("get", "/chats/{chat}/messages/"),
        ("post", "/chats/{chat}/messages/"),
        ("post", "/chats/{chat}/archive/"),
        ("get", "/chats/{chat}/export/"),
        ("get", "/messages/{message}/"),
        ("delete", "/messages/{message}/"),
        ("get", "/messages/{message}/reactions/"),
        ("post", "/messages/{message}/reactions/"),
        ("patch", "/messages/{message}/reactions/{reaction}/"),
        ("delete", "/messages/{message}/reactions/{reaction}/"),
    ]

    @pytest.fixture
    def existing_ids(self, private_chat, alice, bob):
        message = Message.objects.create(chat=private_chat, sender=alice, content="hi")
        reaction = MessageReactionFactory(message=message, user=bob)
        return {"chat": private_chat.id, "message": message.id, "reaction": reaction.id}

    @pytest.mark.parametrize("method, route", ROUTES)
    def test_existing_resources(self, api_client, existing_ids, method, route):
        response = getattr(api_client, method)(
            BASE + route.format(**existing_ids), {"emoji": "👍"}, format="json"
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.parametrize("method, route", ROUTES)
    def test_missing_resources(self, api_client, method, route):
        missing = {"chat": 999999, "message": 999999, "reaction": 999999}

        response = getattr(api_client, method)(
            BASE + route.format(**missing), {"emoji": "👍"}, format="json"
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestChatStateEndpoints:
    def test_archive_moves_chat_between_lists(self, alice_client, private_chat):
        response = alice_client.post(f"{BASE}/chats/{private_chat.id}/archive/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_archived"] is True
        assert alice_client.get(f"{BASE}/chats/").data["count"] == 0
        assert alice_client.get(f"{BASE}/chats/archived/").data["count"] == 1

        alice_client.delete(f"{BASE}/chats/{private_chat.id}/archive/")
        assert alice_client.get(f"{BASE}/chats/").data["count"] == 1

    def test_mute_with_expiry(self, alice_client, private_chat):
        until = timezone.now() + timedelta(hours=1)

        response = alice_client.post(
            f"{BASE}/chats/{private_chat.id}/mute/",
            {"muted_until": until.isoformat()},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_muted"] is True
        assert response.data["muted_until"] is not None
        assert alice_client.get(f"{BASE}/chats/muted/").data["count"] == 1

    def test_mute_too_short(self, alice_client, private_chat):
        until = timezone.now() + timedelta(minutes=1)

        response = alice_client.post(
            f"{BASE}/chats/{private_chat.id}/mute/",
            {"muted_until": until.isoformat()},
            format="json",
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "INVALID_MUTE_UNTIL"

    def test_unmute(self, alice_client, private_chat):
        alice_client.post(f"{BASE}/chats/{private_chat.id}/mute/", {}, format="json")

        response = alice_client.delete(f"{BASE}/chats/{private_chat.id}/mute/")

        assert response.data["is_muted"] is False

    def test_pin_and_unpin(self, alice_client, private_chat):
        response = alice_client.post(f"{BASE}/chats/{private_chat.id}/pin/")

        assert response.data["is_pinned"] is True
        assert alice_client.get(f"{BASE}/chats/pinned/").data["count"] == 1

        response = alice_client.delete(f"{BASE}/chats/{private_chat.id}/pin/")
        assert response.data["is_pinned"] is False

    def test_pin_limit(self, alice_client, alice, settings):
        from authentication.tests.factories import UserFactory
        from chat.tests.factories import make_chat

        settings.CHAT_MAX_PINNED = 1
        first = make_chat(alice, UserFactory())
        second = make_chat(alice, UserFactory())
        alice_client.post(f"{BASE}/chats/{first.id}/pin/")

        response = alice_client.post(f"{BASE}/chats/{second.id}/pin/")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "PIN_LIMIT_REACHED"

    def test_state_is_per_user(self, alice_client, bob_client, private_chat):
        alice_client.post(f"{BASE}/chats/{private_chat.id}/archive/")

        assert bob_client.get(f"{BASE}/chats/").data["count"] == 1

    def test_muted_archived_chat_keeps_working(
        self, alice_client, bob_client, private_chat
    ):
        """
        Mute and archive are personal and never stop a chat.

        Why it matters: alice's flags must not change bob's view, and an
        archived chat still receives and stores bob's messages.
        """
        until = timezone.now() + timedelta(hours=8)
        alice_client.post(
            f"{BASE}/chats/{private_chat.id}/mute/",
            {"muted_until": until.isoformat()},
            format="json",
        )

        assert alice_client.get(f"{BASE}/chats/").data["results"][0]["is_muted"] is True
        assert bob_client.get(f"{BASE}/chats/").data["results"][0]["is_muted"] is False

        alice_client.post(f"{BASE}/chats/{private_chat.id}/archive/")
        sent = _post_message(bob_client, private_chat, "Still there?")

        assert sent.status_code == status.HTTP_201_CREATED
        assert Message.objects.filter(pk=sent.data["id"], chat=private_chat).exists()
        alice_messages = alice_client.get(f"{BASE}/chats/{private_chat.id}/messages/")
        assert [m["content"] for m in alice_messages.data["results"]] == ["Still there?"]
        assert alice_client.get(f"{BASE}/chats/").data["count"] == 0
        archived = alice_client.get(f"{BASE}/chats/archived/").data
        assert [row["id"] for row in archived["results"]] == [private_chat.id]

        reactions_url = f"{BASE}/messages/{sent.data['id']}/reactions/"
        thumbs = alice_client.post(reactions_url, {"emoji": "👍"}, format="json")
        heart = alice_client.post(reactions_url, {"emoji": "❤️"}, format="json")
        again = alice_client.post(reactions_url, {"emoji": "👍"}, format="json")

        assert thumbs.status_code == status.HTTP_201_CREATED
        assert heart.status_code == status.HTTP_201_CREATED
        assert again.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert again.data["error_code"] == "DUPLICATE_REACTION"
        listed = alice_client.get(reactions_url).data
        assert listed["counts"] == {"👍": 1, "❤️": 1}


@pytest.mark.django_db
class TestParticipantEndpoints:
    def test_add(self, alice_client, group_chat, outsider):
        response = alice_client.post(
            f"{BASE}/chats/{group_chat.id}/participants/",
            {"user_ids": [outsider.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert [u["id"] for u in response.data["added"]] == [outsider.id]

    def test_remove(self, bob_client, group_chat, carol):
        response = bob_client.delete(
            f"{BASE}/chats/{group_chat.id}/participants/",
            {"user_ids": [carol.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"removed": [carol.id]}
        assert not ChatParticipant.objects.filter(chat=group_chat, user=carol).exists()

    def test_private_chat_is_fixed(self, alice_client, private_chat, outsider):
        response = alice_client.post(
            f"{BASE}/chats/{private_chat.id}/participants/",
            {"user_ids": [outsider.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "PRIVATE_CHAT_MEMBERSHIP"

    def test_add_unknown_user(self, alice_client, group_chat):
        response = alice_client.post(
            f"{BASE}/chats/{group_chat.id}/participants/",
            {"user_ids": [999999]},
            format="json",
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "UNKNOWN_USER"

    def test_empty_user_ids(self, alice_client, group_chat):
        response = alice_client.post(
            f"{BASE}/chats/{group_chat.id}/participants/",
            {"user_ids": []},
            format="json",
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "VALIDATION_ERROR"


@pytest.mark.django_db
class TestRealtimeEndpoints:
    def test_typing(self, alice_client, private_chat, alice):
        response = alice_client.post(f"{BASE}/chats/{private_chat.id}/typing/start/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_typing"] is True
        assert response.data["user"]["id"] == alice.id

        response = alice_client.post(f"{BASE}/chats/{private_chat.id}/typing/stop/")
        assert response.data["is_typing"] is False

    def test_presence(self, alice_client, alice):
        response = alice_client.post(
            f"{BASE}/presence/", {"is_online": True}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["user_id"] == alice.id
        assert response.data["is_online"] is True
        alice.refresh_from_db()
        assert alice.is_online is True


# =============================================================================
# Messages
# =============================================================================


@pytest.mark.django_db
class TestMessageEndpoints:
    def test_send(self, alice_client, private_chat, alice):
        response = _post_message(alice_client, private_chat, "Hi Bob")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["content"] == "Hi Bob"
        assert response.data["sender"]["id"] == alice.id
        assert response.data["reactions"] == {}

    def test_send_too_long(self, alice_client, private_chat):
        response = _post_message(alice_client, private_chat, "x" * 1001)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "VALIDATION_ERROR"
        assert "content" in response.data["errors"]

    def test_send_blank_text(self, alice_client, private_chat):
        response = _post_message(alice_client, private_chat, "   ")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "EMPTY_CONTENT"

    def test_send_to_foreign_chat(self, outsider_client, private_chat):
        response = _post_message(outsider_client, private_chat)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_reply(self, alice_client, bob_client, private_chat):
        original = _post_message(alice_client, private_chat, "Question").data

        response = _post_message(
            bob_client, private_chat, "Answer", reply_to_id=original["id"]
        )

        assert response.data["reply_to"]["id"] == original["id"]
        assert response.data["reply_to"]["content"] == "Question"

    def test_list_newest_first(self, alice_client, private_chat):
        for text in ("one", "two", "three"):
            _post_message(alice_client, private_chat, text)

        response = alice_client.get(
            f"{BASE}/chats/{private_chat.id}/messages/", {"page_size": 2}
        )

        assert response.status_code == status.HTTP_200_OK
        assert [m["content"] for m in response.data["results"]] == ["three", "two"]
        assert response.data["next"] is not None

        older = alice_client.get(response.data["next"])
        assert [m["content"] for m in older.data["results"]] == ["one"]

    def test_retrieve(self, bob_client, alice_client, private_chat):
        message = _post_message(alice_client, private_chat).data

        response = bob_client.get(f"{BASE}/messages/{message['id']}/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == message["id"]

    def test_delete_for_me_by_default(self, alice_client, bob_client, private_chat):
        message = _post_message(alice_client, private_chat).data

        response = alice_client.delete(f"{BASE}/messages/{message['id']}/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"message_id": message["id"], "delete_type": "for_me"}
        assert alice_client.get(f"{BASE}/messages/{message['id']}/").status_code == 404
        assert bob_client.get(f"{BASE}/messages/{message['id']}/").status_code == 200

    def test_delete_for_everyone(self, alice_client, bob_client, private_chat):
        message = _post_message(alice_client, private_chat).data

        response = alice_client.delete(
            f"{BASE}/messages/{message['id']}/",
            {"delete_type": "for_everyone"},
            format="json",
        )

        assert response.data["delete_type"] == "for_everyone"
        assert bob_client.get(f"{BASE}/messages/{message['id']}/").status_code == 404

    def test_delete_someone_elses_message(self, alice_client, bob_client, private_chat):
        message = _post_message(alice_client, private_chat).data

        response = bob_client.delete(f"{BASE}/messages/{message['id']}/")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_MESSAGE_OWNER"

    def test_replies(self, alice_client, bob_client, private_chat):
        root = _post_message(alice_client, private_chat, "root").data
        _post_message(bob_client, private_chat, "first", reply_to_id=root["id"])
        _post_message(alice_client, private_chat, "second", reply_to_id=root["id"])

        response = bob_client.get(f"{BASE}/messages/{root['id']}/replies/")

        assert [m["content"] for m in response.data["results"]] == ["first", "second"]

    def test_forward(self, alice_client, private_chat, group_chat):
        message = _post_message(alice_client, private_chat, "fwd me").data

        response = alice_client.post(
            f"{BASE}/messages/{message['id']}/forward/",
            {"chat_id": group_chat.id},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["chat_id"] == group_chat.id
        assert response.data["is_forwarded"] is True
        assert response.data["forwarded_from_id"] == message["id"]

    def test_forward_from_foreign_chat(
        self, alice_client, outsider_client, outsider, private_chat
    ):
        message = _post_message(alice_client, private_chat, "alice-bob secret").data
        own_chat = make_chat(outsider, UserFactory())

        response = outsider_client.post(
            f"{BASE}/messages/{message['id']}/forward/",
            {"chat_id": own_chat.id},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_PARTICIPANT"
        assert not Message.objects.filter(chat=own_chat).exists()

    def test_forward_multiple(self, alice_client, private_chat, group_chat):
        first = _post_message(alice_client, private_chat, "a").data
        second = _post_message(alice_client, private_chat, "b").data

        response = alice_client.post(
            f"{BASE}/messages/forward-multiple/",
            {"message_ids": [second["id"], first["id"], 999999], "chat_id": group_chat.id},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["count"] == 2
        assert [m["content"] for m in response.data["messages"]] == ["b", "a"]

    def test_mark_message_read(self, alice_client, bob_client, private_chat):
        message = _post_message(alice_client, private_chat).data

        response = bob_client.post(f"{BASE}/messages/{message['id']}/read/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["message_id"] == message["id"]
        assert response.data["read_at"] is not None

    def test_mark_chat_read(self, alice_client, bob_client, private_chat):
        _post_message(alice_client, private_chat, "one")
        _post_message(alice_client, private_chat, "two")

        response = bob_client.post(f"{BASE}/chats/{private_chat.id}/read/")

        assert response.data == {"read_count": 2}
        assert bob_client.get(f"{BASE}/chats/").data["results"][0]["unread_count"] == 0


# =============================================================================
# Reactions
# =============================================================================


@pytest.mark.django_db
class TestReactionEndpoints:
    @pytest.fixture
    def message(self, private_chat, alice):
        return Message.objects.create(chat=private_chat, sender=alice, content="hi")

    def test_add_and_list(self, bob_client, alice_client, message):
        response = bob_client.post(
            f"{BASE}/messages/{message.id}/reactions/", {"emoji": "🔥"}, format="json"
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["emoji"] == "🔥"

        response = alice_client.get(f"{BASE}/messages/{message.id}/reactions/")
        assert response.data["counts"] == {"🔥": 1}
        assert len(response.data["reactions"]) == 1

    def test_duplicate(self, bob_client, message, bob):
        MessageReactionFactory(message=message, user=bob, emoji="🔥")

        response = bob_client.post(
            f"{BASE}/messages/{message.id}/reactions/", {"emoji": "🔥"}, format="json"
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "DUPLICATE_REACTION"

    def test_invalid_emoji(self, bob_client, message):
        response = bob_client.post(
            f"{BASE}/messages/{message.id}/reactions/", {"emoji": "abc"}, format="json"
        )

        assert response.data["error_code"] == "INVALID_EMOJI"

    def test_update(self, bob_client, message, bob):
        reaction = MessageReactionFactory(message=message, user=bob)

        response = bob_client.patch(
            f"{BASE}/messages/{message.id}/reactions/{reaction.id}/",
            {"emoji": "🎉"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["emoji"] == "🎉"

    def test_update_someone_elses(self, alice_client, message, bob):
        reaction = MessageReactionFactory(message=message, user=bob)

        response = alice_client.patch(
            f"{BASE}/messages/{message.id}/reactions/{reaction.id}/",
            {"emoji": "🎉"},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_REACTION_OWNER"

    def test_remove(self, bob_client, message, bob):
        reaction = MessageReactionFactory(message=message, user=bob)

        response = bob_client.delete(
            f"{BASE}/messages/{message.id}/reactions/{reaction.id}/"
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not MessageReaction.objects.filter(pk=reaction.pk).exists()

    def test_remove_unknown(self, bob_client, message):
        response = bob_client.delete(f"{BASE}/messages/{message.id}/reactions/999999/")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "REACTION_NOT_FOUND"


# =============================================================================
# Search and export
# =============================================================================


@pytest.mark.django_db
class TestSearchEndpoint:
    def test_search(self, alice_client, private_chat):
        _post_message(alice_client, private_chat, "deploy on friday")
        _post_message(alice_client, private_chat, "deploy deploy")

        response = alice_client.get(f"{BASE}/messages/search/", {"q": "deploy"})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["total"] == 2
        assert response.data["results"][0]["content"] == "deploy deploy"
        assert response.data["results"][0]["occurrences"] == 2
        assert response.data["results"][0]["chat"]["id"] == private_chat.id

    def test_query_too_short(self, alice_client):
        response = alice_client.get(f"{BASE}/messages/search/", {"q": "ab"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "QUERY_TOO_SHORT"

    def test_missing_query(self, alice_client):
        response = alice_client.get(f"{BASE}/messages/search/")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "VALIDATION_ERROR"


@pytest.mark.django_db
class TestExportEndpoint:
    def test_json(self, alice_client, private_chat):
        _post_message(alice_client, private_chat, "exported")

        response = alice_client.get(f"{BASE}/chats/{private_chat.id}/export/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["messages"][0]["content"] == "exported"
        assert response.data["pagination"]["total"] == 1

    def test_csv_attachment(self, alice_client, private_chat):
        _post_message(alice_client, private_chat, "exported")

        response = alice_client.get(
            f"{BASE}/chats/{private_chat.id}/export/", {"format": "CSV"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response["Content-Type"].startswith("text/csv")
        assert response["Content-Disposition"].startswith("attachment; filename=")
        assert b"Chat Information" in response.content

    def test_unsupported_format(self, alice_client, private_chat):
        response = alice_client.get(
            f"{BASE}/chats/{private_chat.id}/export/", {"format": "pdf"}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "UNSUPPORTED_FORMAT"

    def test_page_size_too_large(self, alice_client, private_chat):
        response = alice_client.get(
            f"{BASE}/chats/{private_chat.id}/export/", {"per_page": 5000}
        )

        assert response.data["error_code"] == "INVALID_PAGE_SIZE"
