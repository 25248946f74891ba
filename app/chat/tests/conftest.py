"""
Test configuration and fixtures for chat tests.

This module provides:
- Users with fixed roles in the test chats (alice, bob, carol, outsider)
- A private chat (alice + bob) and a group chat (alice + bob + carol)
- API clients authenticated as each user

Usage:
    def test_example(private_chat, alice_client):
        response = alice_client.get(f'/api/v1/chat/chats/{private_chat.id}/')
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.tests.factories import make_chat


def _client_for(user) -> APIClient:
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    return UserFactory(name="Alice Smith")


@pytest.fixture
def bob(db):
    return UserFactory(name="Bob Jones")


@pytest.fixture
def carol(db):
    return UserFactory(name="Carol White")


@pytest.fixture
def outsider(db):
    """A user who is not a participant in any test chat."""
    return UserFactory(name="Eve Outsider")


# =============================================================================
# Chat Fixtures
# =============================================================================


@pytest.fixture
def private_chat(alice, bob):
    """Private chat between alice and bob."""
    return make_chat(alice, bob)


@pytest.fixture
def group_chat(alice, bob, carol):
    """Group chat "Team" with alice (creator), bob and carol."""
    return make_chat(alice, bob, carol, name="Team")


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def alice_client(alice):
    return _client_for(alice)


@pytest.fixture
def bob_client(bob):
    return _client_for(bob)


@pytest.fixture
def outsider_client(outsider):
    return _client_for(outsider)
