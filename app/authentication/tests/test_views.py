"""
Tests for authentication endpoints.

Endpoints:
    POST /api/v1/auth/token/          - Obtain JWT pair
    POST /api/v1/auth/token/refresh/  - Refresh access token
    GET/PATCH /api/v1/auth/me/        - Current user
"""

from rest_framework import status

TOKEN_URL = "/api/v1/auth/token/"
REFRESH_URL = "/api/v1/auth/token/refresh/"
ME_URL = "/api/v1/auth/me/"


class TestTokenObtain:
    """Tests for issuing JWT credentials."""

    def test_valid_credentials_return_token_pair(self, api_client, user):
        response = api_client.post(
            TOKEN_URL,
            {"email": user.email, "password": "TestPass123!"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data
        assert "refresh" in response.data

    def test_wrong_password_is_rejected(self, api_client, user):
        response = api_client.post(
            TOKEN_URL,
            {"email": user.email, "password": "wrong"},
            format="json",
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh_returns_new_access_token(self, api_client, user):
        pair = api_client.post(
            TOKEN_URL,
            {"email": user.email, "password": "TestPass123!"},
            format="json",
        ).data

        response = api_client.post(
            REFRESH_URL, {"refresh": pair["refresh"]}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data


class TestCurrentUser:
    """Tests for GET/PATCH /api/v1/auth/me/."""

    def test_requires_authentication(self, api_client, db):
        response = api_client.get(ME_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_returns_own_record(self, authenticated_client, user):
        response = authenticated_client.get(ME_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == user.id
        assert response.data["email"] == user.email
        assert response.data["is_online"] is False

    def test_updates_display_name(self, authenticated_client, user):
        response = authenticated_client.patch(
            ME_URL, {"name": "Renamed"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.name == "Renamed"

    def test_email_is_read_only(self, authenticated_client, user):
        original = user.email

        authenticated_client.patch(
            ME_URL, {"email": "other@example.com"}, format="json"
        )

        user.refresh_from_db()
        assert user.email == original
