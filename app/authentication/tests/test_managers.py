"""
Tests for UserManager and the User model helpers.

The UserManager provides:
- create_user(): Creates regular users with optional password
- create_superuser(): Creates admin users with elevated privileges

Related files:
    - managers.py: Implementation under test
    - models.py: User model that uses this manager
"""

import pytest

from authentication.models import User


class TestUserManagerCreateUser:
    """Tests for UserManager.create_user() method."""

    def test_creates_user_with_email_and_password(self, db):
        """
        Given valid email and password
        When create_user is called
        Then a user is created with those credentials
        """
        user = User.objects.create_user(
            email="mgr_create_user@example.com", password="SecurePass123!"
        )

        assert user.pk is not None
        assert user.email == "mgr_create_user@example.com"
        assert user.check_password("SecurePass123!") is True

    def test_normalizes_email_domain_to_lowercase(self, db):
        """
        Given an email with uppercase characters in domain
        When create_user is called
        Then the domain portion is normalized to lowercase
        """
        user = User.objects.create_user(
            email="Test.User@EXAMPLE.COM", password="TestPass123!"
        )

        assert user.email == "Test.User@example.com"

    def test_raises_valueerror_when_email_is_empty(self, db):
        with pytest.raises(ValueError) as exc_info:
            User.objects.create_user(email="", password="TestPass123!")

        assert "Email field must be set" in str(exc_info.value)

    def test_creates_user_without_password(self, db):
        """
        Given no password
        When create_user is called
        Then the user exists with an unusable password
        """
        user = User.objects.create_user(email="nopass@example.com")

        assert user.has_usable_password() is False

    def test_sets_default_flags_for_regular_user(self, db):
        user = User.objects.create_user(
            email="flags@example.com", password="TestPass123!"
        )

        assert user.is_active is True
        assert user.is_staff is False
        assert user.is_superuser is False
        assert user.is_online is False
        assert user.last_seen is None

    def test_accepts_display_fields(self, db):
        user = User.objects.create_user(
            email="display@example.com",
            password="TestPass123!",
            name="Jane Doe",
            avatar="avatars/jane.png",
        )

        assert user.name == "Jane Doe"
        assert user.avatar == "avatars/jane.png"


class TestUserManagerCreateSuperuser:
    """Tests for UserManager.create_superuser() method."""

    def test_creates_superuser_with_correct_flags(self, db):
        superuser = User.objects.create_superuser(
            email="super@example.com", password="AdminPass123!"
        )

        assert superuser.is_staff is True
        assert superuser.is_superuser is True
        assert superuser.is_active is True

    def test_raises_valueerror_when_is_staff_is_false(self, db):
        with pytest.raises(ValueError) as exc_info:
            User.objects.create_superuser(
                email="bad@example.com", password="AdminPass123!", is_staff=False
            )

        assert "is_staff=True" in str(exc_info.value)

    def test_raises_valueerror_when_is_superuser_is_false(self, db):
        with pytest.raises(ValueError) as exc_info:
            User.objects.create_superuser(
                email="bad@example.com",
                password="AdminPass123!",
                is_superuser=False,
            )

        assert "is_superuser=True" in str(exc_info.value)


class TestUserNames:
    """
    Tests for the display-name helpers.

    Why it matters: chat exports and list previews fall back to these when a
    user never set a display name.
    """

    def test_full_name_prefers_display_name(self, db):
        user = User.objects.create_user(email="jane@example.com", name="Jane Doe")

        assert user.get_full_name() == "Jane Doe"
        assert user.get_short_name() == "Jane"

    def test_full_name_falls_back_to_email(self, db):
        user = User.objects.create_user(email="anon@example.com")

        assert user.get_full_name() == "anon@example.com"
        assert user.get_short_name() == "anon"

    def test_str_is_email(self, db):
        user = User.objects.create_user(email="str@example.com")

        assert str(user) == "str@example.com"
