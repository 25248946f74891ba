"""
Authentication models.

This module defines the user directory consumed by the chat engine:
- User: Custom user model with email-based authentication

The chat domain only needs a stable principal plus a small public snapshot
(id, name, avatar) and presence fields (is_online, last_seen).

Related files:
    - managers.py: Custom user manager for email-based creation
    - serializers.py: UserSummarySerializer used in chat payloads
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        name: Display name shown to other chat participants
        avatar: Opaque avatar reference (URL or storage key)
        is_online: Last reported presence state
        last_seen: When the presence state last changed
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email='user@example.com',
            password='securepassword',
            name='Jane Doe',
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Display name shown to other participants",
    )
    avatar = models.CharField(
        max_length=500,
        blank=True,
        help_text="Avatar reference (URL or storage key)",
    )

    # Presence
    is_online = models.BooleanField(
        default=False,
        help_text="Whether the user is currently connected",
    )
    last_seen = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the user's presence last changed",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        """Return the display name, falling back to the email address."""
        return self.name or self.email

    def get_short_name(self):
        """Return the first word of the name, or the email local part."""
        if self.name:
            return self.name.split()[0]
        return self.email.split("@")[0]
