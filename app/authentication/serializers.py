"""
Serializers for the user directory.

- UserSummarySerializer: public snapshot embedded in chat payloads/events
- UserSerializer: the authenticated user's own record
"""

from rest_framework import serializers

from authentication.models import User


class UserSummarySerializer(serializers.ModelSerializer):
    """Public user snapshot (id, name, avatar) used across chat payloads."""

    class Meta:
        model = User
        fields = ["id", "name", "avatar"]
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for the current user (GET/PATCH /api/v1/auth/me/).

    Only the display fields are writable.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "name",
            "avatar",
            "is_online",
            "last_seen",
            "date_joined",
        ]
        read_only_fields = ["id", "email", "is_online", "last_seen", "date_joined"]
