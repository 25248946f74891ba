"""
Authentication views.

Credential issuance is delegated to djangorestframework-simplejwt
(TokenObtainPairView / TokenRefreshView, wired in urls.py). This module only
exposes the current principal's own record.
"""

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework.generics import RetrieveUpdateAPIView
from rest_framework.permissions import IsAuthenticated

from authentication.serializers import UserSerializer


@extend_schema_view(
    get=extend_schema(
        operation_id="get_current_user",
        summary="Get current user",
        tags=["Auth - User"],
    ),
    put=extend_schema(
        operation_id="replace_current_user",
        summary="Replace current user",
        tags=["Auth - User"],
    ),
    patch=extend_schema(
        operation_id="update_current_user",
        summary="Update current user",
        tags=["Auth - User"],
    ),
)
class CurrentUserView(RetrieveUpdateAPIView):
    """Read or update the authenticated user's name and avatar."""

    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user
