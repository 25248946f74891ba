"""
URL configuration for chat API.

URL Structure:
    Chats:
        /chats/                                  GET, POST
        /chats/archived/ | muted/ | pinned/      GET
        /chats/{id}/                             GET
        /chats/{id}/archive/ | mute/ | pin/      POST, DELETE
        /chats/{id}/participants/                POST, DELETE
        /chats/{id}/typing/start/ | stop/        POST
        /chats/{id}/read/                        POST
        /chats/{id}/export/                      GET
        /chats/{id}/messages/                    GET, POST

    Messages:
        /messages/{id}/                          GET, DELETE
        /messages/{id}/replies/                  GET
        /messages/{id}/forward/                  POST
        /messages/forward-multiple/              POST
        /messages/{id}/read/                     POST

    Reactions:
        /messages/{id}/reactions/                GET, POST
        /messages/{id}/reactions/{reaction_id}/  PATCH, DELETE

    Search:
        /messages/search/                        GET

    Presence:
        /presence/                               POST

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import (
    ChatViewSet,
    MessageSearchView,
    MessageViewSet,
    PresenceView,
    ReactionDetailView,
)

router = DefaultRouter()
router.register(r"chats", ChatViewSet, basename="chat")
router.register(r"messages", MessageViewSet, basename="message")

app_name = "chat"

urlpatterns = [
    # Registered before the router so "search" is never read as a message id
    path("messages/search/", MessageSearchView.as_view(), name="message-search"),
    path(
        "messages/<int:message_id>/reactions/<int:reaction_id>/",
        ReactionDetailView.as_view(),
        name="message-reaction-detail",
    ),
    path("presence/", PresenceView.as_view(), name="presence"),
    path("", include(router.urls)),
]
