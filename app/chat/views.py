"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ChatViewSet: Chat lists, creation, per-user state and chat-scoped actions
- MessageViewSet: Message detail, delete, replies, forward, reactions
- ReactionDetailView: Update/remove a single reaction
- MessageSearchView: Ranked search across the caller's chats
- PresenceView: Online status

URL Structure:
    /api/v1/chat/chats/                              GET, POST
    /api/v1/chat/chats/archived/ | muted/ | pinned/  GET
    /api/v1/chat/chats/{id}/                         GET
    /api/v1/chat/chats/{id}/archive/                 POST, DELETE
    /api/v1/chat/chats/{id}/mute/                    POST, DELETE
    /api/v1/chat/chats/{id}/pin/                     POST, DELETE
    /api/v1/chat/chats/{id}/participants/            POST, DELETE
    /api/v1/chat/chats/{id}/typing/start/ | stop/    POST
    /api/v1/chat/chats/{id}/read/                    POST
    /api/v1/chat/chats/{id}/export/                  GET
    /api/v1/chat/chats/{id}/messages/                GET, POST
    /api/v1/chat/messages/{id}/                      GET, DELETE
    /api/v1/chat/messages/{id}/replies/              GET
    /api/v1/chat/messages/{id}/forward/              POST
    /api/v1/chat/messages/forward-multiple/          POST
    /api/v1/chat/messages/{id}/read/                 POST
    /api/v1/chat/messages/{id}/reactions/            GET, POST
    /api/v1/chat/messages/{id}/reactions/{rid}/      PATCH, DELETE
    /api/v1/chat/messages/search/                    GET
    /api/v1/chat/presence/                           POST

Design Decisions:
    - Views only parse input, build commands and render results
    - All operations use the service layer for business logic
    - Service error codes map to HTTP status through chat.constants.error_status
"""

from __future__ import annotations

from django.http import HttpResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.services import ServiceResult

from chat.commands import DeleteMessageCommand
from chat.constants import error_status
from chat.export import TranscriptExportService
from chat.pagination import (
    ChatListPagination,
    MessageCursorPagination,
    ReplyCursorPagination,
)
from chat.permissions import IsChatParticipant
from chat.serializers import (
    ChatCreateSerializer,
    ChatListSerializer,
    ExportQuerySerializer,
    ForwardMessageSerializer,
    ForwardMultipleSerializer,
    MessageCreateSerializer,
    MessageDeleteSerializer,
    MessageReactionSerializer,
    MessageSerializer,
    MuteChatSerializer,
    ParticipantIdsSerializer,
    PresenceSerializer,
    ReactionWriteSerializer,
    SearchQuerySerializer,
    SearchResultSerializer,
    UserSummarySerializer,
)
from chat.services import (
    ChatService,
    MessageSearchService,
    MessageService,
    ParticipantRegistry,
    ParticipantStateService,
    PresenceService,
    ReactionService,
    ReadMarkerService,
    TypingService,
)


def failure_response(result: ServiceResult) -> Response:
    """Render a failed ServiceResult with the status for its error code."""
    return Response(result.to_response(), status=error_status(result.error_code))


def _membership_response(result: ServiceResult, request) -> Response:
    if not result:
        return failure_response(result)
    return Response(ChatListSerializer(result.data, context={"request": request}).data)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_chats",
        summary="List chats",
        description="Chats of the current user, excluding archived ones.",
        tags=["Chat - Chats"],
    ),
    create=extend_schema(
        operation_id="create_chat",
        summary="Create chat",
        description=(
            "Create a group chat, or get-or-create a private chat. "
            "Returns 200 when the private chat already existed."
        ),
        request=ChatCreateSerializer,
        responses={200: ChatListSerializer, 201: ChatListSerializer},
        tags=["Chat - Chats"],
    ),
    retrieve=extend_schema(
        operation_id="get_chat",
        summary="Get chat",
        tags=["Chat - Chats"],
    ),
)
class ChatViewSet(viewsets.GenericViewSet):
    """
    ViewSet for chat operations.

    list / archived / muted / pinned:
        The caller's chats for one view, pinned first then by latest
        activity. Flags are the caller's own.

    create:
        Create a chat (private or group). The caller becomes creator and
        participant.

    archive / mute / pin:
        POST sets the caller's flag, DELETE clears it.

    participants:
        POST adds user_ids to a group chat, DELETE removes them.

    messages:
        GET lists visible messages newest first (cursor paginated),
        POST sends a message (optionally replying to another).
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ChatListSerializer
    pagination_class = ChatListPagination
    lookup_value_regex = r"\d+"

    def get_permissions(self):
        """Detail actions additionally require participation."""
        if self.detail:
            return [IsAuthenticated(), IsChatParticipant()]
        return [IsAuthenticated()]

    def get_queryset(self):
        return ParticipantStateService.list_for(self.request.user)

    def _list_view(self, request, view_name: str) -> Response:
        memberships = ParticipantStateService.list_for(request.user, view_name)
        page = self.paginate_queryset(memberships)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def list(self, request):
        return self._list_view(request, "default")

    @extend_schema(operation_id="list_archived_chats", summary="List archived chats", tags=["Chat - Chats"])
    @action(detail=False, methods=["get"])
    def archived(self, request):
        return self._list_view(request, "archived")

    @extend_schema(operation_id="list_muted_chats", summary="List muted chats", tags=["Chat - Chats"])
    @action(detail=False, methods=["get"])
    def muted(self, request):
        return self._list_view(request, "muted")

    @extend_schema(operation_id="list_pinned_chats", summary="List pinned chats", tags=["Chat - Chats"])
    @action(detail=False, methods=["get"])
    def pinned(self, request):
        return self._list_view(request, "pinned")

    def create(self, request):
        """Create a chat (private get-or-create, or group)."""
        serializer = ChatCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ChatService.create(serializer.to_command(), caller=request.user)
        if not result:
            return failure_response(result)

        chat, created = result.data
        membership = ChatService.detail(chat.id, request.user).data
        return Response(
            self.get_serializer(membership).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def retrieve(self, request, pk=None):
        return _membership_response(ChatService.detail(pk, request.user), request)

    @extend_schema(
        operation_id="archive_chat",
        summary="Archive or unarchive chat",
        request=None,
        tags=["Chat - State"],
    )
    @action(detail=True, methods=["post", "delete"])
    def archive(self, request, pk=None):
        if request.method == "DELETE":
            result = ParticipantStateService.unarchive(int(pk), request.user)
        else:
            result = ParticipantStateService.archive(int(pk), request.user)
        return _membership_response(result, request)

    @extend_schema(
        operation_id="mute_chat",
        summary="Mute or unmute chat",
        description=(
            "POST mutes until muted_until (15 minutes to 30 days ahead) or "
            "indefinitely when omitted. DELETE unmutes."
        ),
        request=MuteChatSerializer,
        tags=["Chat - State"],
    )
    @action(detail=True, methods=["post", "delete"])
    def mute(self, request, pk=None):
        if request.method == "DELETE":
            return _membership_response(
                ParticipantStateService.unmute(int(pk), request.user), request
            )

        serializer = MuteChatSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = ParticipantStateService.mute(
            serializer.to_command(int(pk)), request.user
        )
        return _membership_response(result, request)

    @extend_schema(
        operation_id="pin_chat",
        summary="Pin or unpin chat",
        request=None,
        tags=["Chat - State"],
    )
    @action(detail=True, methods=["post", "delete"])
    def pin(self, request, pk=None):
        if request.method == "DELETE":
            result = ParticipantStateService.unpin(int(pk), request.user)
        else:
            result = ParticipantStateService.pin(int(pk), request.user)
        return _membership_response(result, request)

    @extend_schema(
        operation_id="manage_chat_participants",
        summary="Add or remove participants",
        request=ParticipantIdsSerializer,
        tags=["Chat - Participants"],
    )
    @action(detail=True, methods=["post", "delete"])
    def participants(self, request, pk=None):
        serializer = ParticipantIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user_ids = serializer.validated_data["user_ids"]

        if request.method == "DELETE":
            result = ParticipantRegistry.remove(int(pk), user_ids, request.user)
            if not result:
                return failure_response(result)
            return Response({"removed": result.data})

        result = ParticipantRegistry.add(int(pk), user_ids, request.user)
        if not result:
            return failure_response(result)
        added = [participant.user for participant in result.data]
        return Response({"added": UserSummarySerializer(added, many=True).data})

    def _typing(self, request, pk, is_typing: bool) -> Response:
        result = TypingService.set_typing(int(pk), request.user, is_typing)
        if not result:
            return failure_response(result)
        return Response(result.data)

    @extend_schema(operation_id="start_typing", summary="Start typing", request=None, tags=["Chat - Realtime"])
    @action(detail=True, methods=["post"], url_path="typing/start")
    def typing_start(self, request, pk=None):
        return self._typing(request, pk, True)

    @extend_schema(operation_id="stop_typing", summary="Stop typing", request=None, tags=["Chat - Realtime"])
    @action(detail=True, methods=["post"], url_path="typing/stop")
    def typing_stop(self, request, pk=None):
        return self._typing(request, pk, False)

    @extend_schema(
        operation_id="mark_chat_read",
        summary="Mark chat as read",
        request=None,
        tags=["Chat - Chats"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        result = ReadMarkerService.mark_chat_read(int(pk), request.user)
        if not result:
            return failure_response(result)
        return Response({"read_count": result.data})

    @extend_schema(
        operation_id="export_chat",
        summary="Export chat transcript",
        parameters=[
            OpenApiParameter("format", OpenApiTypes.STR, description="json, csv or txt"),
            OpenApiParameter("start_date", OpenApiTypes.DATE),
            OpenApiParameter("end_date", OpenApiTypes.DATE),
            OpenApiParameter("page", OpenApiTypes.INT),
            OpenApiParameter("per_page", OpenApiTypes.INT, description="1-1000, default 100"),
        ],
        responses={200: OpenApiResponse(description="Transcript page or attachment")},
        tags=["Chat - Export"],
    )
    @action(detail=True, methods=["get"])
    def export(self, request, pk=None):
        serializer = ExportQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        result = TranscriptExportService.export(
            serializer.to_command(int(pk)), request.user
        )
        if not result:
            return failure_response(result)

        export = result.data
        if not export.is_attachment:
            return Response(export.data)

        response = HttpResponse(export.content, content_type=export.content_type)
        response["Content-Disposition"] = f'attachment; filename="{export.filename}"'
        return response

    @extend_schema(
        operation_id="chat_messages",
        summary="List or send messages",
        request=MessageCreateSerializer,
        responses={200: MessageSerializer(many=True), 201: MessageSerializer},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        if request.method == "POST":
            serializer = MessageCreateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            result = MessageService.send(serializer.to_command(int(pk)), request.user)
            if not result:
                return failure_response(result)
            return Response(
                MessageSerializer(result.data).data, status=status.HTTP_201_CREATED
            )

        result = MessageService.list_visible(int(pk), request.user)
        if not result:
            return failure_response(result)

        paginator = MessageCursorPagination()
        page = paginator.paginate_queryset(
            result.data.prefetch_related("reactions"), request, view=self
        )
        return paginator.get_paginated_response(
            MessageSerializer(page, many=True).data
        )


@extend_schema_view(
    retrieve=extend_schema(
        operation_id="get_message",
        summary="Get message",
        tags=["Chat - Messages"],
    ),
    destroy=extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        description="delete_type: for_me (default) or for_everyone. Sender only.",
        request=MessageDeleteSerializer,
        tags=["Chat - Messages"],
    ),
)
class MessageViewSet(viewsets.GenericViewSet):
    """
    ViewSet for message operations outside a chat listing.

    destroy:
        for_me hides the message for the caller only; for_everyone hides it
        for every participant. Only the sender may delete.

    forward / forward_multiple:
        Copy messages into a chat the caller participates in.

    reactions:
        GET lists reactions with per-emoji counts, POST adds one.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = MessageSerializer
    lookup_value_regex = r"\d+"

    def retrieve(self, request, pk=None):
        result = MessageService.get(int(pk), request.user)
        if not result:
            return failure_response(result)
        return Response(MessageSerializer(result.data).data)

    def destroy(self, request, pk=None):
        serializer = MessageDeleteSerializer(data=request.data or request.query_params)
        serializer.is_valid(raise_exception=True)

        command = DeleteMessageCommand(
            message_id=int(pk), scope=serializer.validated_data["delete_type"]
        )
        result = MessageService.delete(command, request.user)
        if not result:
            return failure_response(result)
        return Response(
            {
                "message_id": result.data.id,
                "delete_type": command.scope,
            }
        )

    @extend_schema(
        operation_id="list_message_replies",
        summary="List replies",
        responses={200: MessageSerializer(many=True)},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["get"])
    def replies(self, request, pk=None):
        result = MessageService.replies(int(pk), request.user)
        if not result:
            return failure_response(result)

        paginator = ReplyCursorPagination()
        page = paginator.paginate_queryset(
            result.data.prefetch_related("reactions"), request, view=self
        )
        return paginator.get_paginated_response(
            MessageSerializer(page, many=True).data
        )

    @extend_schema(
        operation_id="forward_message",
        summary="Forward message",
        request=ForwardMessageSerializer,
        responses={201: MessageSerializer},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["post"])
    def forward(self, request, pk=None):
        serializer = ForwardMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MessageService.forward(serializer.to_command(int(pk)), request.user)
        if not result:
            return failure_response(result)
        return Response(
            MessageSerializer(result.data).data, status=status.HTTP_201_CREATED
        )

    @extend_schema(
        operation_id="forward_multiple_messages",
        summary="Forward several messages",
        description="Unknown ids and messages the caller cannot read are skipped; order is preserved.",
        request=ForwardMultipleSerializer,
        tags=["Chat - Messages"],
    )
    @action(detail=False, methods=["post"], url_path="forward-multiple")
    def forward_multiple(self, request):
        serializer = ForwardMultipleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MessageService.forward_many(serializer.to_command(), request.user)
        if not result:
            return failure_response(result)
        return Response(
            {
                "messages": MessageSerializer(result.data, many=True).data,
                "count": len(result.data),
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="mark_message_read",
        summary="Mark message as read",
        request=None,
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        result = ReadMarkerService.mark_read(int(pk), request.user)
        if not result:
            return failure_response(result)
        return Response({"message_id": int(pk), "read_at": result.data.read_at})

    @extend_schema(
        operation_id="message_reactions",
        summary="List or add reactions",
        request=ReactionWriteSerializer,
        responses={200: OpenApiResponse(description="Reactions and counts"), 201: MessageReactionSerializer},
        tags=["Chat - Reactions"],
    )
    @action(detail=True, methods=["get", "post"])
    def reactions(self, request, pk=None):
        if request.method == "POST":
            serializer = ReactionWriteSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            result = ReactionService.add(
                int(pk), request.user, serializer.validated_data["emoji"]
            )
            if not result:
                return failure_response(result)
            return Response(
                MessageReactionSerializer(result.data).data,
                status=status.HTTP_201_CREATED,
            )

        result = ReactionService.list(int(pk), request.user)
        if not result:
            return failure_response(result)
        return Response(
            {
                "reactions": MessageReactionSerializer(
                    result.data["reactions"], many=True
                ).data,
                "counts": result.data["counts"],
            }
        )


class ReactionDetailView(APIView):
    """
    Update or remove one of the caller's reactions.

    PATCH/DELETE /api/v1/chat/messages/{message_id}/reactions/{reaction_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="update_reaction",
        summary="Change reaction emoji",
        request=ReactionWriteSerializer,
        responses={200: MessageReactionSerializer},
        tags=["Chat - Reactions"],
    )
    def patch(self, request, message_id: int, reaction_id: int):
        serializer = ReactionWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ReactionService.update(
            reaction_id,
            request.user,
            serializer.validated_data["emoji"],
            message_id=message_id,
        )
        if not result:
            return failure_response(result)
        return Response(MessageReactionSerializer(result.data).data)

    @extend_schema(
        operation_id="remove_reaction",
        summary="Remove reaction",
        responses={204: None},
        tags=["Chat - Reactions"],
    )
    def delete(self, request, message_id: int, reaction_id: int):
        result = ReactionService.remove(reaction_id, request.user, message_id=message_id)
        if not result:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MessageSearchView(APIView):
    """
    Search messages across user's chats.

    GET /api/v1/chat/messages/search/?q=query&chat_id=X&page=1&per_page=15
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="search_messages",
        summary="Search messages",
        description=(
            "Case-insensitive substring search over visible messages in chats "
            "where the user is a participant. Results are ranked by number of "
            "occurrences, then by recency."
        ),
        parameters=[
            OpenApiParameter(
                name="q",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                description="Search query (minimum 3 characters)",
                required=True,
            ),
            OpenApiParameter(
                name="chat_id",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                description="Limit search to one chat",
                required=False,
            ),
            OpenApiParameter(name="page", type=OpenApiTypes.INT, required=False),
            OpenApiParameter(
                name="per_page",
                type=OpenApiTypes.INT,
                description="Results per page (default 15, max 100)",
                required=False,
            ),
        ],
        responses={
            200: OpenApiResponse(description="Ranked results with page metadata"),
            422: OpenApiResponse(description="Query too short or invalid parameters"),
        },
        tags=["Chat - Search"],
    )
    def get(self, request):
        """Search for messages."""
        serializer = SearchQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        result = MessageSearchService.search(serializer.to_command(), request.user)
        if not result:
            return failure_response(result)

        data = result.data
        return Response(
            {
                "results": SearchResultSerializer(data["results"], many=True).data,
                "page": data["page"],
                "per_page": data["per_page"],
                "total": data["total"],
                "last_page": data["last_page"],
            }
        )


class PresenceView(APIView):
    """
    Set the current user's online status.

    POST /api/v1/chat/presence/ {"is_online": true}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="set_presence",
        summary="Set online status",
        request=PresenceSerializer,
        tags=["Chat - Presence"],
    )
    def post(self, request):
        serializer = PresenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PresenceService.set_online(
            request.user, serializer.validated_data["is_online"]
        )
        if not result:
            return failure_response(result)
        return Response(result.data)
