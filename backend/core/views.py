"""
Core app views — **Thin Views**.

Each view delegates all business logic to the corresponding service in
``core.services``.  Views are responsible only for:

1. Extracting and validating query parameters from the request.
2. Calling the service with the authenticated user and parameters.
3. Serialising the result and returning an HTTP ``Response``.
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import NotificationSerializer
from .services import NotificationService


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API** — list and mark-as-read for the authenticated user.

    Endpoints
    ---------
    GET  /api/core/notifications/              → list all notifications
    POST /api/core/notifications/{id}/read/    → mark a notification as read
    POST /api/core/notifications/read-all/     → mark every notification as read

    **Authentication**: Required (``IsAuthenticated``).
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    def list(self, request: Request) -> Response:
        """
        Return all notifications for the authenticated user.

        ``?unread=true`` restricts the list to unread notifications.
        """
        unread_only = request.query_params.get("unread", "").lower() in ("1", "true")
        service = NotificationService(user=request.user)
        notifications = service.list_notifications(unread_only=unread_only)
        serializer = NotificationSerializer(notifications, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="read")
    def mark_as_read(self, request: Request, pk: int = None) -> Response:
        """**POST /api/core/notifications/{id}/read/**"""
        service = NotificationService(user=request.user)
        notification = service.mark_as_read(notification_id=pk)
        serializer = NotificationSerializer(notification)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="read-all")
    def mark_all_as_read(self, request: Request) -> Response:
        """**POST /api/core/notifications/read-all/**"""
        service = NotificationService(user=request.user)
        updated = service.mark_all_as_read()
        return Response({"updated": updated}, status=status.HTTP_200_OK)
