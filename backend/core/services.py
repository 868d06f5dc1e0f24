"""
Core app Service Layer.

Currently hosts the notification inbox used by ``core.views``.  Creation
of notifications goes through ``core.domain.notifications`` instead.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db.models import QuerySet

from core.domain.exceptions import InsufficientRights, NotFound

from .models import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Handles listing and marking notifications as read for a given user.
    """

    def __init__(self, user: Any) -> None:
        self.user = user

    def list_notifications(self, *, unread_only: bool = False) -> QuerySet:
        """Return all notifications for ``self.user``, ordered most recent first."""
        qs = Notification.objects.filter(recipient=self.user)
        if unread_only:
            qs = qs.filter(is_read=False)
        return qs.order_by("-created_at", "-id")

    def mark_as_read(self, notification_id: int) -> Notification:
        """
        Mark a single notification as read.

        Raises ``NotFound`` for an unknown id and ``InsufficientRights``
        when the notification belongs to someone else.
        """
        try:
            notification = Notification.objects.get(pk=notification_id)
        except Notification.DoesNotExist:
            raise NotFound(f"Notification with id {notification_id} not found.")

        if notification.recipient_id != self.user.pk:
            raise InsufficientRights(
                "You can only mark your own notifications as read."
            )

        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])
        return notification

    def mark_all_as_read(self) -> int:
        """Mark every unread notification of ``self.user`` as read."""
        updated = (
            Notification.objects
            .filter(recipient=self.user, is_read=False)
            .update(is_read=True)
        )
        logger.info("Marked %d notification(s) read for user=%s", updated, self.user.pk)
        return updated
