"""
Core app serializers.

Read-only representations for the notification inbox.
"""

from __future__ import annotations

from rest_framework import serializers


class NotificationSerializer(serializers.Serializer):
    """
    Read-only serializer for ``Notification`` instances.

    Used by the Notification ViewSet to list and retrieve notifications
    for the authenticated user.
    """

    id = serializers.IntegerField(read_only=True, help_text="Notification PK.")
    content = serializers.CharField(
        read_only=True,
        help_text="Notification message body.",
    )
    report = serializers.PrimaryKeyRelatedField(
        read_only=True,
        help_text="PK of the related report (if any).",
    )
    is_read = serializers.BooleanField(
        read_only=True,
        help_text="Whether the recipient has marked this notification as read.",
    )
    created_at = serializers.DateTimeField(
        read_only=True,
        help_text="When the notification was created.",
    )
