"""
Core app models.

Provides abstract base models and shared utilities used across the project.
"""

from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class Notification(TimeStampedModel):
    """
    In-app notification sent to a user about a report they submitted or
    handle (assignment, status change, rejection).

    Delivery beyond the in-app inbox is not handled here.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    report = models.ForeignKey(
        "reports.Report",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
        verbose_name="Related Report",
    )
    content = models.TextField(verbose_name="Content")
    is_read = models.BooleanField(default=False, verbose_name="Read")

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
        ]

    def __str__(self):
        return f"[{self.recipient}] {self.content[:40]}"
