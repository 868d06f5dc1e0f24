"""
core.domain.notifications — Notification enqueue helper.

Centralises notification creation so every app uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **After commit** — ``enqueue`` registers the write with
  ``transaction.on_commit``; a notification is only persisted once the
  state change that triggered it is durable.  Outside a transaction the
  callback runs immediately.
* **Fire-and-forget** — a failure while persisting is logged and
  swallowed here; the already-committed state change stays the source of
  truth.
* **Report link** — ``related_report_id`` is optional and stored as a
  plain FK so the inbox can deep-link to the report.

Usage::

    from core.domain.notifications import NotificationService

    NotificationService.enqueue(
        user_id=report.assignee_id,
        content=f"Report #{report.pk} has been assigned to you.",
        related_report_id=report.pk,
    )
"""

from __future__ import annotations

import logging

from django.db import DatabaseError, transaction

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Stateless helper for enqueuing ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def enqueue(
        cls,
        user_id: int,
        content: str,
        related_report_id: int | None = None,
    ) -> None:
        """
        Schedule one notification for ``user_id``.

        Args:
            user_id:           Recipient user PK.
            content:           Human-readable message body.
            related_report_id: Optional PK of the report it refers to.
        """
        if user_id is None:
            logger.warning(
                "NotificationService.enqueue called without a recipient "
                "(report=%s)",
                related_report_id,
            )
            return

        transaction.on_commit(
            lambda: cls._persist(user_id, content, related_report_id)
        )

    @staticmethod
    def _persist(
        user_id: int,
        content: str,
        related_report_id: int | None,
    ) -> None:
        from core.models import Notification  # lazy import, avoids circular deps

        try:
            Notification.objects.create(
                recipient_id=user_id,
                content=content,
                report_id=related_report_id,
            )
        except DatabaseError:
            logger.exception(
                "Failed to persist notification for user=%s report=%s",
                user_id,
                related_report_id,
            )
            return

        logger.info(
            "Notification stored for user=%s report=%s",
            user_id,
            related_report_id,
        )
