"""
core.domain.transactions — Helpers for safe state transitions.

Wraps ``select_for_update`` and conditional ``UPDATE`` statements into
reusable patterns so every service follows the same concurrency-safe
approach.

Two strategies are offered:

* **Pessimistic** — ``lock_for_update`` takes a row lock that is held
  until the surrounding ``transaction.atomic()`` block ends.  Used to
  serialize work that must observe each other's writes (e.g. staff
  assignment for one position).
* **Optimistic** — ``compare_and_set`` writes only if a field still holds
  the value read earlier and reports whether the write happened.

``translate_db_errors`` turns raw database failures raised inside a block
into ``Conflict`` / ``InfrastructureError`` so callers never see driver
exceptions.

Usage::

    from core.domain.transactions import compare_and_set, lock_for_update

    with transaction.atomic():
        position = lock_for_update(DepartmentRole, position_id)
        ...
        written = compare_and_set(
            Report, report.pk,
            field="status", expected="assigned",
            values={"status": "in_progress"},
        )
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, TypeVar

from django.db import DatabaseError, IntegrityError, models
from django.utils import timezone

from core.domain.exceptions import Conflict, InfrastructureError, NotFound

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=models.Model)


@contextmanager
def translate_db_errors(operation: str):
    """
    Re-raise database failures inside the block as domain errors.

    * ``IntegrityError`` → ``Conflict``
    * any other ``DatabaseError`` → ``InfrastructureError`` (retryable)

    Usage::

        with translate_db_errors("report update"):
            Report.objects.filter(...).update(...)
    """
    try:
        yield
    except IntegrityError as exc:
        logger.warning("Integrity error during %s: %s", operation, exc)
        raise Conflict(f"The {operation} violates a data constraint.") from exc
    except DatabaseError as exc:
        logger.exception("Database error during %s", operation)
        raise InfrastructureError(
            "The data store is temporarily unavailable."
        ) from exc


def lock_for_update(model_class: type[M], pk: Any) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except model_class.DoesNotExist:
        raise NotFound(f"{model_class.__name__} with pk={pk} does not exist.")


def compare_and_set(
    model_class: type[models.Model],
    pk: Any,
    *,
    field: str,
    expected: Any,
    values: dict[str, Any],
    touch: str | None = "updated_at",
) -> bool:
    """
    Update the row only if ``field`` still equals ``expected``.

    Args:
        model_class: The Django model class.
        pk:          Primary key of the row to update.
        field:       Name of the guard column.
        expected:    Value the guard column must still hold.
        values:      Column → new value mapping.
        touch:       Timestamp column refreshed with ``timezone.now()``
                     (``QuerySet.update`` bypasses ``auto_now``).
                     ``None`` disables it.

    Returns:
        ``True`` if exactly one row was written, ``False`` otherwise.
    """
    values = dict(values)
    if touch:
        values[touch] = timezone.now()

    updated = (
        model_class.objects
        .filter(pk=pk, **{field: expected})
        .update(**values)
    )
    return updated == 1
