"""
reports.routing — Category → responsible position.

The ``CategoryRoleMapping`` table names the role that handles each
category.  A role can exist in several departments, so a mapping may
also name a department; the router then needs exactly one matching
position.
"""

from __future__ import annotations

import logging

from accounts.models import DepartmentRole
from accounts.services import RoleDirectory
from core.domain.exceptions import NotConfigured
from core.domain.transactions import translate_db_errors

from .models import CategoryRoleMapping, ReportCategory

logger = logging.getLogger(__name__)


class CategoryRoleRouter:
    """Resolves which role and position handle a report category."""

    @staticmethod
    def _mapping(category: str) -> CategoryRoleMapping:
        if category not in ReportCategory.values:
            raise NotConfigured(f"Unknown report category '{category}'.")
        with translate_db_errors("category mapping lookup"):
            try:
                return CategoryRoleMapping.objects.get(category=category)
            except CategoryRoleMapping.DoesNotExist:
                raise NotConfigured(
                    f"No role is configured to handle category '{category}'."
                )

    @staticmethod
    def resolve_role(category: str) -> int:
        """
        Return the id of the role responsible for ``category``.

        Raises:
            NotConfigured: unknown category or no mapping.
        """
        return CategoryRoleRouter._mapping(category).role_id

    @staticmethod
    def resolve_position(category: str) -> DepartmentRole | None:
        """
        Return the single position handling ``category``.

        ``None`` when the mapped role is not held in any department.

        Raises:
            NotConfigured: unknown category, no mapping, or the mapping
                           matches more than one position.
        """
        mapping = CategoryRoleRouter._mapping(category)
        with translate_db_errors("position lookup"):
            positions = list(
                RoleDirectory.positions_for_role(mapping.role_id, mapping.department_id)[:2]
            )
        if not positions:
            logger.warning(
                "Category %s maps to role %s, which has no position",
                category,
                mapping.role_id,
            )
            return None
        if len(positions) > 1:
            raise NotConfigured(
                f"Category '{category}' maps to a role held in several "
                f"departments; set the department on the mapping."
            )
        return positions[0]
