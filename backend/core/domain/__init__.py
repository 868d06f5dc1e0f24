"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF handler translating those exceptions to responses.
notifications      After-commit notification enqueue helper.
transactions       Row locking and compare-and-set helpers.

Usage from any app::

    from core.domain.exceptions import DomainError, InsufficientRights
    from core.domain.notifications import NotificationService
    from core.domain.transactions import compare_and_set, lock_for_update
"""
