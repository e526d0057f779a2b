"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF ``EXCEPTION_HANDLER`` translating those exceptions.
transactions       Conditional-update (compare-and-set) helpers.
access             Role helpers and row-visibility scope rules.

Usage from any app::

    from core.domain.exceptions import DomainError, NotFound
    from core.domain.transactions import compare_and_set
    from core.domain.access import apply_role_scope
"""
