"""
core.domain.access — Role helpers and scope-rule dispatch.

Per-app visibility rules do NOT live here.  Each app's ``services.py``
owns its own scope-rules list; this module provides the shared pieces:

1) ``get_user_role_name`` — normalised role of a profile.
2) ``apply_role_scope``   — ordered role dispatch over a queryset.

Usage in an app's service layer::

    from core.domain.access import apply_role_scope

    CASE_SCOPE_RULES = [
        ({"admin"}, lambda qs, u: qs),
        (None,      lambda qs, u: qs.filter(Q(reporter=u) | Q(assigned_rescuer=u))),
    ]

    qs = apply_role_scope(RescueCase.objects.all(), user, scope_rules=CASE_SCOPE_RULES)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable

from django.db.models import QuerySet

if TYPE_CHECKING:
    from accounts.models import UserProfile

# Takes (queryset, user) and returns a filtered queryset.
ScopeFilter = Callable[[QuerySet, "UserProfile"], QuerySet]

# (roles the rule applies to or ``None`` for everyone, filter_fn)
ScopeRule = tuple[Iterable[str] | None, ScopeFilter]


def get_user_role_name(user: UserProfile) -> str | None:
    """
    Return the role name for a profile, or ``None`` for anonymous users.

    Django superusers are reported as ``admin`` regardless of their
    stored role.
    """
    if not getattr(user, "is_authenticated", False):
        return None
    if user.is_superuser:
        return "admin"
    return getattr(user, "role", None)


def apply_role_scope(
    queryset: QuerySet,
    user: UserProfile,
    *,
    scope_rules: list[ScopeRule],
) -> QuerySet:
    """
    Apply the first scope rule whose role set matches the user.

    Rules are checked **in order**; order them from broadest to narrowest.
    When no rule matches, an empty queryset is returned.
    """
    role = get_user_role_name(user)
    for roles, filter_fn in scope_rules:
        if roles is None or role in roles:
            return filter_fn(queryset, user)
    return queryset.none()
