"""
core.domain.transactions — Helpers for safe state transitions.

Every contended write in this project is a *conditional update*: a single
``UPDATE ... WHERE <precondition>`` whose affected-row count tells the
caller whether it won.  No row is ever locked and no read-then-write pair
is used, so the guarantee holds across processes and replicas.

Usage::

    from core.domain.transactions import atomic_transition, compare_and_set

    won = compare_and_set(
        RescueCase,
        pk=case_id,
        condition=Q(status="pending", assigned_rescuer__isnull=True),
        values={"status": "claimed", "assigned_rescuer_id": actor.pk},
    )

    moved = atomic_transition(
        RescueCase,
        pk=case_id,
        current_status="claimed",
        target_status="en_route",
        allowed_sources={"claimed"},
    )
"""

from __future__ import annotations

from typing import Any, Iterable

from django.db import models
from django.db.models import Q
from django.utils import timezone


def compare_and_set(
    model_class: type[models.Model],
    *,
    pk: Any,
    condition: Q,
    values: dict[str, Any],
    touch: bool = True,
) -> bool:
    """
    Apply ``values`` to row ``pk`` only if ``condition`` holds right now.

    Args:
        model_class: Concrete model whose table is updated.
        pk:          Primary key of the target row.
        condition:   Precondition evaluated by the database in the same
                     statement as the write.
        values:      Column assignments (may contain ``F`` expressions).
        touch:       Also bump ``updated_at`` (``QuerySet.update`` skips
                     ``auto_now``).

    Returns:
        ``True`` iff exactly one row was updated.
    """
    values = dict(values)
    if touch:
        values.setdefault("updated_at", timezone.now())
    updated = model_class.objects.filter(Q(pk=pk) & condition).update(**values)
    return updated == 1


def atomic_transition(
    model_class: type[models.Model],
    *,
    pk: Any,
    current_status: str,
    target_status: str,
    allowed_sources: Iterable[str],
    status_field: str = "status",
    condition: Q | None = None,
    extra_values: dict[str, Any] | None = None,
) -> bool:
    """
    Move row ``pk`` from ``current_status`` to ``target_status``.

    ``current_status`` is the value the caller observed; the write only
    lands if the row still holds it, so a concurrent change makes this
    return ``False`` instead of overwriting.  ``current_status`` must be
    one of ``allowed_sources``, otherwise nothing is written.

    Args:
        model_class:     The model owning ``status_field``.
        pk:              Primary key of the row.
        current_status:  Observed status the transition starts from.
        target_status:   Desired new status.
        allowed_sources: Statuses from which ``target_status`` is reachable.
        status_field:    Name of the status column.
        condition:       Additional precondition, e.g. actor authorization.
        extra_values:    Other columns written in the same statement.

    Returns:
        ``True`` if the transition was applied.
    """
    if current_status not in set(allowed_sources):
        return False

    precondition = Q(**{status_field: current_status})
    if condition is not None:
        precondition &= condition

    values = {status_field: target_status}
    if extra_values:
        values.update(extra_values)

    return compare_and_set(model_class, pk=pk, condition=precondition, values=values)
