"""
Cases app Service Layer.

This module is the **single source of truth** for all business logic
in the ``cases`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``CaseQueryService``     — Row visibility, listings, proximity search.
- ``CaseCreationService``  — New case + new-case fan-out.
- ``CaseClaimService``     — Atomic first-caller-wins claim.
- ``CaseWorkflowService``  — Validated status transitions.

Concurrency
-----------
Claims and transitions are single conditional ``UPDATE`` statements
(``core.domain.transactions``).  No row is locked and nothing is
coordinated in process memory, so exactly one writer wins even across
replicas.  Side effects (push fan-out, media cleanup, reporter update)
are recorded in the outbox inside the same transaction and run after
commit (``core.tasks``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from accounts.models import UserProfile
from core.domain.access import apply_role_scope
from core.domain.exceptions import NotFound
from core.domain.transactions import atomic_transition, compare_and_set
from core.geo import bounding_box, haversine_m, within_radius
from core.tasks import enqueue

from .models import (
    CaseStatus,
    CaseStatusLog,
    CaseVisibility,
    RescueCase,
    TERMINAL_STATUSES,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Valid transition map
# ═══════════════════════════════════════════════════════════════════

#: The only way from ``pending`` to ``claimed``; never accepted by
#: ``CaseWorkflowService.transition``.
CLAIM_TRANSITION: tuple[str, str] = (CaseStatus.PENDING, CaseStatus.CLAIMED)

#: ``(from_status, to_status)`` pairs reachable through ``transition``.
#: Every pair requires the actor to be the reporter, the assigned
#: rescuer or an admin.
ALLOWED_TRANSITIONS: frozenset[tuple[str, str]] = frozenset({
    (CaseStatus.CLAIMED, CaseStatus.EN_ROUTE),
    (CaseStatus.EN_ROUTE, CaseStatus.ARRIVED),
    (CaseStatus.ARRIVED, CaseStatus.RESOLVED),
    (CaseStatus.CLAIMED, CaseStatus.CANCELLED),
    (CaseStatus.PENDING, CaseStatus.CANCELLED),
    (CaseStatus.CLAIMED, CaseStatus.UNREACHABLE),
    (CaseStatus.EN_ROUTE, CaseStatus.UNREACHABLE),
})


def allowed_sources(target_status: str) -> set[str]:
    """Statuses from which ``transition`` may move a case to ``target_status``."""
    return {src for src, dst in ALLOWED_TRANSITIONS if dst == target_status}


@dataclass(frozen=True)
class ClaimResult:
    won: bool
    status: str
    assigned_rescuer_id: str | None


@dataclass(frozen=True)
class TransitionResult:
    ok: bool
    status: str


# Task names handled by the notifications and media apps.
TASK_FANOUT_NEW_CASE = "notifications.fanout_new_case"
TASK_MUTE_ON_CLAIM = "notifications.mute_on_claim"
TASK_NOTIFY_REPORTER = "notifications.notify_reporter"
TASK_CLEANUP_MEDIA = "media.cleanup_case"


# ═══════════════════════════════════════════════════════════════════
#  Case Query Service
# ═══════════════════════════════════════════════════════════════════

#: Listing scope: admins see every case, everybody else the cases they
#: reported or are assigned to.
CASE_SCOPE_RULES = [
    ({"admin"}, lambda qs, u: qs),
    (None, lambda qs, u: qs.filter(Q(reporter=u) | Q(assigned_rescuer=u))),
]

#: Cap on the number of rows returned by the proximity search.
NEARBY_LIMIT = 100


class CaseQueryService:
    """
    Row-level visibility and read queries.

    A case is visible to its reporter, its assigned rescuer, any admin,
    and to any profile whose home area covers the case while the case is
    ``visible`` and ``pending``.  Invisible and missing cases are both
    reported as ``NotFound``.
    """

    @staticmethod
    def base_queryset() -> QuerySet:
        return RescueCase.objects.select_related("reporter", "assigned_rescuer")

    @staticmethod
    def is_visible_to(case: RescueCase, actor: UserProfile) -> bool:
        if actor.is_admin_role:
            return True
        if case.reporter_id == actor.pk or case.assigned_rescuer_id == actor.pk:
            return True
        if case.visibility != CaseVisibility.VISIBLE or case.status != CaseStatus.PENDING:
            return False
        if not actor.has_home_area:
            return False
        return within_radius(case.lat, case.lng, actor.area_lat, actor.area_lng, actor.area_radius_m)

    @classmethod
    def get_visible_case(cls, case_id: Any, actor: UserProfile) -> RescueCase:
        """
        Fetch one case the actor may read.

        Raises:
            NotFound: If the case does not exist or is not visible.
        """
        case = cls.base_queryset().filter(pk=case_id).first()
        if case is None or not cls.is_visible_to(case, actor):
            raise NotFound("Case not found.")
        return case

    @classmethod
    def list_for_actor(cls, actor: UserProfile) -> QuerySet:
        """Cases the actor reported or is assigned to (all cases for admins)."""
        return apply_role_scope(cls.base_queryset(), actor, scope_rules=CASE_SCOPE_RULES)

    @classmethod
    def nearby(cls, actor: UserProfile) -> list[tuple[RescueCase, float]]:
        """
        Visible pending cases inside the actor's home area, nearest first.

        Returns ``(case, distance_m)`` pairs; an empty list when the actor
        has not set a home area.
        """
        if not actor.has_home_area:
            return []

        radius = actor.area_radius_m
        min_lat, max_lat, min_lng, max_lng = bounding_box(actor.area_lat, actor.area_lng, radius)
        candidates = cls.base_queryset().filter(
            status=CaseStatus.PENDING,
            visibility=CaseVisibility.VISIBLE,
            lat__gte=min_lat,
            lat__lte=max_lat,
            lng__gte=min_lng,
            lng__lte=max_lng,
        )

        hits = []
        for case in candidates:
            distance = haversine_m(case.lat, case.lng, actor.area_lat, actor.area_lng)
            if distance <= radius:
                hits.append((case, distance))
        hits.sort(key=lambda hit: hit[1])
        return hits[:NEARBY_LIMIT]

    @classmethod
    def status_log(cls, case_id: Any, actor: UserProfile) -> QuerySet:
        case = cls.get_visible_case(case_id, actor)
        return case.status_logs.select_related("changed_by").order_by("created_at", "pk")


# ═══════════════════════════════════════════════════════════════════
#  Case Creation Service
# ═══════════════════════════════════════════════════════════════════


class CaseCreationService:

    @staticmethod
    @transaction.atomic
    def create_case(
        reporter: UserProfile,
        *,
        lat: float,
        lng: float,
        description: str = "",
        wound_severity: int | None = None,
        landmark_hint: str = "",
        ai_confidence: float | None = None,
        detection_bbox: Any = None,
    ) -> RescueCase:
        """
        Create a ``pending`` case and schedule the new-case fan-out.

        The fan-out task is only dispatched once this transaction commits.
        """
        case = RescueCase.objects.create(
            reporter=reporter,
            lat=lat,
            lng=lng,
            description=description or "",
            wound_severity=wound_severity,
            landmark_hint=landmark_hint or "",
            ai_confidence=ai_confidence,
            detection_bbox=detection_bbox,
        )
        enqueue(TASK_FANOUT_NEW_CASE, case_id=str(case.pk))
        logger.info("Case %s reported by %s at (%.5f, %.5f)", case.pk, reporter.username, lat, lng)
        return case


# ═══════════════════════════════════════════════════════════════════
#  Case Claim Service
# ═══════════════════════════════════════════════════════════════════


class CaseClaimService:

    @staticmethod
    @transaction.atomic
    def claim(case_id: Any, actor: UserProfile) -> ClaimResult:
        """
        Make ``actor`` the exclusive rescuer of a pending case.

        A single conditional ``UPDATE`` matching ``status = pending AND
        assigned_rescuer IS NULL`` decides the winner.  Losing is a normal
        outcome: the result carries the authoritative status and assignee.

        Raises:
            NotFound: If the case does not exist.
        """
        won = compare_and_set(
            RescueCase,
            pk=case_id,
            condition=Q(status=CaseStatus.PENDING, assigned_rescuer__isnull=True),
            values={"status": CaseStatus.CLAIMED, "assigned_rescuer": actor},
        )

        if won:
            CaseStatusLog.objects.create(
                case_id=case_id,
                from_status=CaseStatus.PENDING,
                to_status=CaseStatus.CLAIMED,
                changed_by=actor,
            )
            enqueue(TASK_MUTE_ON_CLAIM, case_id=str(case_id), claimer_id=actor.pk)
            logger.info("Case %s claimed by %s", case_id, actor.username)
            return ClaimResult(True, CaseStatus.CLAIMED, actor.username)

        current = (
            RescueCase.objects
            .filter(pk=case_id)
            .values("status", "assigned_rescuer__username")
            .first()
        )
        if current is None:
            raise NotFound("Case not found.")

        logger.info(
            "Claim of case %s by %s lost (status=%s, assignee=%s)",
            case_id, actor.username, current["status"], current["assigned_rescuer__username"],
        )
        return ClaimResult(False, current["status"], current["assigned_rescuer__username"])


# ═══════════════════════════════════════════════════════════════════
#  Case Workflow Service
# ═══════════════════════════════════════════════════════════════════


class CaseWorkflowService:
    """
    Applies status transitions through the table in ``ALLOWED_TRANSITIONS``.

    Table membership and actor authorization are both part of the
    conditional ``UPDATE``: the write only lands while the case still
    holds the status the check was made against and the actor is still
    its reporter or assignee (admins skip the identity check, never the
    table check).
    """

    @staticmethod
    def _authorization(actor: UserProfile) -> Q | None:
        if actor.is_admin_role:
            return None
        return Q(reporter=actor) | Q(assigned_rescuer=actor)

    @classmethod
    @transaction.atomic
    def transition(cls, case_id: Any, actor: UserProfile, next_status: str) -> TransitionResult:
        """
        Move a case to ``next_status``.

        Returns ``ok=False`` with the authoritative current status when the
        pair is not in the table, the actor is not authorized, or another
        writer changed the case first.

        Raises:
            NotFound: If the case does not exist.
        """
        current = (
            RescueCase.objects
            .filter(pk=case_id)
            .values("status", "reporter_id", "assigned_rescuer_id")
            .first()
        )
        if current is None:
            raise NotFound("Case not found.")

        current_status = current["status"]
        authorized = actor.is_admin_role or actor.pk in (
            current["reporter_id"], current["assigned_rescuer_id"],
        )
        if (current_status, next_status) not in ALLOWED_TRANSITIONS or not authorized:
            logger.info(
                "Transition of case %s %s -> %s by %s rejected (authorized=%s)",
                case_id, current_status, next_status, actor.username, authorized,
            )
            return TransitionResult(False, current_status)

        extra_values = {}
        if next_status in TERMINAL_STATUSES:
            extra_values["resolved_at"] = timezone.now()

        moved = atomic_transition(
            RescueCase,
            pk=case_id,
            current_status=current_status,
            target_status=next_status,
            allowed_sources=allowed_sources(next_status),
            condition=cls._authorization(actor),
            extra_values=extra_values,
        )
        if not moved:
            latest = RescueCase.objects.filter(pk=case_id).values_list("status", flat=True).first()
            logger.info(
                "Transition of case %s %s -> %s by %s lost a race (now %s)",
                case_id, current_status, next_status, actor.username, latest,
            )
            return TransitionResult(False, latest or current_status)

        CaseStatusLog.objects.create(
            case_id=case_id,
            from_status=current_status,
            to_status=next_status,
            changed_by=actor,
        )
        logger.info("Case %s moved %s -> %s by %s", case_id, current_status, next_status, actor.username)

        if next_status in TERMINAL_STATUSES:
            cls._on_terminal(case_id, actor, current["reporter_id"], next_status)

        return TransitionResult(True, next_status)

    @staticmethod
    def _on_terminal(case_id: Any, actor: UserProfile, reporter_id: int, status: str) -> None:
        enqueue(TASK_CLEANUP_MEDIA, case_id=str(case_id))
        if actor.pk != reporter_id:
            enqueue(TASK_NOTIFY_REPORTER, case_id=str(case_id), status=status)
