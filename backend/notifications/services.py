"""
Notifications Service Layer.

Push fan-out for rescue cases.  Every method here runs in a background
outbox task (``notifications.tasks``), never on the request path.

Architecture
------------
- ``NotificationFanoutService`` — audience selection, dedup, delivery.

Delivery rules
--------------
* A ``NotificationRecord`` is written only after the transport confirmed
  delivery, so a recipient is never marked as notified by a failed send.
* A token the transport reports as permanently invalid is cleared from
  its profile.
* Transient failures leave no record; the task is retried by the outbox
  and the dedup table keeps earlier recipients from a second send.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import QuerySet

from accounts.models import RESPONDER_ROLES, UserProfile
from accounts.services import ProfileService
from cases.models import CaseStatus, CaseVisibility, RescueCase
from core.geo import bounding_box, within_radius

from .models import NotificationKind, NotificationRecord
from .push import DeliveryResult, PushMessage, get_backend

logger = logging.getLogger(__name__)


@dataclass
class FanoutSummary:
    candidates: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    transient: int = 0


class TransientDeliveryError(Exception):
    """Some recipients could not be reached; the task should be retried."""


# ═══════════════════════════════════════════════════════════════════
#  Payloads
# ═══════════════════════════════════════════════════════════════════


def new_rescue_message(case: RescueCase) -> PushMessage:
    return PushMessage(
        data={
            "case_id": str(case.pk),
            "type": NotificationKind.NEW_RESCUE.value,
            "lat": str(case.lat),
            "lng": str(case.lng),
        },
        title="Animal needs help nearby",
        body=case.description[:100] or "A rescue case was reported near you",
        sound="default",
    )


def mute_message(case_id: Any, claimed_by: str) -> PushMessage:
    """Data-only payload: the client drops the case without showing anything."""
    return PushMessage(
        data={
            "case_id": str(case_id),
            "type": NotificationKind.MUTE.value,
            "claimed_by": claimed_by,
        },
    )


def case_update_message(case_id: Any, new_status: str) -> PushMessage:
    return PushMessage(
        data={
            "case_id": str(case_id),
            "type": NotificationKind.CASE_UPDATE.value,
            "new_status": new_status,
        },
        title="Rescue Update",
        body=f"The rescue you reported is now {new_status.replace('_', ' ')}.",
        sound="default",
    )


# ═══════════════════════════════════════════════════════════════════
#  Fan-out Service
# ═══════════════════════════════════════════════════════════════════


class NotificationFanoutService:

    # ── Audience ─────────────────────────────────────────────────────

    @staticmethod
    def _with_push_token(queryset: QuerySet) -> QuerySet:
        return queryset.exclude(fcm_token__isnull=True).exclude(fcm_token="")

    @classmethod
    def find_responders(cls, case: RescueCase) -> list[UserProfile]:
        """
        Volunteers, NGOs and vets whose own home area covers the case.

        The SQL box is sized by the widest supported radius; each candidate
        is then checked against its own ``area_radius_m``.  The reporter and
        profiles without a home-area centre are never included.
        """
        widest = max(settings.RESCUE_ALERT_RADII_M)
        min_lat, max_lat, min_lng, max_lng = bounding_box(case.lat, case.lng, widest)
        candidates = (
            UserProfile.objects
            .filter(
                role__in=RESPONDER_ROLES,
                is_active=True,
                area_lat__isnull=False,
                area_lng__isnull=False,
                area_lat__gte=min_lat,
                area_lat__lte=max_lat,
                area_lng__gte=min_lng,
                area_lng__lte=max_lng,
            )
            .exclude(pk=case.reporter_id)
            .order_by("pk")
        )
        return [
            profile for profile in candidates
            if within_radius(case.lat, case.lng, profile.area_lat, profile.area_lng, profile.area_radius_m)
        ]

    @classmethod
    def find_mute_targets(cls, case_id: Any, claimer_id: int) -> QuerySet:
        """Everyone alerted about the case except the winning claimer."""
        return cls._with_push_token(
            UserProfile.objects
            .filter(
                notification_records__case_id=case_id,
                notification_records__kind=NotificationKind.NEW_RESCUE,
            )
            .exclude(pk=claimer_id)
            .distinct()
            .order_by("pk")
        )

    # ── Delivery ─────────────────────────────────────────────────────

    @staticmethod
    def already_sent(case_id: Any, user_id: int, kind: str) -> bool:
        return NotificationRecord.objects.filter(case_id=case_id, user_id=user_id, kind=kind).exists()

    @staticmethod
    def record_sent(case_id: Any, user_id: int, kind: str) -> bool:
        """Insert the dedup marker if absent.  Returns ``False`` if it existed."""
        try:
            with transaction.atomic():
                NotificationRecord.objects.create(case_id=case_id, user_id=user_id, kind=kind)
        except IntegrityError:
            return False
        return True

    @classmethod
    def deliver(
        cls,
        case_id: Any,
        profile: UserProfile,
        kind: str,
        message: PushMessage,
        summary: FanoutSummary,
        backend=None,
    ) -> DeliveryResult | None:
        """
        Send one message unless ``(case, profile, kind)`` was already sent.

        Returns the transport result, or ``None`` when the send was skipped.
        """
        summary.candidates += 1
        token = profile.fcm_token
        if not token or cls.already_sent(case_id, profile.pk, kind):
            summary.skipped += 1
            return None

        result = (backend or get_backend()).send(token, message)

        if result is DeliveryResult.SUCCESS:
            cls.record_sent(case_id, profile.pk, kind)
            summary.sent += 1
        elif result is DeliveryResult.PERMANENT:
            ProfileService.clear_push_token(profile.pk, token)
            summary.failed += 1
        else:
            logger.warning("Transient push failure: %s to %s for case %s", kind, profile.username, case_id)
            summary.failed += 1
            summary.transient += 1
        return result

    @staticmethod
    def _finish(label: str, case_id: Any, summary: FanoutSummary) -> FanoutSummary:
        logger.info(
            "%s fan-out for case %s: %d candidates, %d sent, %d skipped, %d failed",
            label, case_id, summary.candidates, summary.sent, summary.skipped, summary.failed,
        )
        return summary

    # ── Triggers ─────────────────────────────────────────────────────

    @classmethod
    def fanout_new_case(cls, case_id: Any) -> FanoutSummary:
        """
        Alert nearby responders about a newly reported case.

        Nothing is sent once the case is no longer visible and pending.
        """
        summary = FanoutSummary()
        case = RescueCase.objects.filter(pk=case_id).first()
        if case is None:
            logger.warning("New-case fan-out skipped: case %s not found", case_id)
            return summary
        if case.status != CaseStatus.PENDING or case.visibility != CaseVisibility.VISIBLE:
            logger.info("New-case fan-out skipped: case %s is %s", case_id, case.status)
            return summary

        backend = get_backend()
        message = new_rescue_message(case)
        for profile in cls.find_responders(case):
            cls.deliver(case.pk, profile, NotificationKind.NEW_RESCUE, message, summary, backend)
        return cls._finish("New-case", case_id, summary)

    @classmethod
    def mute_on_claim(cls, case_id: Any, claimer_id: int) -> FanoutSummary:
        """Silently tell every other alerted responder that the case is taken."""
        summary = FanoutSummary()
        claimer = UserProfile.objects.filter(pk=claimer_id).only("username").first()
        if claimer is None:
            logger.warning("Mute fan-out skipped: claimer #%s not found", claimer_id)
            return summary

        backend = get_backend()
        message = mute_message(case_id, claimer.username)
        for profile in cls.find_mute_targets(case_id, claimer_id):
            cls.deliver(case_id, profile, NotificationKind.MUTE, message, summary, backend)
        return cls._finish("Mute", case_id, summary)

    @classmethod
    def notify_reporter(cls, case_id: Any, status: str) -> FanoutSummary:
        """Tell the reporter their case reached terminal ``status``."""
        summary = FanoutSummary()
        case = RescueCase.objects.select_related("reporter").filter(pk=case_id).first()
        if case is None:
            logger.warning("Reporter update skipped: case %s not found", case_id)
            return summary

        cls.deliver(
            case.pk,
            case.reporter,
            NotificationKind.CASE_UPDATE,
            case_update_message(case.pk, status),
            summary,
        )
        return cls._finish("Reporter update", case_id, summary)
