"""
Cases app models.

A ``RescueCase`` is created by a reporter at ``pending``, claimed by
exactly one rescuer, and walked through the lifecycle below until it
reaches a terminal status.  Cases are never deleted; only their media
objects and references are purged after closure.

    pending ──claim──▶ claimed ──▶ en_route ──▶ arrived ──▶ resolved
       │                  │            │
       └──▶ cancelled ◀───┤            │
                          └──▶ unreachable ◀┘
"""

import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class CaseStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CLAIMED = "claimed", "Claimed"
    EN_ROUTE = "en_route", "En Route"
    ARRIVED = "arrived", "Arrived"
    RESOLVED = "resolved", "Resolved"
    CANCELLED = "cancelled", "Cancelled"
    UNREACHABLE = "unreachable", "Unreachable"


TERMINAL_STATUSES = frozenset({
    CaseStatus.RESOLVED,
    CaseStatus.CANCELLED,
    CaseStatus.UNREACHABLE,
})


class CaseVisibility(models.TextChoices):
    VISIBLE = "visible", "Visible"
    HIDDEN = "hidden", "Hidden"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class RescueCase(TimeStampedModel):
    """
    A reported animal in need of help.

    ``assigned_rescuer`` is only ever written by the atomic claim; the
    database refuses a ``pending`` case that has one.  ``resolved_at``
    marks closure and is set on entering any terminal status.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reported_cases",
        verbose_name="Reporter",
    )
    assigned_rescuer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="rescued_cases",
        verbose_name="Assigned Rescuer",
    )

    lat = models.FloatField(
        validators=[MinValueValidator(-90), MaxValueValidator(90)],
        verbose_name="Latitude",
    )
    lng = models.FloatField(
        validators=[MinValueValidator(-180), MaxValueValidator(180)],
        verbose_name="Longitude",
    )
    description = models.TextField(blank=True, default="", verbose_name="Description")
    landmark_hint = models.CharField(max_length=255, blank=True, default="", verbose_name="Landmark Hint")
    wound_severity = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(10)],
        verbose_name="Wound Severity (1-10)",
    )

    # ── On-device detection / AI diagnosis ──────────────────────────
    ai_confidence = models.FloatField(null=True, blank=True, verbose_name="Detection Confidence")
    detection_bbox = models.JSONField(null=True, blank=True, verbose_name="Detection Bounding Box")
    ai_diagnosis = models.JSONField(null=True, blank=True, verbose_name="AI Diagnosis")

    # ── Media references (object-store keys) ────────────────────────
    photo_object_key = models.CharField(max_length=255, null=True, blank=True, verbose_name="Photo Key")
    crop_object_key = models.CharField(max_length=255, null=True, blank=True, verbose_name="Wound Crop Key")

    status = models.CharField(
        max_length=20,
        choices=CaseStatus.choices,
        default=CaseStatus.PENDING,
        verbose_name="Status",
    )
    visibility = models.CharField(
        max_length=10,
        choices=CaseVisibility.choices,
        default=CaseVisibility.VISIBLE,
        verbose_name="Visibility",
    )
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name="Closed At")

    class Meta:
        verbose_name = "Rescue Case"
        verbose_name_plural = "Rescue Cases"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["lat", "lng"], name="cases_rescue_latlng_idx"),
            models.Index(fields=["status", "resolved_at"], name="cases_rescue_status_closed_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(wound_severity__isnull=True)
                | Q(wound_severity__gte=1, wound_severity__lte=10),
                name="rescue_case_wound_severity_range",
            ),
            models.CheckConstraint(
                condition=~Q(status="pending") | Q(assigned_rescuer__isnull=True),
                name="rescue_case_pending_unassigned",
            ),
        ]

    def __str__(self):
        return f"Case {self.pk} [{self.get_status_display()}]"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def media_keys(self) -> list[str]:
        return [key for key in (self.photo_object_key, self.crop_object_key) if key]


class CaseStatusLog(TimeStampedModel):
    """
    Immutable audit trail of every claim and transition of a case.

    Written in the same transaction as the conditional update it records.
    """

    case = models.ForeignKey(
        RescueCase,
        on_delete=models.CASCADE,
        related_name="status_logs",
        verbose_name="Case",
    )
    from_status = models.CharField(
        max_length=20,
        choices=CaseStatus.choices,
        verbose_name="Previous Status",
    )
    to_status = models.CharField(
        max_length=20,
        choices=CaseStatus.choices,
        verbose_name="New Status",
    )
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="case_status_changes",
        verbose_name="Changed By",
    )

    class Meta:
        verbose_name = "Case Status Log"
        verbose_name_plural = "Case Status Logs"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.case_id}: {self.from_status} → {self.to_status}"
