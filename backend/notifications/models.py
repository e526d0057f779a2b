"""
Notifications app models.

``NotificationRecord`` is the permanent dedup/audit log of successful
push deliveries: at most one row per ``(case, user, kind)``.  A row is
only written after the transport confirmed delivery.
"""

from django.conf import settings
from django.db import models


class NotificationKind(models.TextChoices):
    NEW_RESCUE = "new_rescue", "New Rescue"
    MUTE = "mute", "Mute"
    CASE_UPDATE = "case_update", "Case Update"


class NotificationRecord(models.Model):

    case = models.ForeignKey(
        "cases.RescueCase",
        on_delete=models.CASCADE,
        related_name="notification_records",
        verbose_name="Case",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notification_records",
        verbose_name="Recipient",
    )
    kind = models.CharField(max_length=20, choices=NotificationKind.choices, verbose_name="Kind")
    sent_at = models.DateTimeField(auto_now_add=True, verbose_name="Sent At")

    class Meta:
        verbose_name = "Notification Record"
        verbose_name_plural = "Notification Records"
        ordering = ["-sent_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["case", "user", "kind"],
                name="uniq_notification_case_user_kind",
            ),
        ]

    def __str__(self):
        return f"{self.kind} → {self.user_id} for case {self.case_id}"
