"""
Core app models.

Provides abstract base models plus the two cross-cutting tables every
other app leans on: cached responses for retried mutating requests and
the background task outbox.
"""

from django.db import models
from django.utils import timezone


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class IdempotencyRecord(models.Model):
    """
    Stored response of a mutating request, keyed by
    ``(actor_id, endpoint, key)``.

    Written in the same transaction as the mutation it guards.  ``body``
    holds the exact rendered bytes (decoded as UTF-8) so a replay is
    byte-identical to the first response.
    """

    actor_id = models.CharField(max_length=255, verbose_name="Actor")
    endpoint = models.CharField(max_length=255, verbose_name="Endpoint")
    key = models.CharField(max_length=255, verbose_name="Idempotency Key")
    status_code = models.PositiveSmallIntegerField(verbose_name="Status Code")
    headers = models.JSONField(default=dict, blank=True, verbose_name="Headers")
    body = models.TextField(blank=True, default="", verbose_name="Body")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")

    class Meta:
        verbose_name = "Idempotency Record"
        verbose_name_plural = "Idempotency Records"
        constraints = [
            models.UniqueConstraint(
                fields=["actor_id", "endpoint", "key"],
                name="uniq_idempotency_actor_endpoint_key",
            ),
        ]

    def __str__(self):
        return f"{self.actor_id} {self.endpoint} [{self.key}] -> {self.status_code}"


class TaskStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    RUNNING = "running", "Running"
    DONE = "done", "Done"
    FAILED = "failed", "Failed"


class OutboxTask(TimeStampedModel):
    """
    A unit of background work recorded in the transaction that caused it.

    See ``core.tasks`` for the dispatch and retry rules.
    """

    name = models.CharField(max_length=100, verbose_name="Task Name")
    payload = models.JSONField(default=dict, blank=True, verbose_name="Payload")
    status = models.CharField(
        max_length=10,
        choices=TaskStatus.choices,
        default=TaskStatus.PENDING,
        verbose_name="Status",
    )
    attempts = models.PositiveIntegerField(default=0, verbose_name="Attempts")
    available_at = models.DateTimeField(default=timezone.now, verbose_name="Available At")
    last_error = models.TextField(blank=True, default="", verbose_name="Last Error")

    class Meta:
        verbose_name = "Outbox Task"
        verbose_name_plural = "Outbox Tasks"
        ordering = ["available_at"]
        indexes = [
            models.Index(fields=["status", "available_at"], name="core_outbox_status_avail_idx"),
        ]

    def __str__(self):
        return f"{self.name} #{self.pk} ({self.get_status_display()})"
