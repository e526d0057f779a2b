"""
Media Service Layer.

Everything touching the object store for a rescue case: upload handles,
attaching uploaded keys, download URLs, AI diagnosis, and purging media
once a case is closed.

Architecture
------------
- ``MediaUploadService``  — presigned upload URLs (reporter only).
- ``MediaAttachService``  — store uploaded object keys on the case.
- ``MediaAccessService``  — time-limited download URL.
- ``DiagnosisService``    — Gemini wound diagnosis (best effort).
- ``MediaCleanupService`` — immediate per-case purge and periodic sweep.

Cleanup
-------
Object deletes are best effort.  Media references are cleared in one
update whatever the delete outcome; failed deletes are logged with their
key and retried by the ``media.delete_objects`` outbox task.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from accounts.models import UserProfile
from cases.models import TERMINAL_STATUSES, RescueCase
from cases.services import CaseQueryService
from core.domain.exceptions import (
    Conflict,
    DomainError,
    NotFound,
    PermissionDenied,
    UpstreamUnavailable,
)
from core.domain.transactions import compare_and_set
from core.tasks import enqueue

from .diagnosis import DiagnosisError, DiagnosisGenerator
from .storage import STORAGE_ERRORS, ObjectStore, case_prefix, crop_key, original_key

logger = logging.getLogger(__name__)

TASK_DELETE_OBJECTS = "media.delete_objects"

MEDIA_KIND_FIELDS = {
    "original": "photo_object_key",
    "crop": "crop_object_key",
}


def _get_case_for_reporter(case_id: Any, actor: UserProfile) -> RescueCase:
    case = CaseQueryService.get_visible_case(case_id, actor)
    if case.reporter_id != actor.pk:
        raise PermissionDenied("Only the reporter can manage media for this case.")
    return case


# ═══════════════════════════════════════════════════════════════════
#  Upload / attach / access
# ═══════════════════════════════════════════════════════════════════


class MediaUploadService:

    @staticmethod
    def issue_upload_urls(case_id: Any, actor: UserProfile) -> dict[str, Any]:
        """
        Presigned PUT URLs for the original photo and the wound crop.

        Raises:
            NotFound:         Case missing or not visible.
            PermissionDenied: Actor is not the reporter.
            Conflict:         Case is already closed.
        """
        case = _get_case_for_reporter(case_id, actor)
        if case.is_terminal:
            raise Conflict("Media cannot be uploaded to a closed case.", state={"status": case.status})

        ttl = settings.RESCUE_UPLOAD_URL_TTL_SECONDS
        store = ObjectStore()
        photo, crop = original_key(case.pk), crop_key(case.pk)
        return {
            "original_put_url": store.upload_url(photo, ttl),
            "crop_put_url": store.upload_url(crop, ttl),
            "object_keys": {
                "photo_object_key": photo,
                "crop_object_key": crop,
            },
            "expires_in_seconds": ttl,
        }


class MediaAttachService:

    @staticmethod
    def attach(
        case_id: Any,
        actor: UserProfile,
        *,
        photo_object_key: str | None = None,
        crop_object_key: str | None = None,
    ) -> None:
        """
        Store uploaded object keys on the case.  Omitted keys are left as is.

        Keys must live under the case's own prefix.  The write is
        conditional on the case still being open, so it cannot land after
        the media of a closed case was purged.

        Raises:
            DomainError:      A key outside the case's prefix.
            NotFound:         Case missing or not visible.
            PermissionDenied: Actor is not the reporter.
            Conflict:         Case is closed.
        """
        case = _get_case_for_reporter(case_id, actor)

        values = {}
        for name, key in (("photo_object_key", photo_object_key), ("crop_object_key", crop_object_key)):
            if key is None:
                continue
            if not key.startswith(case_prefix(case.pk)) or ".." in key:
                raise DomainError(f"{name} must be an object key of this case.")
            values[name] = key

        attached = compare_and_set(
            RescueCase,
            pk=case.pk,
            condition=Q(reporter=actor) & ~Q(status__in=TERMINAL_STATUSES),
            values=values,
        )
        if not attached:
            current = RescueCase.objects.filter(pk=case.pk).values_list("status", flat=True).first()
            raise Conflict("Media cannot be attached to a closed case.", state={"status": current})
        logger.info("Media %s attached to case %s", sorted(values), case.pk)


class MediaAccessService:

    @staticmethod
    def download_url(case_id: Any, actor: UserProfile, kind: str) -> dict[str, Any]:
        """
        Time-limited download URL for one media object of a visible case.

        Raises:
            NotFound: Case not visible, or it holds no media of this kind.
        """
        case = CaseQueryService.get_visible_case(case_id, actor)
        key = getattr(case, MEDIA_KIND_FIELDS[kind])
        if not key:
            raise NotFound(f"No {kind} media available for this case.")

        ttl = settings.RESCUE_DOWNLOAD_URL_TTL_SECONDS
        return {
            "url": ObjectStore().download_url(key, ttl),
            "object_key": key,
            "expires_in_seconds": ttl,
        }


# ═══════════════════════════════════════════════════════════════════
#  Diagnosis
# ═══════════════════════════════════════════════════════════════════


class DiagnosisService:

    @staticmethod
    def analyze(case_id: Any, actor: UserProfile, generator: DiagnosisGenerator | None = None) -> dict:
        """
        Run the wound diagnosis on the case's crop (or original photo).

        Raises:
            NotFound:            Case not visible.
            DomainError:         The case holds no media.
            UpstreamUnavailable: Storage or model failure (retryable).
        """
        case = CaseQueryService.get_visible_case(case_id, actor)
        key = case.crop_object_key or case.photo_object_key
        if not key:
            raise DomainError("No media available for analysis.")

        try:
            image = ObjectStore().read(key)
        except STORAGE_ERRORS as exc:
            logger.warning("Could not read %s for diagnosis: %s", key, exc)
            raise UpstreamUnavailable("Case media could not be fetched.") from exc

        try:
            diagnosis = (generator or DiagnosisGenerator()).analyze(image, case.description)
        except DiagnosisError as exc:
            raise UpstreamUnavailable("The diagnosis service is unavailable.") from exc

        RescueCase.objects.filter(pk=case.pk).update(ai_diagnosis=diagnosis, updated_at=timezone.now())
        logger.info("Diagnosis stored for case %s (urgency=%s)", case.pk, diagnosis["urgency"])
        return diagnosis


# ═══════════════════════════════════════════════════════════════════
#  Cleanup
# ═══════════════════════════════════════════════════════════════════


@dataclass
class SweepResult:
    cleaned: int = 0
    failed: int = 0
    failed_keys: list[str] = field(default_factory=list)


class MediaCleanupService:

    @staticmethod
    def delete_objects(keys: list[str], store: ObjectStore | None = None) -> list[str]:
        """
        Delete ``keys`` in parallel.  Returns the keys whose delete failed.
        """
        if not keys:
            return []
        store = store or ObjectStore()

        def _delete(key: str) -> str | None:
            try:
                store.delete(key)
            except STORAGE_ERRORS as exc:
                logger.warning("Failed to delete media object %s: %s", key, exc)
                return key
            return None

        with ThreadPoolExecutor(max_workers=len(keys), thread_name_prefix="media-delete") as pool:
            return [key for key in pool.map(_delete, keys) if key is not None]

    @staticmethod
    def clear_references(case_id: Any) -> bool:
        """Drop both media references of a closed case in a single update."""
        return compare_and_set(
            RescueCase,
            pk=case_id,
            condition=Q(status__in=TERMINAL_STATUSES),
            values={"photo_object_key": None, "crop_object_key": None},
        )

    @classmethod
    def purge(cls, case: RescueCase, store: ObjectStore | None = None) -> list[str]:
        """
        Delete a closed case's objects, then clear its references.

        Keys whose delete failed are handed to the ``media.delete_objects``
        outbox task, which retries them with back-off.
        """
        failed = cls.delete_objects(case.media_keys, store)
        cls.clear_references(case.pk)
        if failed:
            enqueue(TASK_DELETE_OBJECTS, keys=failed)
        return failed

    @classmethod
    def cleanup_case(cls, case_id: Any) -> list[str]:
        """
        Immediate cleanup right after a case reached a terminal status.

        Returns the keys that could not be deleted.
        """
        case = RescueCase.objects.filter(pk=case_id).first()
        if case is None:
            logger.warning("Media cleanup skipped: case %s not found", case_id)
            return []
        if not case.is_terminal:
            logger.warning("Media cleanup skipped: case %s is still %s", case_id, case.status)
            return []
        if not case.media_keys:
            return []

        failed = cls.purge(case)
        logger.info(
            "Media of case %s purged (%d object(s), %d delete failure(s))",
            case_id, len(case.media_keys), len(failed),
        )
        return failed

    @staticmethod
    def eligible_cases(retention_days: int | None = None, batch_size: int | None = None):
        """Closed cases past the retention window that still hold media."""
        if retention_days is None:
            retention_days = settings.RESCUE_MEDIA_RETENTION_DAYS
        if batch_size is None:
            batch_size = settings.RESCUE_CLEANUP_BATCH_SIZE
        cutoff = timezone.now() - timedelta(days=retention_days)
        return (
            RescueCase.objects
            .filter(
                status__in=TERMINAL_STATUSES,
                resolved_at__isnull=False,
                resolved_at__lt=cutoff,
            )
            .filter(Q(photo_object_key__isnull=False) | Q(crop_object_key__isnull=False))
            .order_by("resolved_at")[:batch_size]
        )

    @classmethod
    def sweep(cls, retention_days: int | None = None, batch_size: int | None = None) -> SweepResult:
        """
        Periodic backstop for cases whose immediate cleanup never ran.

        A case counts as failed when any of its deletes failed; its
        references are cleared regardless and the batch carries on.
        """
        result = SweepResult()
        store = ObjectStore()
        for case in cls.eligible_cases(retention_days, batch_size):
            failed = cls.purge(case, store)
            if failed:
                result.failed += 1
                result.failed_keys.extend(failed)
            else:
                result.cleaned += 1

        logger.info("Media cleanup sweep: %d cleaned, %d failed", result.cleaned, result.failed)
        if result.failed_keys:
            logger.warning("Media deletes scheduled for retry by sweep: %s", ", ".join(result.failed_keys))
        return result
