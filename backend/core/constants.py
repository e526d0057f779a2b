"""
Core constants — **Single Source of Truth** for project-wide magic numbers.

Any rule that references a fixed value shared between apps should import
it from here instead of hardcoding it.
"""

# ── Idempotency ─────────────────────────────────────────────────────
IDEMPOTENCY_KEY_HEADER: str = "Idempotency-Key"
IDEMPOTENCY_KEY_MAX_LENGTH: int = 255

# ── Geography ───────────────────────────────────────────────────────
# Mean Earth radius used by the haversine formula.
EARTH_RADIUS_M: float = 6_371_000.0

# ── Background tasks ────────────────────────────────────────────────
# A task left ``running`` this long is assumed orphaned by a crashed
# worker and is handed out again.
TASK_STALE_AFTER_SECONDS: int = 600

# ── Media ───────────────────────────────────────────────────────────
MEDIA_KEY_PREFIX: str = "rescues"
ORIGINAL_PHOTO_FILENAME: str = "original.webp"
WOUND_CROP_FILENAME: str = "wound-crop.webp"
