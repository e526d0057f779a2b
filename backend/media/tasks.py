"""
Outbox task handlers for media cleanup.
"""

from core.tasks import register_task

from .services import MediaCleanupService
from .storage import STORAGE_ERRORS, ObjectStore


class MediaDeleteError(Exception):
    """Some objects are still in the store; the task should be retried."""


@register_task("media.cleanup_case")
def cleanup_case(case_id: str) -> None:
    MediaCleanupService.cleanup_case(case_id)


@register_task("media.delete_objects")
def delete_objects(keys: list[str]) -> None:
    """Retry deletes of objects whose references were already cleared."""
    store = ObjectStore()
    remaining = []
    for key in keys:
        try:
            store.delete(key)
        except STORAGE_ERRORS:
            remaining.append(key)
    if remaining:
        raise MediaDeleteError(f"Could not delete: {', '.join(remaining)}")
