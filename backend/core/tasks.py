"""
Transactional outbox for background work.

``enqueue`` inserts an ``OutboxTask`` row in the caller's transaction and
hands the task to a process-wide thread pool once that transaction
commits.  A rolled-back request therefore never emits its side effects,
and a crash after commit leaves a ``pending`` row that ``drain`` (the
``drain_outbox`` / ``run_worker`` commands) picks up later.

Handlers are registered by name::

    from core.tasks import register_task

    @register_task("notifications.fanout_new_case")
    def fanout_new_case(case_id: str) -> None:
        ...

and are imported from each app's ``AppConfig.ready()``.

Settings
--------
RESCUE_TASKS_ALWAYS_EAGER     run tasks inline at commit time (tests)
RESCUE_TASK_MAX_ATTEMPTS      attempts before a task is marked failed
RESCUE_TASK_RETRY_BASE_SECONDS  first back-off delay, doubled per attempt
RESCUE_TASK_WORKERS           size of the thread pool
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any, Callable

from django.conf import settings
from django.db import connections, transaction
from django.db.models import F
from django.utils import timezone

from core.constants import TASK_STALE_AFTER_SECONDS
from core.models import OutboxTask, TaskStatus

logger = logging.getLogger(__name__)

TaskHandler = Callable[..., Any]

_registry: dict[str, TaskHandler] = {}

_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def register_task(name: str) -> Callable[[TaskHandler], TaskHandler]:
    """Register ``handler`` under ``name`` so ``enqueue(name, ...)`` can reach it."""

    def decorator(handler: TaskHandler) -> TaskHandler:
        _registry[name] = handler
        return handler

    return decorator


def registered_tasks() -> list[str]:
    return sorted(_registry)


def enqueue(name: str, **payload: Any) -> OutboxTask:
    """
    Record a task in the current transaction and dispatch it after commit.

    ``payload`` must be JSON-serialisable; it is passed to the handler as
    keyword arguments.

    Raises:
        KeyError: If no handler is registered under ``name``.
    """
    if name not in _registry:
        raise KeyError(f"No task registered under '{name}'.")

    task = OutboxTask.objects.create(name=name, payload=payload)
    transaction.on_commit(lambda: _dispatch(task.pk))
    return task


def _dispatch(task_id: int) -> None:
    if settings.RESCUE_TASKS_ALWAYS_EAGER:
        run_task(task_id)
        return
    _get_executor().submit(_run_in_worker_thread, task_id)


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        with _executor_lock:
            if _executor is None:
                _executor = ThreadPoolExecutor(
                    max_workers=settings.RESCUE_TASK_WORKERS,
                    thread_name_prefix="outbox",
                )
    return _executor


def _run_in_worker_thread(task_id: int) -> None:
    try:
        run_task(task_id)
    except Exception:
        logger.exception("Outbox task #%s crashed outside its handler", task_id)
    finally:
        connections.close_all()


def _retry_delay(attempts: int) -> timedelta:
    return timedelta(seconds=settings.RESCUE_TASK_RETRY_BASE_SECONDS * 2 ** max(attempts - 1, 0))


def run_task(task_id: int) -> bool:
    """
    Run one due task.  Returns ``True`` if its handler completed.

    The task is taken with a conditional update (``pending`` → ``running``)
    so two workers never run the same task concurrently.  A handler
    exception is recorded on the row; the task is rescheduled with
    exponential back-off until ``RESCUE_TASK_MAX_ATTEMPTS``, then marked
    ``failed``.
    """
    now = timezone.now()
    taken = OutboxTask.objects.filter(
        pk=task_id, status=TaskStatus.PENDING, available_at__lte=now,
    ).update(status=TaskStatus.RUNNING, attempts=F("attempts") + 1, updated_at=now)
    if not taken:
        return False

    task = OutboxTask.objects.get(pk=task_id)
    handler = _registry.get(task.name)

    try:
        if handler is None:
            raise LookupError(f"No task registered under '{task.name}'.")
        handler(**task.payload)
    except Exception as exc:
        task.last_error = f"{type(exc).__name__}: {exc}"
        if task.attempts >= settings.RESCUE_TASK_MAX_ATTEMPTS:
            task.status = TaskStatus.FAILED
            logger.error(
                "Task %s #%s failed permanently after %d attempts: %s",
                task.name, task.pk, task.attempts, task.last_error,
            )
        else:
            task.status = TaskStatus.PENDING
            task.available_at = timezone.now() + _retry_delay(task.attempts)
            logger.warning(
                "Task %s #%s failed (attempt %d/%d), retrying at %s: %s",
                task.name, task.pk, task.attempts,
                settings.RESCUE_TASK_MAX_ATTEMPTS, task.available_at, task.last_error,
            )
        task.save(update_fields=["status", "available_at", "last_error", "updated_at"])
        return False

    task.status = TaskStatus.DONE
    task.last_error = ""
    task.save(update_fields=["status", "last_error", "updated_at"])
    logger.debug("Task %s #%s done", task.name, task.pk)
    return True


def requeue_stale(older_than: timedelta | None = None) -> int:
    """Return tasks stuck in ``running`` (crashed worker) to ``pending``."""
    if older_than is None:
        older_than = timedelta(seconds=TASK_STALE_AFTER_SECONDS)
    now = timezone.now()
    count = OutboxTask.objects.filter(
        status=TaskStatus.RUNNING, updated_at__lt=now - older_than,
    ).update(status=TaskStatus.PENDING, available_at=now, updated_at=now)
    if count:
        logger.warning("Requeued %d stale outbox task(s)", count)
    return count


def drain(limit: int = 100) -> tuple[int, int]:
    """
    Run up to ``limit`` due tasks in the current thread.

    Returns:
        ``(succeeded, failed)`` counts for this pass.
    """
    requeue_stale()
    due_ids = list(
        OutboxTask.objects
        .filter(status=TaskStatus.PENDING, available_at__lte=timezone.now())
        .order_by("available_at")
        .values_list("pk", flat=True)[:limit]
    )
    succeeded = failed = 0
    for task_id in due_ids:
        if run_task(task_id):
            succeeded += 1
        else:
            failed += 1
    return succeeded, failed
