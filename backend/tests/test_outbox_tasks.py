"""
Tests for the transactional task outbox in ``core.tasks``.
"""

from __future__ import annotations

from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.db import transaction
from django.test import TestCase, override_settings
from django.utils import timezone

from core.models import OutboxTask, TaskStatus
from core.tasks import drain, enqueue, register_task, requeue_stale, run_task

calls: list[dict] = []
failures_left = {"count": 0}


@register_task("tests.record")
def record(**payload):
    calls.append(payload)


@register_task("tests.flaky")
def flaky(**payload):
    if failures_left["count"] > 0:
        failures_left["count"] -= 1
        raise ConnectionError("upstream hiccup")
    calls.append(payload)


class OutboxTestCase(TestCase):

    def setUp(self):
        calls.clear()
        failures_left["count"] = 0

    def make_task(self, name="tests.record", **fields) -> OutboxTask:
        fields.setdefault("payload", {"n": 1})
        return OutboxTask.objects.create(name=name, **fields)


class TestEnqueue(OutboxTestCase):

    def test_runs_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            task = enqueue("tests.record", case_id="abc")
            self.assertEqual(calls, [])

        self.assertEqual(calls, [{"case_id": "abc"}])
        task.refresh_from_db()
        self.assertEqual(task.status, TaskStatus.DONE)
        self.assertEqual(task.attempts, 1)

    def test_rolled_back_transaction_emits_nothing(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            try:
                with transaction.atomic():
                    enqueue("tests.record", case_id="abc")
                    raise RuntimeError("request failed")
            except RuntimeError:
                pass

        self.assertEqual(callbacks, [])
        self.assertEqual(calls, [])
        self.assertFalse(OutboxTask.objects.exists())

    def test_unknown_task_is_rejected(self):
        with self.assertRaises(KeyError):
            enqueue("tests.nope")
        self.assertFalse(OutboxTask.objects.exists())


@override_settings(RESCUE_TASK_MAX_ATTEMPTS=3, RESCUE_TASK_RETRY_BASE_SECONDS=10)
class TestRunTask(OutboxTestCase):

    def test_failure_is_rescheduled_with_backoff(self):
        failures_left["count"] = 2
        task = self.make_task("tests.flaky")

        before = timezone.now()
        self.assertFalse(run_task(task.pk))

        task.refresh_from_db()
        self.assertEqual(task.status, TaskStatus.PENDING)
        self.assertEqual(task.attempts, 1)
        self.assertIn("ConnectionError", task.last_error)
        self.assertGreaterEqual(task.available_at, before + timedelta(seconds=10))

    def test_backoff_doubles(self):
        failures_left["count"] = 2
        task = self.make_task("tests.flaky")
        run_task(task.pk)
        OutboxTask.objects.filter(pk=task.pk).update(available_at=timezone.now())

        before = timezone.now()
        run_task(task.pk)

        task.refresh_from_db()
        self.assertEqual(task.attempts, 2)
        self.assertGreaterEqual(task.available_at, before + timedelta(seconds=20))

    def test_marked_failed_after_max_attempts(self):
        failures_left["count"] = 10
        task = self.make_task("tests.flaky", attempts=2)

        self.assertFalse(run_task(task.pk))

        task.refresh_from_db()
        self.assertEqual(task.status, TaskStatus.FAILED)
        self.assertEqual(task.attempts, 3)

    def test_task_not_yet_due_is_not_taken(self):
        task = self.make_task(available_at=timezone.now() + timedelta(minutes=5))

        self.assertFalse(run_task(task.pk))

        task.refresh_from_db()
        self.assertEqual(task.attempts, 0)
        self.assertEqual(calls, [])

    def test_finished_task_is_not_run_again(self):
        task = self.make_task()
        self.assertTrue(run_task(task.pk))
        self.assertFalse(run_task(task.pk))
        self.assertEqual(len(calls), 1)

    def test_task_without_handler_fails(self):
        task = self.make_task("tests.gone", attempts=2)

        run_task(task.pk)

        task.refresh_from_db()
        self.assertEqual(task.status, TaskStatus.FAILED)
        self.assertIn("LookupError", task.last_error)


class TestDrain(OutboxTestCase):

    def test_runs_due_tasks_only(self):
        self.make_task(payload={"n": 1})
        self.make_task(payload={"n": 2})
        self.make_task(payload={"n": 3}, available_at=timezone.now() + timedelta(hours=1))

        self.assertEqual(drain(), (2, 0))
        self.assertEqual(sorted(c["n"] for c in calls), [1, 2])

    def test_limit(self):
        for n in range(3):
            self.make_task(payload={"n": n})

        self.assertEqual(drain(limit=2), (2, 0))

    def test_counts_failures(self):
        failures_left["count"] = 1
        self.make_task("tests.flaky")

        self.assertEqual(drain(), (0, 1))

    def test_requeues_stale_running_tasks(self):
        task = self.make_task(status=TaskStatus.RUNNING, attempts=1)
        OutboxTask.objects.filter(pk=task.pk).update(updated_at=timezone.now() - timedelta(hours=1))

        self.assertEqual(drain(), (1, 0))

        task.refresh_from_db()
        self.assertEqual(task.status, TaskStatus.DONE)
        self.assertEqual(task.attempts, 2)

    def test_recent_running_task_is_left_alone(self):
        self.make_task(status=TaskStatus.RUNNING, attempts=1)

        self.assertEqual(requeue_stale(), 0)
        self.assertEqual(drain(), (0, 0))

    def test_management_command(self):
        self.make_task()
        out = StringIO()

        call_command("drain_outbox", stdout=out)

        self.assertIn("1 succeeded, 0 failed", out.getvalue())
