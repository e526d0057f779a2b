"""
End-to-end dispatch flow through the HTTP API with background tasks
executed at commit time.

Covers:
  1. Report → alert nearby responders → racing claims → mute the losers.
  2. A stranger cannot move someone else's case.
  3. A retried claim replays the first answer.
  4. Closing a case purges its media even when a delete fails once.
"""

from __future__ import annotations

from unittest import mock
from uuid import uuid4

from django.core.files.base import ContentFile
from django.core.files.storage import storages
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role, UserProfile
from cases.models import CaseStatus, RescueCase
from core.models import OutboxTask, TaskStatus
from core.tasks import drain
from media.storage import ObjectStore
from notifications import push
from notifications.models import NotificationKind, NotificationRecord


def _make_profile(username, role=Role.CITIZEN, area=None, token=None) -> UserProfile:
    profile, _ = UserProfile.objects.bootstrap(username)
    profile.role = role
    profile.fcm_token = token
    if area is not None:
        profile.area_lat, profile.area_lng, profile.area_radius_m = area
    profile.save()
    return profile


class DispatchFlowTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.reporter_a = _make_profile("flow_a", token="tok-a")
        cls.volunteer_b = _make_profile("flow_b", Role.VOLUNTEER, (12.975, 77.59, 5000), "tok-b")
        cls.volunteer_c = _make_profile("flow_c", Role.VOLUNTEER, (12.96, 77.60, 5000), "tok-c")
        cls.stranger_d = _make_profile("flow_d", Role.VOLUNTEER, (40.71, -74.0, 5000), "tok-d")

    def setUp(self):
        self.client = APIClient()
        push.outbox.clear()
        push.outcomes.clear()
        self.addCleanup(push.outbox.clear)
        self.addCleanup(push.outcomes.clear)

    def call(self, actor, method, url, data=None, key=None):
        self.client.force_authenticate(user=actor)
        with self.captureOnCommitCallbacks(execute=True):
            return getattr(self.client, method)(
                url, data, format="json", HTTP_IDEMPOTENCY_KEY=key or str(uuid4()),
            )

    def report(self) -> str:
        resp = self.call(
            self.reporter_a, "post", reverse("cases:case-list"),
            {"location": [12.97, 77.59], "description": "Injured dog near the market"},
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        return resp.json()["id"]

    def claim(self, actor, case_id, key=None):
        return self.call(actor, "post", reverse("cases:case-claim", args=[case_id]), key=key)

    def transition(self, actor, case_id, next_status):
        return self.call(
            actor, "post", reverse("cases:case-transition", args=[case_id]),
            {"next_status": next_status},
        )

    def pushes(self, kind: str) -> list[str]:
        return [token for token, message in push.outbox if message.data["type"] == kind]


class TestReportClaimAndMute(DispatchFlowTestCase):

    def test_nearby_volunteers_are_alerted_and_loser_is_muted(self):
        case_id = self.report()

        self.assertEqual(sorted(self.pushes("new_rescue")), ["tok-b", "tok-c"])

        won = self.claim(self.volunteer_b, case_id)
        lost = self.claim(self.volunteer_c, case_id)

        self.assertEqual(won.status_code, status.HTTP_200_OK)
        self.assertTrue(won.json()["claimed"])
        self.assertEqual(lost.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(
            lost.json(),
            {"claimed": False, "status": "claimed", "assigned_rescuer_id": "flow_b"},
        )
        self.assertEqual(self.pushes("mute"), ["tok-c"])
        self.assertFalse(
            NotificationRecord.objects.filter(user=self.volunteer_b, kind=NotificationKind.MUTE).exists()
        )

    def test_claimed_case_vanishes_from_the_loser_nearby_feed(self):
        case_id = self.report()
        self.claim(self.volunteer_b, case_id)

        self.client.force_authenticate(user=self.volunteer_c)
        feed = self.client.get(reverse("cases:case-nearby")).json()

        self.assertNotIn(case_id, [item["id"] for item in feed])


class TestStrangerTransition(DispatchFlowTestCase):

    def test_stranger_cannot_resolve(self):
        case_id = self.report()
        self.claim(self.volunteer_b, case_id)

        resp = self.transition(self.stranger_d, case_id, "resolved")

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.json(), {"ok": False, "status": "claimed"})
        self.assertEqual(RescueCase.objects.get(pk=case_id).status, CaseStatus.CLAIMED)

    def test_rescuer_walks_the_case_to_resolution_and_reporter_is_told(self):
        case_id = self.report()
        self.claim(self.volunteer_b, case_id)

        for next_status in ("en_route", "arrived", "resolved"):
            resp = self.transition(self.volunteer_b, case_id, next_status)
            self.assertEqual(resp.json(), {"ok": True, "status": next_status})

        case = RescueCase.objects.get(pk=case_id)
        self.assertIsNotNone(case.resolved_at)
        self.assertEqual(self.pushes("case_update"), ["tok-a"])


class TestClaimRetry(DispatchFlowTestCase):

    def test_retry_replays_without_touching_the_store(self):
        case_id = self.report()
        first = self.claim(self.volunteer_b, case_id, key="claim-K")

        with mock.patch("cases.services.CaseClaimService.claim") as claim:
            retry = self.claim(self.volunteer_b, case_id, key="claim-K")

        claim.assert_not_called()
        self.assertEqual(retry.status_code, status.HTTP_200_OK)
        self.assertEqual(retry.content, first.content)
        self.assertEqual(self.pushes("mute"), ["tok-c"])


class TestMediaPurgeOnClose(DispatchFlowTestCase):

    def test_media_is_gone_after_resolution_despite_a_failed_delete(self):
        case_id = self.report()
        storage = storages["default"]
        keys = [
            storage.save(f"rescues/{case_id}/original.webp", ContentFile(b"photo")),
            storage.save(f"rescues/{case_id}/wound-crop.webp", ContentFile(b"crop")),
        ]
        attached = self.call(
            self.reporter_a, "patch", reverse("cases:case-media-keys", args=[case_id]),
            {"photo_object_key": keys[0], "crop_object_key": keys[1]},
        )
        self.assertEqual(attached.status_code, status.HTTP_200_OK)
        self.claim(self.volunteer_b, case_id)
        self.transition(self.volunteer_b, case_id, "en_route")
        self.transition(self.volunteer_b, case_id, "arrived")

        real_delete = ObjectStore.delete
        attempts: dict[str, int] = {}

        def fail_once(store, key):
            attempts[key] = attempts.get(key, 0) + 1
            if attempts[key] == 1:
                raise OSError("object store unavailable")
            return real_delete(store, key)

        with mock.patch.object(ObjectStore, "delete", autospec=True, side_effect=fail_once):
            self.transition(self.volunteer_b, case_id, "resolved")

            case = RescueCase.objects.get(pk=case_id)
            self.assertIsNone(case.photo_object_key)
            self.assertIsNone(case.crop_object_key)

            OutboxTask.objects.filter(status=TaskStatus.PENDING).update(available_at=timezone.now())
            drain()

        self.assertFalse(OutboxTask.objects.exclude(status=TaskStatus.DONE).exists())
        for key in keys:
            self.assertFalse(storage.exists(key))
