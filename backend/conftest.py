"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``rescue_test_settings`` (autouse): eager outbox tasks, in-memory push
    backend and in-memory object storage for every test.
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_profile`` factory fixture for creating test profiles.
  - ``auth_header`` fixture for authenticated requests (JWT).
  - ``push_outbox`` / ``memory_storage`` handles on the test doubles.
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient

IN_MEMORY_STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.InMemoryStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}


@pytest.fixture(autouse=True)
def rescue_test_settings(settings):
    """
    Point side-effecting collaborators at their in-process doubles.

    Outbox tasks run inline when their transaction commits; inside a
    Django ``TestCase`` wrap the request in
    ``self.captureOnCommitCallbacks(execute=True)`` to trigger them.
    """
    from notifications import push

    settings.RESCUE_TASKS_ALWAYS_EAGER = True
    settings.RESCUE_PUSH_BACKEND = "notifications.push.LocmemBackend"
    settings.STORAGES = IN_MEMORY_STORAGES

    push.outbox.clear()
    push.outcomes.clear()
    yield
    push.outbox.clear()
    push.outcomes.clear()


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def push_outbox() -> list:
    """``(token, PushMessage)`` pairs delivered through the in-memory backend."""
    from notifications import push

    return push.outbox


@pytest.fixture()
def memory_storage():
    """The in-memory object store backing ``media.storage.ObjectStore``."""
    from django.core.files.storage import storages

    return storages["default"]


@pytest.fixture()
def create_profile(db):
    """
    Factory fixture that creates a profile with sensible defaults.

    Usage::

        def test_something(create_profile):
            citizen = create_profile()
            volunteer = create_profile(
                username="vol-1",
                role="volunteer",
                area=(12.97, 77.59, 5000),
                fcm_token="tok-vol-1",
            )
    """
    from accounts.models import UserProfile

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        role: str = "citizen",
        area: tuple[float, float, int] | None = None,
        fcm_token: str | None = None,
        **kwargs,
    ) -> UserProfile:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"actor-{_counter}"
        if area is not None:
            kwargs["area_lat"], kwargs["area_lng"], kwargs["area_radius_m"] = area

        profile, _ = UserProfile.objects.bootstrap(username)
        for name, value in {"role": role, "fcm_token": fcm_token, **kwargs}.items():
            setattr(profile, name, value)
        profile.save()
        return profile

    return _factory


@pytest.fixture()
def auth_header(create_profile):
    """
    Returns a helper that creates a profile and returns an
    ``Authorization`` header dict with a valid JWT access token whose
    ``sub`` claim is the profile's actor id.

    Usage::

        def test_protected(auth_header, api_client):
            header = auth_header(username="alice")
            api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
            resp = api_client.get("/api/profile/me/")
            assert resp.status_code == 200
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _make(*, username: str | None = None, **profile_kwargs) -> dict[str, str]:
        profile = create_profile(username=username, **profile_kwargs)
        token = AccessToken.for_user(profile)
        return {"Authorization": f"Bearer {token}"}

    return _make
