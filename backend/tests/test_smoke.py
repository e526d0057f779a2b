"""
Smoke tests — verify that Django boots, URL routing resolves, the outbox
task registry is populated, and the core domain modules behave.

These tests do NOT require real data — they just prove the plumbing
works.
"""

from __future__ import annotations

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from django.urls import resolve, reverse


# ════════════════════════════════════════════════════════════════════
#  URL Routing Smoke Tests
# ════════════════════════════════════════════════════════════════════

CASE_ID = str(uuid4())


class TestURLRouting:
    """Ensure every named endpoint reverses to the documented path."""

    EXPECTED_URLS = [
        # (url_name, args, expected_path)
        ("cases:case-list",       [],        "/api/cases/"),
        ("cases:case-nearby",     [],        "/api/cases/nearby/"),
        ("cases:case-detail",     [CASE_ID], f"/api/cases/{CASE_ID}/"),
        ("cases:case-claim",      [CASE_ID], f"/api/cases/{CASE_ID}/claim/"),
        ("cases:case-transition", [CASE_ID], f"/api/cases/{CASE_ID}/transition/"),
        ("cases:case-status-log", [CASE_ID], f"/api/cases/{CASE_ID}/status-log/"),
        ("cases:case-uploads",    [CASE_ID], f"/api/cases/{CASE_ID}/uploads/"),
        ("cases:case-media-keys", [CASE_ID], f"/api/cases/{CASE_ID}/media-keys/"),
        ("cases:case-media",      [CASE_ID], f"/api/cases/{CASE_ID}/media/"),
        ("cases:case-analyze",    [CASE_ID], f"/api/cases/{CASE_ID}/analyze/"),
        ("accounts:profile-bootstrap", [],   "/api/profile/bootstrap/"),
        ("accounts:profile-me",        [],   "/api/profile/me/"),
        ("accounts:profile-area",      [],   "/api/profile/area/"),
        ("accounts:profile-location",  [],   "/api/profile/location/"),
        ("accounts:profile-fcm",       [],   "/api/profile/fcm/"),
        ("schema",                     [],   "/api/schema/"),
    ]

    @pytest.mark.parametrize("url_name,args,expected_path", EXPECTED_URLS)
    def test_url_reverses(self, url_name: str, args: list, expected_path: str):
        assert reverse(url_name, args=args) == expected_path

    @pytest.mark.parametrize("url_name,args,expected_path", EXPECTED_URLS)
    def test_url_resolve_matches_view(self, url_name: str, args: list, expected_path: str):
        match = resolve(expected_path)
        assert match.func is not None


# ════════════════════════════════════════════════════════════════════
#  Task Registry
# ════════════════════════════════════════════════════════════════════

class TestTaskRegistry:

    def test_every_scheduled_task_has_a_handler(self):
        from cases import services as case_services
        from core.tasks import registered_tasks
        from media.services import TASK_DELETE_OBJECTS

        expected = {
            case_services.TASK_FANOUT_NEW_CASE,
            case_services.TASK_MUTE_ON_CLAIM,
            case_services.TASK_NOTIFY_REPORTER,
            case_services.TASK_CLEANUP_MEDIA,
            TASK_DELETE_OBJECTS,
        }
        assert expected <= set(registered_tasks())


# ════════════════════════════════════════════════════════════════════
#  Exception Behaviour Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptions:
    """Unit tests for domain exception classes."""

    def test_hierarchy(self):
        from core.domain.exceptions import (
            Conflict,
            DomainError,
            IdempotencyConflict,
            NotFound,
            PermissionDenied,
            UpstreamUnavailable,
        )
        assert issubclass(IdempotencyConflict, Conflict)
        assert issubclass(Conflict, DomainError)
        assert issubclass(PermissionDenied, DomainError)
        assert issubclass(NotFound, DomainError)
        assert issubclass(UpstreamUnavailable, DomainError)

    def test_domain_error_message(self):
        from core.domain.exceptions import DomainError
        err = DomainError("test message")
        assert str(err) == "test message"

    def test_conflict_carries_state(self):
        from core.domain.exceptions import Conflict
        err = Conflict("Lost.", state={"status": "claimed"})
        assert err.state == {"status": "claimed"}
        assert Conflict().state == {}


class TestExceptionHandler:

    def test_conflict_state_is_merged_into_body(self):
        from core.domain.exception_handler import domain_exception_handler
        from core.domain.exceptions import Conflict

        resp = domain_exception_handler(Conflict("Closed.", state={"status": "resolved"}), {"view": None})

        assert resp.status_code == 409
        assert resp.data == {"detail": "Closed.", "status": "resolved"}

    @pytest.mark.parametrize("exc_name,status_code", [
        ("PermissionDenied", 403),
        ("NotFound", 404),
        ("UpstreamUnavailable", 502),
        ("DomainError", 400),
    ])
    def test_status_mapping(self, exc_name: str, status_code: int):
        from core.domain import exceptions
        from core.domain.exception_handler import domain_exception_handler

        resp = domain_exception_handler(getattr(exceptions, exc_name)(), {"view": None})
        assert resp.status_code == status_code

    def test_unknown_exception_propagates(self):
        from core.domain.exception_handler import domain_exception_handler
        assert domain_exception_handler(RuntimeError("boom"), {"view": None}) is None


# ════════════════════════════════════════════════════════════════════
#  Access Helper Unit Tests
# ════════════════════════════════════════════════════════════════════

class TestAccessHelpers:
    """Unit tests for core.domain.access helpers."""

    def _user(self, role: str, superuser: bool = False):
        user = MagicMock()
        user.is_authenticated = True
        user.is_superuser = superuser
        user.role = role
        return user

    def test_apply_role_scope_first_matching_rule_wins(self):
        from core.domain.access import apply_role_scope

        qs = MagicMock()
        rules = [
            ({"admin"}, lambda q, u: "everything"),
            (None, lambda q, u: "own rows"),
        ]
        assert apply_role_scope(qs, self._user("admin"), scope_rules=rules) == "everything"
        assert apply_role_scope(qs, self._user("volunteer"), scope_rules=rules) == "own rows"

    def test_apply_role_scope_no_match_is_empty(self):
        from core.domain.access import apply_role_scope

        qs = MagicMock()
        apply_role_scope(qs, self._user("citizen"), scope_rules=[({"admin"}, lambda q, u: q)])
        qs.none.assert_called_once()

    def test_superuser_is_admin(self):
        from core.domain.access import get_user_role_name
        assert get_user_role_name(self._user("citizen", superuser=True)) == "admin"

    def test_anonymous_has_no_role(self):
        from core.domain.access import get_user_role_name
        user = MagicMock()
        user.is_authenticated = False
        assert get_user_role_name(user) is None
