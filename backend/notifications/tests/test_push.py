"""
Unit tests for how FCM failures map to delivery results.
"""

from __future__ import annotations

from unittest import mock

import pytest
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from notifications.push import DeliveryResult, FirebaseBackend, PushMessage

MESSAGE = PushMessage(data={"type": "new_rescue", "case_id": "c-1"}, title="Animal needs help")


@pytest.fixture
def fcm_send():
    with mock.patch.object(FirebaseBackend, "get_app", return_value=object()), \
            mock.patch("notifications.push.messaging.send") as send:
        yield send


class TestFirebaseBackend:

    def test_success(self, fcm_send):
        assert FirebaseBackend().send("tok", MESSAGE) is DeliveryResult.SUCCESS
        fcm_send.assert_called_once()

    @pytest.mark.parametrize("error", [
        messaging.UnregisteredError("Requested entity was not found."),
        messaging.SenderIdMismatchError("Sender id mismatch."),
        firebase_exceptions.NotFoundError("Token not found."),
    ])
    def test_unknown_token_is_permanent(self, fcm_send, error):
        fcm_send.side_effect = error
        assert FirebaseBackend().send("tok", MESSAGE) is DeliveryResult.PERMANENT

    @pytest.mark.parametrize("error", [
        firebase_exceptions.InvalidArgumentError("Message payload too large."),
        firebase_exceptions.UnavailableError("Service unavailable."),
        firebase_exceptions.DeadlineExceededError("Timed out."),
        ConnectionResetError("reset by peer"),
    ])
    def test_other_failures_keep_the_token(self, fcm_send, error):
        fcm_send.side_effect = error
        assert FirebaseBackend().send("tok", MESSAGE) is DeliveryResult.TRANSIENT

    def test_silent_message_has_no_notification(self):
        built = FirebaseBackend.build_message("tok", PushMessage(data={"type": "mute"}))
        assert built.notification is None
        assert built.data == {"type": "mute"}
