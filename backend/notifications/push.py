"""
Push transport backends.

The active backend is named by ``RESCUE_PUSH_BACKEND`` (dotted path), the
same way Django picks its e-mail backend::

    RESCUE_PUSH_BACKEND = "notifications.push.FirebaseBackend"   # production
    RESCUE_PUSH_BACKEND = "notifications.push.LocmemBackend"     # tests

``send(token, message)`` never raises for delivery problems; it reports a
``DeliveryResult`` instead.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass

import firebase_admin
from django.conf import settings
from django.utils.module_loading import import_string
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

logger = logging.getLogger(__name__)


class DeliveryResult(enum.Enum):
    SUCCESS = "success"
    # FCM no longer knows the token; it must not be used again.
    PERMANENT = "permanent"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class PushMessage:
    """
    Transport-neutral push payload.

    ``data`` values must be strings.  A message without ``title`` is sent
    silently (data-only).
    """

    data: dict[str, str]
    title: str | None = None
    body: str | None = None
    sound: str | None = None

    @property
    def is_silent(self) -> bool:
        return self.title is None


class BasePushBackend:

    def send(self, token: str, message: PushMessage) -> DeliveryResult:
        raise NotImplementedError


class FirebaseBackend(BasePushBackend):
    """
    Firebase Cloud Messaging through ``firebase-admin``.

    The Firebase app is initialised once per process, from
    ``FIREBASE_CREDENTIALS_FILE`` when set, otherwise from the
    application-default credentials.
    """

    APP_NAME = "rescue-push"

    _app = None
    _app_lock = threading.Lock()

    @classmethod
    def get_app(cls):
        if cls._app is None:
            with cls._app_lock:
                if cls._app is None:
                    if settings.FIREBASE_CREDENTIALS_FILE:
                        credential = credentials.Certificate(settings.FIREBASE_CREDENTIALS_FILE)
                    else:
                        credential = credentials.ApplicationDefault()
                    options = {"httpTimeout": settings.RESCUE_PUSH_TIMEOUT_SECONDS}
                    if settings.FIREBASE_PROJECT_ID:
                        options["projectId"] = settings.FIREBASE_PROJECT_ID
                    cls._app = firebase_admin.initialize_app(credential, options, name=cls.APP_NAME)
        return cls._app

    @staticmethod
    def build_message(token: str, message: PushMessage) -> messaging.Message:
        notification = None
        if not message.is_silent:
            notification = messaging.Notification(title=message.title, body=message.body)
        return messaging.Message(
            token=token,
            data=dict(message.data),
            notification=notification,
            android=messaging.AndroidConfig(priority="high"),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(content_available=True, sound=message.sound),
                ),
            ),
        )

    def send(self, token: str, message: PushMessage) -> DeliveryResult:
        try:
            messaging.send(self.build_message(token, message), app=self.get_app())
        except (
            messaging.UnregisteredError,
            messaging.SenderIdMismatchError,
            firebase_exceptions.NotFoundError,
        ) as exc:
            logger.info("Push token rejected by FCM: %s", exc)
            return DeliveryResult.PERMANENT
        except (firebase_exceptions.FirebaseError, OSError) as exc:
            logger.warning("Transient FCM failure: %s", exc)
            return DeliveryResult.TRANSIENT
        return DeliveryResult.SUCCESS


# ── In-memory backend (tests) ───────────────────────────────────────

#: ``(token, PushMessage)`` pairs sent through ``LocmemBackend``.
outbox: list[tuple[str, PushMessage]] = []

#: Per-token outcome override for ``LocmemBackend``; defaults to SUCCESS.
outcomes: dict[str, DeliveryResult] = {}


class LocmemBackend(BasePushBackend):
    """Records messages in ``notifications.push.outbox`` instead of sending them."""

    def send(self, token: str, message: PushMessage) -> DeliveryResult:
        result = outcomes.get(token, DeliveryResult.SUCCESS)
        if result is DeliveryResult.SUCCESS:
            outbox.append((token, message))
        return result


def get_backend() -> BasePushBackend:
    return import_string(settings.RESCUE_PUSH_BACKEND)()
