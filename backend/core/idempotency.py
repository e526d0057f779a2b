"""
Idempotency envelope for mutating endpoints.

``@idempotent`` wraps a DRF view (or ViewSet action) method:

1. A missing or oversized ``Idempotency-Key`` header is rejected with 400
   before the handler runs.
2. A stored response for ``(actor, request path, key)`` is replayed
   verbatim and the handler is not called.
3. Otherwise the handler runs inside ``transaction.atomic()``.  A response
   below 500 is rendered once, stored, and returned; a 5xx response rolls
   the whole unit of work back and nothing is stored.
4. A concurrent request with the same key loses on the unique constraint;
   its transaction is rolled back and it receives ``IdempotencyConflict``.

Usage::

    class CaseViewSet(viewsets.ViewSet):

        @action(detail=True, methods=["post"])
        @idempotent
        def claim(self, request, pk=None):
            ...
"""

from __future__ import annotations

import functools
import logging

from django.db import IntegrityError, transaction
from django.http import HttpResponse
from rest_framework import status
from rest_framework.renderers import JSONRenderer
from rest_framework.response import Response

from core.constants import IDEMPOTENCY_KEY_HEADER, IDEMPOTENCY_KEY_MAX_LENGTH
from core.domain.exceptions import IdempotencyConflict
from core.models import IdempotencyRecord

logger = logging.getLogger(__name__)

_JSON_CONTENT_TYPE = "application/json"


def _render(response: HttpResponse) -> tuple[bytes, dict[str, str]]:
    """Return the body bytes and headers the client will receive."""
    if isinstance(response, Response):
        body = JSONRenderer().render(response.data) if response.data is not None else b""
        headers = {
            name: value for name, value in response.items()
            if name.lower() != "content-type"
        }
        headers["Content-Type"] = _JSON_CONTENT_TYPE
        return body, headers
    return response.content, dict(response.items())


def _to_http_response(status_code: int, headers: dict[str, str], body: bytes) -> HttpResponse:
    response = HttpResponse(body, status=status_code)
    for name, value in headers.items():
        response[name] = value
    return response


def _missing_key_response(detail: str) -> Response:
    return Response(
        {"detail": detail, "field": IDEMPOTENCY_KEY_HEADER},
        status=status.HTTP_400_BAD_REQUEST,
    )


def idempotent(view_method):
    """Decorate a view method so retries with the same key replay its response."""

    @functools.wraps(view_method)
    def wrapper(self, request, *args, **kwargs):
        key = (request.headers.get(IDEMPOTENCY_KEY_HEADER) or "").strip()
        if not key:
            logger.warning("Rejected %s %s: missing %s header", request.method, request.path, IDEMPOTENCY_KEY_HEADER)
            return _missing_key_response(f"Missing {IDEMPOTENCY_KEY_HEADER} header.")
        if len(key) > IDEMPOTENCY_KEY_MAX_LENGTH:
            logger.warning("Rejected %s %s: oversized %s header", request.method, request.path, IDEMPOTENCY_KEY_HEADER)
            return _missing_key_response(
                f"{IDEMPOTENCY_KEY_HEADER} must be at most {IDEMPOTENCY_KEY_MAX_LENGTH} characters."
            )

        actor_id = request.user.get_username()
        endpoint = request.path

        with transaction.atomic():
            cached = IdempotencyRecord.objects.filter(
                actor_id=actor_id, endpoint=endpoint, key=key,
            ).first()
            if cached is not None:
                logger.info("Replaying stored response for %s %s [%s]", actor_id, endpoint, key)
                return _to_http_response(
                    cached.status_code, cached.headers, cached.body.encode("utf-8"),
                )

            try:
                with transaction.atomic():
                    response = view_method(self, request, *args, **kwargs)
            except Exception as exc:
                # Handled exceptions become a cacheable 4xx; anything else
                # is re-raised and rolls the outer block back.
                response = self.handle_exception(exc)

            if response.status_code >= 500:
                transaction.set_rollback(True)
                return response

            body, headers = _render(response)
            try:
                with transaction.atomic():
                    IdempotencyRecord.objects.create(
                        actor_id=actor_id,
                        endpoint=endpoint,
                        key=key,
                        status_code=response.status_code,
                        headers=headers,
                        body=body.decode("utf-8"),
                    )
            except IntegrityError as exc:
                logger.warning("Concurrent duplicate of %s %s [%s] aborted", actor_id, endpoint, key)
                raise IdempotencyConflict() from exc

        return _to_http_response(response.status_code, headers, body)

    return wrapper
