"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.  **No business logic** resides here.

View Map
--------
- ``ProfileViewSet`` — /api/profile/ (bootstrap, me, area, location, fcm)
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from core.idempotency import idempotent

from .serializers import (
    AreaRequestSerializer,
    BootstrapResponseSerializer,
    LatLngSerializer,
    ProfileSerializer,
    PushTokenRequestSerializer,
    SuccessResponseSerializer,
)
from .services import ProfileService


class ProfileViewSet(viewsets.ViewSet):
    """
    The authenticated actor's own profile.

    Every mutating action requires an ``Idempotency-Key`` header.
    """

    @extend_schema(request=None, responses={200: BootstrapResponseSerializer}, tags=["Profile"])
    @action(detail=False, methods=["post"])
    @idempotent
    def bootstrap(self, request: Request) -> Response:
        """
        POST /api/profile/bootstrap/

        Authentication already created the profile if it was missing;
        ``bootstrapped`` reports whether this request did so.
        """
        return Response(
            {"success": True, "bootstrapped": getattr(request.user, "bootstrapped", False)},
            status=status.HTTP_200_OK,
        )

    @extend_schema(responses={200: ProfileSerializer}, tags=["Profile"])
    @action(detail=False, methods=["get"])
    def me(self, request: Request) -> Response:
        """GET /api/profile/me/"""
        return Response(ProfileSerializer(request.user).data)

    @extend_schema(request=AreaRequestSerializer, responses={200: SuccessResponseSerializer}, tags=["Profile"])
    @action(detail=False, methods=["patch"])
    @idempotent
    def area(self, request: Request) -> Response:
        """PATCH /api/profile/area/ — home-area centre and alert radius."""
        serializer = AreaRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ProfileService.update_area(request.user, **serializer.validated_data)
        return Response({"success": True})

    @extend_schema(request=LatLngSerializer, responses={200: SuccessResponseSerializer}, tags=["Profile"])
    @action(detail=False, methods=["patch"])
    @idempotent
    def location(self, request: Request) -> Response:
        """PATCH /api/profile/location/ — last-known location."""
        serializer = LatLngSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ProfileService.update_location(request.user, **serializer.validated_data)
        return Response({"success": True})

    @extend_schema(request=PushTokenRequestSerializer, responses={200: SuccessResponseSerializer}, tags=["Profile"])
    @action(detail=False, methods=["post"])
    @idempotent
    def fcm(self, request: Request) -> Response:
        """POST /api/profile/fcm/ — register this device's push token."""
        serializer = PushTokenRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ProfileService.register_push_token(request.user, serializer.validated_data["token"])
        return Response({"success": True})
