"""
Cases app views.

Thin views only: validate input through serializers, delegate to the
service layer, and wrap the result in a DRF ``Response``.

View Map
--------
``CaseViewSet`` — /api/cases/

    GET    /                       list (reported + assigned)
    POST   /                       create
    GET    /nearby/                pending cases in the caller's home area
    GET    /{id}/                  retrieve
    GET    /{id}/status-log/       audit trail
    POST   /{id}/claim/            atomic claim
    POST   /{id}/transition/       status transition
    POST   /{id}/uploads/          upload URLs for the case media
    PATCH  /{id}/media-keys/       attach uploaded media
    GET    /{id}/media/?kind=      time-limited download URL
    POST   /{id}/analyze/          AI wound diagnosis

Every mutating action requires an ``Idempotency-Key`` header.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from core.idempotency import idempotent
from media.services import (
    DiagnosisService,
    MediaAccessService,
    MediaAttachService,
    MediaUploadService,
)

from .serializers import (
    CaseCreateRequestSerializer,
    CaseCreatedResponseSerializer,
    CaseStatusLogSerializer,
    ClaimResponseSerializer,
    MediaKeysRequestSerializer,
    MediaKindQuerySerializer,
    NearbyCaseSerializer,
    RescueCaseSerializer,
    TransitionRequestSerializer,
    TransitionResponseSerializer,
)
from .services import (
    CaseClaimService,
    CaseCreationService,
    CaseQueryService,
    CaseWorkflowService,
)

_IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=True,
    type=str,
    description="Client-chosen key; a retry with the same key replays the first response.",
)


@extend_schema_view(
    list=extend_schema(responses={200: RescueCaseSerializer(many=True)}, tags=["Cases"]),
    retrieve=extend_schema(responses={200: RescueCaseSerializer}, tags=["Cases"]),
)
class CaseViewSet(viewsets.ViewSet):
    """Rescue case lifecycle endpoints."""

    lookup_value_regex = "[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"

    # ── Reads ────────────────────────────────────────────────────────

    def list(self, request: Request) -> Response:
        cases = CaseQueryService.list_for_actor(request.user)
        return Response(RescueCaseSerializer(cases, many=True).data)

    def retrieve(self, request: Request, pk: str = None) -> Response:
        case = CaseQueryService.get_visible_case(pk, request.user)
        return Response(RescueCaseSerializer(case).data)

    @extend_schema(responses={200: NearbyCaseSerializer(many=True)}, tags=["Cases"])
    @action(detail=False, methods=["get"])
    def nearby(self, request: Request) -> Response:
        hits = CaseQueryService.nearby(request.user)
        serializer = NearbyCaseSerializer(
            [case for case, _ in hits],
            many=True,
            context={"distances": {case.pk: distance for case, distance in hits}},
        )
        return Response(serializer.data)

    @extend_schema(responses={200: CaseStatusLogSerializer(many=True)}, tags=["Cases"])
    @action(detail=True, methods=["get"], url_path="status-log")
    def status_log(self, request: Request, pk: str = None) -> Response:
        logs = CaseQueryService.status_log(pk, request.user)
        return Response(CaseStatusLogSerializer(logs, many=True).data)

    # ── Lifecycle ────────────────────────────────────────────────────

    @extend_schema(
        request=CaseCreateRequestSerializer,
        responses={201: CaseCreatedResponseSerializer},
        parameters=[_IDEMPOTENCY_HEADER],
        tags=["Cases"],
    )
    @idempotent
    def create(self, request: Request) -> Response:
        serializer = CaseCreateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        lat, lng = data.pop("location")
        case = CaseCreationService.create_case(request.user, lat=lat, lng=lng, **data)
        return Response({"success": True, "id": str(case.pk)}, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=None,
        responses={
            200: ClaimResponseSerializer,
            409: OpenApiResponse(ClaimResponseSerializer, description="Claim lost; current state."),
        },
        parameters=[_IDEMPOTENCY_HEADER],
        tags=["Cases"],
    )
    @action(detail=True, methods=["post"])
    @idempotent
    def claim(self, request: Request, pk: str = None) -> Response:
        result = CaseClaimService.claim(pk, request.user)
        return Response(
            {
                "claimed": result.won,
                "status": str(result.status),
                "assigned_rescuer_id": result.assigned_rescuer_id,
            },
            status=status.HTTP_200_OK if result.won else status.HTTP_409_CONFLICT,
        )

    @extend_schema(
        request=TransitionRequestSerializer,
        responses={
            200: TransitionResponseSerializer,
            409: OpenApiResponse(TransitionResponseSerializer, description="Transition refused; current status."),
        },
        parameters=[_IDEMPOTENCY_HEADER],
        tags=["Cases"],
    )
    @action(detail=True, methods=["post"])
    @idempotent
    def transition(self, request: Request, pk: str = None) -> Response:
        serializer = TransitionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = CaseWorkflowService.transition(
            pk, request.user, serializer.validated_data["next_status"],
        )
        return Response(
            {"ok": result.ok, "status": str(result.status)},
            status=status.HTTP_200_OK if result.ok else status.HTTP_409_CONFLICT,
        )

    # ── Media ────────────────────────────────────────────────────────

    @extend_schema(request=None, parameters=[_IDEMPOTENCY_HEADER], tags=["Media"])
    @action(detail=True, methods=["post"])
    @idempotent
    def uploads(self, request: Request, pk: str = None) -> Response:
        return Response(MediaUploadService.issue_upload_urls(pk, request.user))

    @extend_schema(request=MediaKeysRequestSerializer, parameters=[_IDEMPOTENCY_HEADER], tags=["Media"])
    @action(detail=True, methods=["patch"], url_path="media-keys")
    @idempotent
    def media_keys(self, request: Request, pk: str = None) -> Response:
        serializer = MediaKeysRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        MediaAttachService.attach(pk, request.user, **serializer.validated_data)
        return Response({"success": True})

    @extend_schema(
        parameters=[OpenApiParameter("kind", str, enum=["original", "crop"], required=True)],
        tags=["Media"],
    )
    @action(detail=True, methods=["get"])
    def media(self, request: Request, pk: str = None) -> Response:
        query = MediaKindQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return Response(MediaAccessService.download_url(pk, request.user, query.validated_data["kind"]))

    @extend_schema(request=None, parameters=[_IDEMPOTENCY_HEADER], tags=["Media"])
    @action(detail=True, methods=["post"])
    @idempotent
    def analyze(self, request: Request, pk: str = None) -> Response:
        diagnosis = DiagnosisService.analyze(pk, request.user)
        return Response({"success": True, "diagnosis": diagnosis})
