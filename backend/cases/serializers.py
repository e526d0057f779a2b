"""
Cases app serializers.

Request serializers validate input only; every business rule lives in
``services.py`` (or ``media.services`` for media endpoints).
"""

from __future__ import annotations

from rest_framework import serializers

from .models import CaseStatus, CaseStatusLog, RescueCase


# ═══════════════════════════════════════════════════════════════════
#  Request serializers
# ═══════════════════════════════════════════════════════════════════


class CaseCreateRequestSerializer(serializers.Serializer):
    """
    ``location`` is ``[lat, lng]``.  Everything else is optional context
    captured on the reporter's device.
    """

    location = serializers.ListField(
        child=serializers.FloatField(),
        min_length=2,
        max_length=2,
    )
    description = serializers.CharField(required=False, allow_blank=True, max_length=2000, default="")
    wound_severity = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=10, default=None)
    landmark_hint = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    ai_confidence = serializers.FloatField(required=False, allow_null=True, min_value=0, max_value=1, default=None)
    detection_bbox = serializers.JSONField(required=False, allow_null=True, default=None)

    def validate_location(self, value):
        lat, lng = value
        if not -90 <= lat <= 90:
            raise serializers.ValidationError("Latitude must be between -90 and 90.")
        if not -180 <= lng <= 180:
            raise serializers.ValidationError("Longitude must be between -180 and 180.")
        return value


class TransitionRequestSerializer(serializers.Serializer):
    next_status = serializers.ChoiceField(choices=CaseStatus.choices)


class MediaKeysRequestSerializer(serializers.Serializer):
    photo_object_key = serializers.CharField(required=False, max_length=255)
    crop_object_key = serializers.CharField(required=False, max_length=255)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError(
                "Provide photo_object_key, crop_object_key or both."
            )
        return attrs


class MediaKindQuerySerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=["original", "crop"])


# ═══════════════════════════════════════════════════════════════════
#  Response serializers
# ═══════════════════════════════════════════════════════════════════


class RescueCaseSerializer(serializers.ModelSerializer):
    reporter_id = serializers.CharField(source="reporter.username", read_only=True)
    assigned_rescuer_id = serializers.CharField(
        source="assigned_rescuer.username", read_only=True, allow_null=True, default=None,
    )
    location = serializers.SerializerMethodField()
    has_photo = serializers.SerializerMethodField()
    has_crop = serializers.SerializerMethodField()

    class Meta:
        model = RescueCase
        fields = [
            "id",
            "reporter_id",
            "assigned_rescuer_id",
            "location",
            "description",
            "landmark_hint",
            "wound_severity",
            "ai_confidence",
            "detection_bbox",
            "ai_diagnosis",
            "status",
            "visibility",
            "has_photo",
            "has_crop",
            "resolved_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_location(self, obj) -> list[float]:
        return [obj.lat, obj.lng]

    def get_has_photo(self, obj) -> bool:
        return bool(obj.photo_object_key)

    def get_has_crop(self, obj) -> bool:
        return bool(obj.crop_object_key)


class NearbyCaseSerializer(RescueCaseSerializer):
    distance_m = serializers.SerializerMethodField()

    class Meta(RescueCaseSerializer.Meta):
        fields = RescueCaseSerializer.Meta.fields + ["distance_m"]
        read_only_fields = fields

    def get_distance_m(self, obj) -> float:
        return round(self.context["distances"][obj.pk], 1)


class CaseStatusLogSerializer(serializers.ModelSerializer):
    changed_by = serializers.CharField(source="changed_by.username", read_only=True, default=None)

    class Meta:
        model = CaseStatusLog
        fields = ["from_status", "to_status", "changed_by", "created_at"]
        read_only_fields = fields


class CaseCreatedResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    id = serializers.UUIDField()


class ClaimResponseSerializer(serializers.Serializer):
    claimed = serializers.BooleanField()
    status = serializers.ChoiceField(choices=CaseStatus.choices)
    assigned_rescuer_id = serializers.CharField(allow_null=True)


class TransitionResponseSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    status = serializers.ChoiceField(choices=CaseStatus.choices)
