"""
Accounts app serializers.

Request serializers validate input only; all rules live in ``services.py``.
"""

from __future__ import annotations

from django.conf import settings
from rest_framework import serializers

from .models import UserProfile


class LatLngSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class AreaRequestSerializer(LatLngSerializer):
    """Home-area centre plus one of the supported alert radii."""

    radius_m = serializers.ChoiceField(choices=[])

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["radius_m"].choices = list(settings.RESCUE_ALERT_RADII_M)


class PushTokenRequestSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=4096, trim_whitespace=True)


class ProfileSerializer(serializers.ModelSerializer):
    actor_id = serializers.CharField(source="username", read_only=True)
    has_push_token = serializers.SerializerMethodField()

    class Meta:
        model = UserProfile
        fields = [
            "actor_id",
            "role",
            "verification_status",
            "trust_score",
            "area_lat",
            "area_lng",
            "area_radius_m",
            "last_lat",
            "last_lng",
            "last_active",
            "has_push_token",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_has_push_token(self, obj) -> bool:
        return bool(obj.fcm_token)


class BootstrapResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    bootstrapped = serializers.BooleanField()


class SuccessResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
