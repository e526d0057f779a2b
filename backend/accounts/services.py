"""
Accounts Service Layer.

Business logic for the profile endpoints.  Views validate input through
serializers, call one of these methods and serialize the result.

Architecture
------------
- ``ProfileService`` — home area, last-known location, push token.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core.domain.transactions import compare_and_set

from .models import UserProfile

logger = logging.getLogger(__name__)


class ProfileService:

    @staticmethod
    def update_area(profile: UserProfile, *, lat: float, lng: float, radius_m: int) -> UserProfile:
        """Set the home-area centre and alert radius used for new-case alerts."""
        profile.area_lat = lat
        profile.area_lng = lng
        profile.area_radius_m = radius_m
        profile.save(update_fields=["area_lat", "area_lng", "area_radius_m", "updated_at"])
        return profile

    @staticmethod
    def update_location(profile: UserProfile, *, lat: float, lng: float) -> UserProfile:
        profile.last_lat = lat
        profile.last_lng = lng
        profile.last_active = timezone.now()
        profile.save(update_fields=["last_lat", "last_lng", "last_active", "updated_at"])
        return profile

    @staticmethod
    @transaction.atomic
    def register_push_token(profile: UserProfile, token: str) -> UserProfile:
        """
        Store ``token`` on ``profile``.

        A device token belongs to one profile at a time: any other profile
        still holding it (e.g. a previous account on the same phone) loses it.
        """
        released = (
            UserProfile.objects
            .filter(fcm_token=token)
            .exclude(pk=profile.pk)
            .update(fcm_token=None, updated_at=timezone.now())
        )
        if released:
            logger.info("Push token moved to %s from %d other profile(s)", profile.username, released)

        profile.fcm_token = token
        profile.save(update_fields=["fcm_token", "updated_at"])
        return profile

    @staticmethod
    def clear_push_token(profile_id: int, token: str) -> bool:
        """
        Drop a token the push transport reported as permanently invalid.

        Only clears it if the profile still holds that exact token, so a
        token registered in the meantime survives.
        """
        cleared = compare_and_set(
            UserProfile,
            pk=profile_id,
            condition=Q(fcm_token=token),
            values={"fcm_token": None},
        )
        if cleared:
            logger.info("Cleared invalid push token for profile #%s", profile_id)
        return cleared
