"""
Bearer-token authentication against the external identity provider.

Tokens are verified by ``djangorestframework-simplejwt`` (HS256 with a
shared secret, or RS256 with keys fetched from ``SIMPLE_JWT["JWK_URL"]``).
The ``sub`` claim is the actor identifier; the matching ``UserProfile`` is
created on first contact.
"""

from __future__ import annotations

import logging

from django.utils.translation import gettext_lazy as _
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from .models import UserProfile

logger = logging.getLogger(__name__)


class ProviderAccessToken(AccessToken):
    """
    Access token minted by the identity provider.

    Provider tokens carry neither simplejwt's ``token_type`` nor a ``jti``
    claim, so only expiry is checked beyond the signature.
    """

    def verify(self) -> None:
        self.check_exp()


class ProfileJWTAuthentication(JWTAuthentication):
    """
    ``JWTAuthentication`` that bootstraps a profile for unknown subjects.

    The returned profile carries ``bootstrapped = True`` when this request
    created it.
    """

    def get_user(self, validated_token):
        actor_id = validated_token.get(api_settings.USER_ID_CLAIM)
        if not actor_id:
            raise InvalidToken(_("Token contained no recognizable user identification"))

        profile, created = UserProfile.objects.bootstrap(str(actor_id))
        if created:
            logger.info("Bootstrapped profile for actor %s", actor_id)
        if not profile.is_active:
            raise AuthenticationFailed(_("User is inactive"), code="user_inactive")

        profile.bootstrapped = created
        return profile
