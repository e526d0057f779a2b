"""
Accounts app models.

``UserProfile`` is the project's ``AUTH_USER_MODEL``.  Actors authenticate
with bearer tokens issued by an external identity provider; the token's
subject is stored as ``username`` and a profile is bootstrapped on first
authenticated contact (see ``accounts.authentication``).
"""

from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class Role(models.TextChoices):
    CITIZEN = "citizen", "Citizen"
    VOLUNTEER = "volunteer", "Volunteer"
    NGO = "ngo", "NGO"
    VET = "vet", "Vet"
    ADMIN = "admin", "Admin"


# Roles that receive new-case alerts.
RESPONDER_ROLES = (Role.VOLUNTEER, Role.NGO, Role.VET)


class VerificationStatus(models.TextChoices):
    UNVERIFIED = "unverified", "Unverified"
    PENDING = "pending", "Pending"
    VERIFIED = "verified", "Verified"
    REJECTED = "rejected", "Rejected"


def _radius_choices():
    return [(radius, f"{radius // 1000} km") for radius in settings.RESCUE_ALERT_RADII_M]


class UserProfileManager(UserManager):

    def bootstrap(self, actor_id: str):
        """
        Return ``(profile, created)`` for ``actor_id``, creating a citizen
        profile on first contact.  Safe under concurrent first requests.
        """
        profile, created = self.get_or_create(
            username=actor_id,
            defaults={
                "role": Role.CITIZEN,
                "verification_status": VerificationStatus.UNVERIFIED,
                "trust_score": 0,
            },
        )
        if created:
            profile.set_unusable_password()
            profile.save(update_fields=["password"])
        return profile, created


class UserProfile(AbstractUser):
    """
    An actor of the rescue network: citizen, volunteer, NGO, vet or admin.

    The home area (``area_lat``/``area_lng`` + ``area_radius_m``) decides
    which new cases the profile is alerted about; a profile without a home
    area centre is never targeted.
    """

    username = models.CharField(
        max_length=255,
        unique=True,
        verbose_name="Actor ID",
        help_text="Subject claim of the identity provider's access token.",
    )
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CITIZEN,
        db_index=True,
        verbose_name="Role",
    )
    verification_status = models.CharField(
        max_length=20,
        choices=VerificationStatus.choices,
        default=VerificationStatus.UNVERIFIED,
        verbose_name="Verification Status",
    )
    trust_score = models.IntegerField(default=0, verbose_name="Trust Score")

    # ── Home area ────────────────────────────────────────────────────
    area_lat = models.FloatField(null=True, blank=True, verbose_name="Area Latitude")
    area_lng = models.FloatField(null=True, blank=True, verbose_name="Area Longitude")
    area_radius_m = models.PositiveIntegerField(
        choices=_radius_choices(),
        default=settings.RESCUE_DEFAULT_ALERT_RADIUS_M,
        verbose_name="Alert Radius (m)",
    )

    # ── Last known location ──────────────────────────────────────────
    last_lat = models.FloatField(null=True, blank=True, verbose_name="Last Latitude")
    last_lng = models.FloatField(null=True, blank=True, verbose_name="Last Longitude")
    last_active = models.DateTimeField(null=True, blank=True, verbose_name="Last Active")

    fcm_token = models.TextField(null=True, blank=True, verbose_name="Push Token")

    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Updated At")

    objects = UserProfileManager()

    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = "User Profile"
        verbose_name_plural = "User Profiles"
        indexes = [
            models.Index(fields=["area_lat", "area_lng"], name="accounts_profile_area_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(area_radius_m__in=list(settings.RESCUE_ALERT_RADII_M)),
                name="accounts_profile_area_radius_allowed",
            ),
        ]

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def is_admin_role(self) -> bool:
        return self.is_superuser or self.role == Role.ADMIN

    @property
    def has_home_area(self) -> bool:
        return self.area_lat is not None and self.area_lng is not None
