import accounts.models
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(
                    default=False,
                    help_text="Designates that this user has all permissions without explicitly assigning them.",
                    verbose_name="superuser status",
                )),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email address")),
                ("is_staff", models.BooleanField(
                    default=False,
                    help_text="Designates whether the user can log into this admin site.",
                    verbose_name="staff status",
                )),
                ("is_active", models.BooleanField(
                    default=True,
                    help_text="Designates whether this user should be treated as active. Unselect this instead of deleting accounts.",
                    verbose_name="active",
                )),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("username", models.CharField(
                    help_text="Subject claim of the identity provider's access token.",
                    max_length=255, unique=True, verbose_name="Actor ID",
                )),
                ("role", models.CharField(
                    choices=[("citizen", "Citizen"), ("volunteer", "Volunteer"), ("ngo", "NGO"), ("vet", "Vet"), ("admin", "Admin")],
                    db_index=True, default="citizen", max_length=20, verbose_name="Role",
                )),
                ("verification_status", models.CharField(
                    choices=[("unverified", "Unverified"), ("pending", "Pending"), ("verified", "Verified"), ("rejected", "Rejected")],
                    default="unverified", max_length=20, verbose_name="Verification Status",
                )),
                ("trust_score", models.IntegerField(default=0, verbose_name="Trust Score")),
                ("area_lat", models.FloatField(blank=True, null=True, verbose_name="Area Latitude")),
                ("area_lng", models.FloatField(blank=True, null=True, verbose_name="Area Longitude")),
                ("area_radius_m", models.PositiveIntegerField(
                    choices=[(2000, "2 km"), (5000, "5 km"), (10000, "10 km"), (20000, "20 km"), (25000, "25 km")],
                    default=5000, verbose_name="Alert Radius (m)",
                )),
                ("last_lat", models.FloatField(blank=True, null=True, verbose_name="Last Latitude")),
                ("last_lng", models.FloatField(blank=True, null=True, verbose_name="Last Longitude")),
                ("last_active", models.DateTimeField(blank=True, null=True, verbose_name="Last Active")),
                ("fcm_token", models.TextField(blank=True, null=True, verbose_name="Push Token")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("groups", models.ManyToManyField(
                    blank=True,
                    help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.",
                    related_name="user_set", related_query_name="user", to="auth.group", verbose_name="groups",
                )),
                ("user_permissions", models.ManyToManyField(
                    blank=True,
                    help_text="Specific permissions for this user.",
                    related_name="user_set", related_query_name="user", to="auth.permission", verbose_name="user permissions",
                )),
            ],
            options={
                "verbose_name": "User Profile",
                "verbose_name_plural": "User Profiles",
                "indexes": [
                    models.Index(fields=["area_lat", "area_lng"], name="accounts_profile_area_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(area_radius_m__in=[2000, 5000, 10000, 20000, 25000]),
                        name="accounts_profile_area_radius_allowed",
                    ),
                ],
            },
            managers=[
                ("objects", accounts.models.UserProfileManager()),
            ],
        ),
    ]
