import django.core.validators
import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="RescueCase",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("lat", models.FloatField(
                    validators=[django.core.validators.MinValueValidator(-90), django.core.validators.MaxValueValidator(90)],
                    verbose_name="Latitude",
                )),
                ("lng", models.FloatField(
                    validators=[django.core.validators.MinValueValidator(-180), django.core.validators.MaxValueValidator(180)],
                    verbose_name="Longitude",
                )),
                ("description", models.TextField(blank=True, default="", verbose_name="Description")),
                ("landmark_hint", models.CharField(blank=True, default="", max_length=255, verbose_name="Landmark Hint")),
                ("wound_severity", models.PositiveSmallIntegerField(
                    blank=True, null=True,
                    validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)],
                    verbose_name="Wound Severity (1-10)",
                )),
                ("ai_confidence", models.FloatField(blank=True, null=True, verbose_name="Detection Confidence")),
                ("detection_bbox", models.JSONField(blank=True, null=True, verbose_name="Detection Bounding Box")),
                ("ai_diagnosis", models.JSONField(blank=True, null=True, verbose_name="AI Diagnosis")),
                ("photo_object_key", models.CharField(blank=True, max_length=255, null=True, verbose_name="Photo Key")),
                ("crop_object_key", models.CharField(blank=True, max_length=255, null=True, verbose_name="Wound Crop Key")),
                ("status", models.CharField(
                    choices=[
                        ("pending", "Pending"), ("claimed", "Claimed"), ("en_route", "En Route"),
                        ("arrived", "Arrived"), ("resolved", "Resolved"), ("cancelled", "Cancelled"),
                        ("unreachable", "Unreachable"),
                    ],
                    default="pending", max_length=20, verbose_name="Status",
                )),
                ("visibility", models.CharField(
                    choices=[("visible", "Visible"), ("hidden", "Hidden")],
                    default="visible", max_length=10, verbose_name="Visibility",
                )),
                ("resolved_at", models.DateTimeField(blank=True, null=True, verbose_name="Closed At")),
                ("assigned_rescuer", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="rescued_cases", to=settings.AUTH_USER_MODEL, verbose_name="Assigned Rescuer",
                )),
                ("reporter", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="reported_cases", to=settings.AUTH_USER_MODEL, verbose_name="Reporter",
                )),
            ],
            options={
                "verbose_name": "Rescue Case",
                "verbose_name_plural": "Rescue Cases",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["lat", "lng"], name="cases_rescue_latlng_idx"),
                    models.Index(fields=["status", "resolved_at"], name="cases_rescue_status_closed_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("wound_severity__isnull", True), models.Q(("wound_severity__gte", 1), ("wound_severity__lte", 10)), _connector="OR"),
                        name="rescue_case_wound_severity_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("status", "pending"), _negated=True), ("assigned_rescuer__isnull", True), _connector="OR"),
                        name="rescue_case_pending_unassigned",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CaseStatusLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("from_status", models.CharField(
                    choices=[
                        ("pending", "Pending"), ("claimed", "Claimed"), ("en_route", "En Route"),
                        ("arrived", "Arrived"), ("resolved", "Resolved"), ("cancelled", "Cancelled"),
                        ("unreachable", "Unreachable"),
                    ],
                    max_length=20, verbose_name="Previous Status",
                )),
                ("to_status", models.CharField(
                    choices=[
                        ("pending", "Pending"), ("claimed", "Claimed"), ("en_route", "En Route"),
                        ("arrived", "Arrived"), ("resolved", "Resolved"), ("cancelled", "Cancelled"),
                        ("unreachable", "Unreachable"),
                    ],
                    max_length=20, verbose_name="New Status",
                )),
                ("case", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="status_logs", to="cases.rescuecase", verbose_name="Case",
                )),
                ("changed_by", models.ForeignKey(
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="case_status_changes", to=settings.AUTH_USER_MODEL, verbose_name="Changed By",
                )),
            ],
            options={
                "verbose_name": "Case Status Log",
                "verbose_name_plural": "Case Status Logs",
                "ordering": ["-created_at"],
            },
        ),
    ]
