import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="IdempotencyRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("actor_id", models.CharField(max_length=255, verbose_name="Actor")),
                ("endpoint", models.CharField(max_length=255, verbose_name="Endpoint")),
                ("key", models.CharField(max_length=255, verbose_name="Idempotency Key")),
                ("status_code", models.PositiveSmallIntegerField(verbose_name="Status Code")),
                ("headers", models.JSONField(blank=True, default=dict, verbose_name="Headers")),
                ("body", models.TextField(blank=True, default="", verbose_name="Body")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
            ],
            options={
                "verbose_name": "Idempotency Record",
                "verbose_name_plural": "Idempotency Records",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("actor_id", "endpoint", "key"),
                        name="uniq_idempotency_actor_endpoint_key",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OutboxTask",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("name", models.CharField(max_length=100, verbose_name="Task Name")),
                ("payload", models.JSONField(blank=True, default=dict, verbose_name="Payload")),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("running", "Running"), ("done", "Done"), ("failed", "Failed")],
                    default="pending", max_length=10, verbose_name="Status",
                )),
                ("attempts", models.PositiveIntegerField(default=0, verbose_name="Attempts")),
                ("available_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Available At")),
                ("last_error", models.TextField(blank=True, default="", verbose_name="Last Error")),
            ],
            options={
                "verbose_name": "Outbox Task",
                "verbose_name_plural": "Outbox Tasks",
                "ordering": ["available_at"],
                "indexes": [
                    models.Index(fields=["status", "available_at"], name="core_outbox_status_avail_idx"),
                ],
            },
        ),
    ]
