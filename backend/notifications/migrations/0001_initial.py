import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("cases", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="NotificationRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(
                    choices=[("new_rescue", "New Rescue"), ("mute", "Mute"), ("case_update", "Case Update")],
                    max_length=20, verbose_name="Kind",
                )),
                ("sent_at", models.DateTimeField(auto_now_add=True, verbose_name="Sent At")),
                ("case", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="notification_records",
                    to="cases.rescuecase",
                    verbose_name="Case",
                )),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="notification_records",
                    to=settings.AUTH_USER_MODEL,
                    verbose_name="Recipient",
                )),
            ],
            options={
                "verbose_name": "Notification Record",
                "verbose_name_plural": "Notification Records",
                "ordering": ["-sent_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("case", "user", "kind"),
                        name="uniq_notification_case_user_kind",
                    ),
                ],
            },
        ),
    ]
