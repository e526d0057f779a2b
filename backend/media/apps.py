from django.apps import AppConfig


class MediaConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "media"
    verbose_name = "Case Media"

    def ready(self):
        from . import tasks  # noqa: F401  registers outbox handlers
