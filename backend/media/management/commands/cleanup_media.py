"""
Management command: ``cleanup_media``

Runs one media cleanup sweep: closed cases past the retention window
that still hold media get their objects deleted and references cleared.

Usage::

    python manage.py cleanup_media
    python manage.py cleanup_media --days 14 --batch-size 500
"""

from django.core.management.base import BaseCommand

from media.services import MediaCleanupService


class Command(BaseCommand):
    help = "Purge media of closed rescue cases older than the retention window."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Retention window in days (default: RESCUE_MEDIA_RETENTION_DAYS).",
        )
        parser.add_argument(
            "--batch-size",
            type=int,
            default=None,
            help="Maximum number of cases per run (default: RESCUE_CLEANUP_BATCH_SIZE).",
        )

    def handle(self, *args, **options):
        result = MediaCleanupService.sweep(
            retention_days=options["days"],
            batch_size=options["batch_size"],
        )
        style = self.style.SUCCESS if not result.failed else self.style.WARNING
        self.stdout.write(style(f"Cleanup sweep: {result.cleaned} cleaned, {result.failed} failed."))
