"""
Management command: ``drain_outbox``

Runs every due background task once.  Useful after a crash left tasks
``pending`` and as a cron-style backstop.

Usage::

    python manage.py drain_outbox
    python manage.py drain_outbox --limit 500
"""

from django.core.management.base import BaseCommand

from core.tasks import drain


class Command(BaseCommand):
    help = "Run due tasks from the background task outbox."

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=100,
            help="Maximum number of tasks to run (default: 100).",
        )

    def handle(self, *args, **options):
        succeeded, failed = drain(limit=options["limit"])
        self.stdout.write(
            self.style.SUCCESS(f"Outbox drained: {succeeded} succeeded, {failed} failed.")
        )
