"""
Management command: ``run_worker``

Long-running loop for the background worker process:

* drains the task outbox every ``--poll`` seconds;
* runs the media cleanup sweep every ``RESCUE_CLEANUP_INTERVAL_SECONDS``.

Stop it with Ctrl-C / SIGINT.
"""

import logging
import time

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import close_old_connections

from core.tasks import drain

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Run the background worker (outbox drain + periodic media cleanup)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--poll",
            type=float,
            default=5.0,
            help="Seconds between outbox polls (default: 5).",
        )
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single iteration and exit.",
        )

    def handle(self, *args, **options):
        from media.services import MediaCleanupService

        poll = options["poll"]
        interval = settings.RESCUE_CLEANUP_INTERVAL_SECONDS
        next_sweep = time.monotonic()

        self.stdout.write(f"Worker started (poll={poll}s, sweep every {interval}s).")
        try:
            while True:
                close_old_connections()
                succeeded, failed = drain()
                if succeeded or failed:
                    logger.info("Outbox pass: %d succeeded, %d failed", succeeded, failed)

                if time.monotonic() >= next_sweep:
                    result = MediaCleanupService.sweep()
                    self.stdout.write(
                        f"Cleanup sweep: {result.cleaned} cleaned, {result.failed} failed."
                    )
                    next_sweep = time.monotonic() + interval

                if options["once"]:
                    break
                time.sleep(poll)
        except KeyboardInterrupt:
            self.stdout.write("Worker stopped.")
