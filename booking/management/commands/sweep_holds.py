import logging
import time

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import close_old_connections

from booking.lifecycle import reclaim_expired_holds

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Cancel pending appointments whose payment hold has expired and free their slots."

    def add_arguments(self, parser):
        parser.add_argument(
            "--loop",
            action="store_true",
            help="Keep sweeping every --interval seconds instead of running once.",
        )
        parser.add_argument(
            "--interval",
            type=int,
            default=settings.HOLD_SWEEP_INTERVAL_SECONDS,
            help="Seconds between sweeps when --loop is given.",
        )

    def handle(self, *args, **options):
        if not options["loop"]:
            reclaimed = reclaim_expired_holds()
            self.stdout.write(f"Reclaimed {reclaimed} expired hold(s)")
            return

        interval = max(options["interval"], 1)
        logger.info("Hold sweeper started, interval %ss", interval)
        try:
            while True:
                # drop a connection broken by an earlier outage so this cycle reconnects
                close_old_connections()
                reclaim_expired_holds()
                time.sleep(interval)
        except KeyboardInterrupt:
            logger.info("Hold sweeper stopped")
