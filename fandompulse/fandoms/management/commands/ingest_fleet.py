"""
Management command to scrape and ingest tracked fandoms.

Usage:
    python manage.py ingest_fleet
    python manage.py ingest_fleet --fandom=bini-blooms
    python manage.py ingest_fleet --platform=tiktok --force

SIGINT/SIGTERM stop the run before the next batch; the batch in flight
finishes first.
"""

from __future__ import annotations

import logging
import signal
import threading

from django.core.management.base import BaseCommand, CommandError

from fandompulse.fandoms.directory import list_tracked_entities
from fandompulse.fandoms.enums import Platform
from fandompulse.fandoms.ingestion.pipeline import has_active_scrape, ingest_fleet, summarize

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Scrape and ingest every tracked fandom (or one fandom / one platform)"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._cancel = threading.Event()

    def add_arguments(self, parser):
        parser.add_argument(
            "--fandom",
            type=str,
            action="append",
            help="Fandom slug to ingest (repeatable; default: all tracked fandoms)",
        )
        parser.add_argument(
            "--platform",
            type=str,
            choices=Platform.values,
            help="Restrict to one platform",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Run even if another scrape is marked running",
        )

    def handle(self, *args, **options):
        slugs = options["fandom"]
        platform = options["platform"]

        if not options["force"] and has_active_scrape():
            raise CommandError("A scrape is already running. Use --force to run anyway.")

        entities = list_tracked_entities(slugs=slugs)
        if slugs:
            missing = sorted(set(slugs) - {entity.slug for entity in entities})
            if missing:
                raise CommandError(f"Unknown fandom slug(s): {', '.join(missing)}")
        if not entities:
            raise CommandError("No tracked fandoms to ingest")

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.stdout.write(
            f"Ingesting {len(entities)} fandom(s)"
            + (f" on {platform}" if platform else "")
            + "..."
        )

        results = ingest_fleet(cancel_event=self._cancel, entities=entities, platform=platform)
        summary = summarize(results)

        for failure in summary["failures"]:
            self.stdout.write(
                self.style.WARNING(
                    f"  FAILED {failure['fandom_id']}/{failure['platform']}: {failure['error']}"
                )
            )

        self.stdout.write(
            self.style.SUCCESS(
                f"Fleet ingest complete: "
                f"succeeded={summary['succeeded']}, "
                f"failed={summary['failed']}, "
                f"new_items={summary['items']}, "
                f"influencers={summary['influencers']}"
            )
        )

    def _signal_handler(self, signum, frame):
        sig_name = signal.Signals(signum).name
        self.stdout.write(f"\nReceived {sig_name}, stopping after the current batch...")
        self._cancel.set()
