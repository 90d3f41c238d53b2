"""
Management command to report untracked fandom candidates.

Usage:
    python manage.py discover_fandoms
    python manage.py discover_fandoms --json
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict

from django.core.management.base import BaseCommand

from fandompulse.fandoms.ingestion.discovery import discover_fandoms

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "List hashtags and mentions in recent content that look like untracked fandoms"

    def add_arguments(self, parser):
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the report as JSON",
        )

    def handle(self, *args, **options):
        discoveries = discover_fandoms()

        if options["json"]:
            self.stdout.write(json.dumps([asdict(d) for d in discoveries], indent=2))
            return

        if not discoveries:
            self.stdout.write("No fandom candidates found")
            return

        for d in discoveries:
            self.stdout.write(
                f"  {d.name:<30} confidence={d.confidence:<3} "
                f"occurrences={d.occurrences:<4} reach={d.estimated_reach:<9} "
                f"group={d.suggested_group} ({d.source}, {d.platform})"
            )

        self.stdout.write(self.style.SUCCESS(f"{len(discoveries)} candidate(s)"))
