"""
Management command to collect Google Trends interest for tracked fandoms.

Usage:
    python manage.py collect_trends
    python manage.py collect_trends --fandom=bini-blooms --fandom=sb19-atin
    python manage.py collect_trends --regional
"""

from __future__ import annotations

import logging

from django.core.management.base import BaseCommand, CommandError

from fandompulse.fandoms.models import Fandom
from fandompulse.fandoms.trends.service import collect_regional_trends, collect_trends

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Collect Google Trends interest over time (or by region) for tracked fandoms"

    def add_arguments(self, parser):
        parser.add_argument(
            "--fandom",
            type=str,
            action="append",
            help="Fandom slug (repeatable; default: all tracked fandoms)",
        )
        parser.add_argument(
            "--regional",
            action="store_true",
            help="Collect today's interest by region instead of the national series",
        )

    def handle(self, *args, **options):
        slugs = options["fandom"]
        fandom_ids = None
        if slugs:
            found = dict(Fandom.objects.filter(slug__in=slugs).values_list("slug", "id"))
            missing = sorted(set(slugs) - set(found))
            if missing:
                raise CommandError(f"Unknown fandom slug(s): {', '.join(missing)}")
            fandom_ids = list(found.values())

        label = "regional trends" if options["regional"] else "trends"
        self.stdout.write(f"Collecting {label}...")

        collect = collect_regional_trends if options["regional"] else collect_trends
        result = collect(fandom_ids=fandom_ids)

        if not result.success:
            raise CommandError(f"Trends collection failed: {result.error}")

        for entry in result.per_entity:
            if entry["error"]:
                self.stdout.write(
                    self.style.WARNING(f"  {entry['fandom_name']} ({entry['keyword']}): {entry['error']}")
                )
            else:
                self.stdout.write(f"  {entry['fandom_name']} ({entry['keyword']}): {entry['data_points']} points")

        self.stdout.write(
            self.style.SUCCESS(
                f"Trends complete: total={result.total}, "
                f"succeeded={result.succeeded}, failed={result.failed}"
            )
        )
