"""
Management command to expire promoted listings past their end date.
Intended for cron, e.g. every 15 minutes.
"""
from django.core.management.base import BaseCommand
from django.utils import timezone

from backend.promotions.models import PromotedListing
from backend.promotions.utils import expire_promoted_listings


class Command(BaseCommand):
    help = "Marks ACTIVE promoted listings whose expiry has passed as EXPIRED"

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only report how many listings would expire',
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            due = PromotedListing.objects.filter(
                status=PromotedListing.STATUS_ACTIVE, expires_at__lte=timezone.now()
            ).count()
            self.stdout.write(self.style.WARNING(f"{due} promoted listing(s) would expire"))
            return

        count = expire_promoted_listings()
        self.stdout.write(self.style.SUCCESS(f"Expired {count} promoted listing(s)"))
