import logging

from django.core.management.base import BaseCommand
from guest_house.store import DjangoStore, stale_cutoff

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Delete pending bookings that were never confirmed'

    def add_arguments(self, parser):
        parser.add_argument('--hours', type=int, default=None,
                            help='Age in hours after which a pending booking is stale')
        parser.add_argument('--dry-run', action='store_true',
                            help='Only report how many bookings would be deleted')

    def handle(self, *args, **options):
        cutoff = stale_cutoff(options['hours'])
        count = DjangoStore().purge_stale_pending_bookings(cutoff, dry_run=options['dry_run'])

        if options['dry_run']:
            self.stdout.write(f'{count} pending bookings created before {cutoff:%Y-%m-%d %H:%M} would be deleted')
            return
        logger.info("Purged %s stale pending bookings", count)
        self.stdout.write(self.style.SUCCESS(f'Deleted {count} stale pending bookings'))
