# Purge Expired Reapplication Cooldowns Management Command
from django.core.management.base import BaseCommand
from django.utils import timezone

from core.cooldown import cooldown_period, purge_expired
from core.models import ReapplicationCooldown


class Command(BaseCommand):
    help = 'Deletes reapplication cooldown anchors whose cooldown period has elapsed.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report how many anchors would be deleted without deleting them.',
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            expired = ReapplicationCooldown.objects.filter(
                started_at__lte=timezone.now() - cooldown_period()
            ).count()
            self.stdout.write(self.style.SUCCESS(f'[DRY-RUN] {expired} expired cooldowns would be deleted.'))
            return

        deleted = purge_expired()
        self.stdout.write(self.style.SUCCESS(f'Deleted {deleted} expired cooldowns.'))
