"""
Management command to purge old invite tokens.

Removes tokens that were used or have expired, once they are older than the
retention period. Live (unused, unexpired) tokens are never touched.

Usage:
    python manage.py purge_expired_invites --days 90 --dry-run
    python manage.py purge_expired_invites --days 30 --verbose
"""

from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Q
from django.utils import timezone

from registries.constants import INVITE_RETENTION_DAYS
from registries.models import InviteToken


class Command(BaseCommand):
    help = 'Purge used or expired invite tokens older than the retention period'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=INVITE_RETENTION_DAYS,
            help=f'Number of days to retain used/expired tokens (default: {INVITE_RETENTION_DAYS})',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without actually deleting',
        )
        parser.add_argument(
            '--verbose',
            action='store_true',
            help='Show detailed information about tokens being purged',
        )

    def handle(self, *args, **options):
        days = options['days']
        dry_run = options['dry_run']
        verbose = options['verbose']

        if days < 0:
            raise CommandError("--days must be zero or positive")

        now = timezone.now()
        cutoff_date = now - timedelta(days=days)

        self.stdout.write(
            self.style.WARNING(
                f"{'[DRY RUN] ' if dry_run else ''}Purging invite tokens created before "
                f"{cutoff_date.strftime('%Y-%m-%d %H:%M:%S')}"
            )
        )

        old_tokens = InviteToken.objects.filter(
            Q(used=True) | Q(expires_at__lt=now),
            created_at__lt=cutoff_date,
        ).select_related("registry")

        count = old_tokens.count()
        if count == 0:
            self.stdout.write(self.style.NOTICE("No invite tokens found older than cutoff date"))
            return

        self.stdout.write(self.style.WARNING(f"Found {count} invite token(s) to purge"))

        if verbose:
            for invite in old_tokens[:10]:
                state = "used" if invite.used else "expired"
                self.stdout.write(
                    f"  - Token ID {invite.id}: email={invite.email}, "
                    f"registry={invite.registry.title}, {state}, "
                    f"created={invite.created_at.strftime('%Y-%m-%d')}"
                )
            if count > 10:
                self.stdout.write(f"  ... and {count - 10} more")

        if dry_run:
            self.stdout.write(self.style.NOTICE(f"[DRY RUN] Would delete {count} invite token(s)"))
            return

        deleted_count, _ = old_tokens.delete()
        self.stdout.write(self.style.SUCCESS(f"Deleted {deleted_count} invite token(s)"))
