"""
Recompute audit checksums and report records that no longer match.

Usage:
    python manage.py verify_audit_log [--since-hours 24]
"""
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from auditlog.checksums import verify_checksum
from auditlog.models import AuditEntry


class Command(BaseCommand):
    help = "Verify the integrity checksum of every audit record."

    def add_arguments(self, parser):
        parser.add_argument("--since-hours", type=int, default=None,
                            help="Only check records from the trailing window")

    def handle(self, *args, **options):
        qs = AuditEntry.objects.order_by("timestamp")
        if options["since_hours"]:
            qs = qs.filter(timestamp__gte=timezone.now() - timedelta(hours=options["since_hours"]))

        checked = 0
        tampered = []
        for entry in qs.iterator():
            checked += 1
            if not verify_checksum(entry):
                tampered.append(entry)
                self.stderr.write(f"Checksum mismatch: {entry.id} ({entry.event_type}, {entry.timestamp})")

        if tampered:
            raise CommandError(f"{len(tampered)} of {checked} audit records failed verification.")
        self.stdout.write(self.style.SUCCESS(f"{checked} audit records verified."))
