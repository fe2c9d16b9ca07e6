"""
Archive audit records to compressed JSON Lines files with a SHA-256 sidecar.

Usage:
    python manage.py archive_audit_log                    # last 24 hours
    python manage.py archive_audit_log --since-hours 72
    python manage.py archive_audit_log --full             # every record

Layout under ``AUDIT_ARCHIVE_DIR`` (or ``--output-dir``):

    daily/      incremental archives, pruned after the retention period
    archive/    full archives, kept
    checksums/  ``<archive>.sha256`` in ``sha256sum`` format
    metadata/   ``<archive>.json`` describing the run

Each record's own checksum is verified while it is written; mismatches are
reported and counted in the metadata but do not stop the archive.
"""
import gzip
import hashlib
import json
import time
from datetime import timedelta
from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from access.context import ActorContext
from auditlog.checksums import verify_checksum
from auditlog.models import AuditEntry
from auditlog.recorder import record_security_event
from auditlog.services import entry_as_dict


def _sha256(path):
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


class Command(BaseCommand):
    help = "Write audit records to a compressed, checksummed archive file."

    def add_arguments(self, parser):
        parser.add_argument("--output-dir", default=None,
                            help="Archive root (defaults to AUDIT_ARCHIVE_DIR)")
        parser.add_argument("--since-hours", type=int, default=24,
                            help="Trailing window for an incremental archive")
        parser.add_argument("--full", action="store_true", help="Archive every record")
        parser.add_argument("--retention-days", type=int, default=None,
                            help="Prune incremental archives older than this "
                                 "(defaults to AUDIT_ARCHIVE_RETENTION_DAYS)")

    def handle(self, *args, **options):
        root = Path(options["output_dir"] or settings.AUDIT_ARCHIVE_DIR)
        for sub in ("daily", "archive", "checksums", "metadata"):
            (root / sub).mkdir(parents=True, exist_ok=True)

        now = timezone.now()
        kind = "full" if options["full"] else "incremental"
        qs = AuditEntry.objects.order_by("timestamp")
        since = None
        if not options["full"]:
            since = now - timedelta(hours=options["since_hours"])
            qs = qs.filter(timestamp__gte=since)

        name = f"audit_log_{kind}_{now:%Y%m%d_%H%M%S}.jsonl.gz"
        path = root / ("archive" if options["full"] else "daily") / name
        self.stdout.write(f"Writing {kind} archive {path}...")

        records = 0
        mismatched = 0
        with gzip.open(path, "wt", encoding="utf-8") as fh:
            for entry in qs.iterator():
                if not verify_checksum(entry):
                    mismatched += 1
                    self.stderr.write(f"Checksum mismatch: {entry.id} ({entry.event_type}, {entry.timestamp})")
                row = {**entry_as_dict(entry), "checksum": entry.checksum}
                fh.write(json.dumps(row, cls=DjangoJSONEncoder) + "\n")
                records += 1

        digest = _sha256(path)
        (root / "checksums" / f"{name}.sha256").write_text(f"{digest}  {name}\n")
        metadata = {
            "backup_type": kind,
            "timestamp": now.isoformat(),
            "since": since.isoformat() if since else None,
            "file": name,
            "records": records,
            "checksum_mismatches": mismatched,
            "size_bytes": path.stat().st_size,
            "sha256": digest,
        }
        (root / "metadata" / f"{name}.json").write_text(json.dumps(metadata, indent=2))

        record_security_event(
            ActorContext.system(purpose="audit_archive"), "data_export",
            table_name="security_audit_log",
            metadata={"file": name, "records": records, "checksum_mismatches": mismatched},
        )

        retention = options["retention_days"]
        if retention is None:
            retention = settings.AUDIT_ARCHIVE_RETENTION_DAYS
        pruned = self._prune(root, retention)

        if mismatched:
            self.stdout.write(self.style.WARNING(
                f"{mismatched} of {records} records failed checksum verification."
            ))
        self.stdout.write(self.style.SUCCESS(
            f"Archived {records} audit records to {name}; pruned {pruned} old archives."
        ))

    def _prune(self, root, retention_days):
        cutoff = time.time() - retention_days * 86400
        pruned = 0
        for old in (root / "daily").glob("audit_log_*"):
            if old.stat().st_mtime >= cutoff:
                continue
            old.unlink()
            for sidecar in (root / "checksums" / f"{old.name}.sha256",
                            root / "metadata" / f"{old.name}.json"):
                sidecar.unlink(missing_ok=True)
            pruned += 1
        return pruned
