"""Integrity checksums for audit records."""
import hashlib
import json

from django.core.serializers.json import DjangoJSONEncoder


def canonical_json(payload):
    if payload is None:
        return ""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), cls=DjangoJSONEncoder)


def compute_checksum(actor_id, table_name, operation, row_id, payload):
    """SHA-256 over actor, table, operation, row id and the state payload."""
    raw = "".join([
        str(actor_id or ""),
        table_name or "",
        operation or "",
        str(row_id or ""),
        canonical_json(payload),
    ])
    return hashlib.sha256(raw.encode()).hexdigest()


def checksum_payload(entry):
    """The state the checksum covers: the new image, or the old one for deletes."""
    return entry.new_data if entry.new_data is not None else entry.old_data


def verify_checksum(entry):
    expected = compute_checksum(
        entry.actor_id, entry.table_name, entry.operation, entry.row_id, checksum_payload(entry)
    )
    return expected == entry.checksum
