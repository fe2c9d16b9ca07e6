"""
Audit recorder.

Called by the repository inside the mutating transaction. Each INSERT, UPDATE
or DELETE on an audited table produces exactly one ``AuditEntry``; an UPDATE
that changes nothing but bookkeeping fields produces none.

The audit write runs in its own savepoint. If it fails, the failure is logged
and the primary mutation goes ahead.
"""
import json
import logging
import time
from datetime import timedelta

from django.apps import apps
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from . import anomaly
from .checksums import compute_checksum
from .models import AuditEntry, Classification

logger = logging.getLogger("srm.audit")

INSERT, UPDATE, DELETE, SELECT = "INSERT", "UPDATE", "DELETE", "SELECT"

REDACTED = "[redacted]"
REDACTED_FIELDS = frozenset(["password"])

CLASSIFICATIONS = {
    "users": Classification.PII,
    "stakeholder_contacts": Classification.PII,
    "stakeholder_notes": Classification.SENSITIVE,
    "user_admins": Classification.SENSITIVE,
    "tenants": Classification.CONFIDENTIAL,
    "organizations": Classification.CONFIDENTIAL,
    "tenant_org_relationships": Classification.CONFIDENTIAL,
}

# Reads of these tables are audited row by row.
READ_AUDITED_TABLES = frozenset(["stakeholder_contacts", "stakeholder_notes", "user_admins"])


def classify(table_name):
    return CLASSIFICATIONS.get(table_name, Classification.PUBLIC)


# ---------------------------------------------------------------------------
# Tenant resolution
# ---------------------------------------------------------------------------
def _tenant_column(instance):
    return instance.tenant_id


def _own_pk(instance):
    return instance.pk


def _tenant_of_organization(organization_id):
    Relationship = apps.get_model("relationships", "Relationship")
    return (
        Relationship.objects.filter(organization_id=organization_id)
        .order_by("created_at")
        .values_list("tenant_id", flat=True)
        .first()
    )


TENANT_RESOLVERS = {
    "tenants": _own_pk,
    "users": _tenant_column,
    "tenant_org_relationships": _tenant_column,
    "stakeholder_contacts": _tenant_column,
    "stakeholder_notes": _tenant_column,
    "organizations": lambda instance: _tenant_of_organization(instance.pk),
    "org_positions": lambda instance: _tenant_of_organization(instance.organization_id),
}


def resolve_tenant_id(instance):
    """Tenant the row belongs to, or None when it cannot be resolved."""
    resolver = TENANT_RESOLVERS.get(instance._meta.db_table)
    if resolver is None:
        return None
    return resolver(instance)


# ---------------------------------------------------------------------------
# Change detection
# ---------------------------------------------------------------------------
def snapshot(instance):
    """JSON-native map of the row's concrete column values."""
    data = {
        field.attname: field.value_from_object(instance)
        for field in instance._meta.concrete_fields
    }
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


def detect_changed_fields(old, new, ignored=None):
    """Keys added, removed or changed between two row maps, minus bookkeeping fields."""
    if ignored is None:
        ignored = settings.AUDIT_IGNORED_FIELDS
    old = old or {}
    new = new or {}
    changed = [
        key for key in set(old) | set(new)
        if key not in ignored and (key not in old or key not in new or old[key] != new[key])
    ]
    return sorted(changed)


def _redact(data):
    if data is None:
        return None
    return {k: (REDACTED if k in REDACTED_FIELDS else v) for k, v in data.items()}


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------
def record_change(actor, instance, operation, old=None, new=None):
    """Write the audit record for one mutation. Returns the entry, or None."""
    started = time.monotonic()
    if operation == UPDATE:
        changed = detect_changed_fields(old, new)
        if not changed:
            return None
        old_data = {k: old[k] for k in changed if k in old}
        new_data = {k: new[k] for k in changed if k in new}
    elif operation == INSERT:
        old_data, new_data = None, new or {}
        changed = sorted(new_data)
    elif operation == DELETE:
        old_data, new_data = old or {}, None
        changed = sorted(old_data)
    else:
        raise ValueError(f"Unsupported audit operation: {operation}")

    try:
        tenant_id = resolve_tenant_id(instance)
    except Exception:
        logger.warning("Could not resolve tenant for %s %s", instance._meta.db_table, instance.pk,
                       exc_info=True)
        tenant_id = None

    return _write(
        actor,
        started=started,
        event_type=f"data_{operation.lower()}",
        table_name=instance._meta.db_table,
        operation=operation,
        row_id=str(instance.pk),
        tenant_id=tenant_id,
        old_data=_redact(old_data),
        new_data=_redact(new_data),
        changed_fields=changed,
    )


def record_read(actor, instances):
    """One SELECT record per row read from a sensitive table."""
    entries = []
    for instance in instances:
        table_name = instance._meta.db_table
        if table_name not in READ_AUDITED_TABLES:
            continue
        entry = _write(
            actor,
            started=time.monotonic(),
            event_type="data_select",
            table_name=table_name,
            operation=SELECT,
            row_id=str(instance.pk),
            tenant_id=resolve_tenant_id(instance),
            new_data={"id": str(instance.pk)},
        )
        if entry is not None:
            entries.append(entry)
    return entries


def record_security_event(actor, event_type, operation="", table_name="", tenant_id=None,
                          success=True, access_denied=False, is_cross_tenant_access=None,
                          error_message="", metadata=None):
    """Explicit security events (access denied, login, switchover)."""
    return _write(
        actor,
        started=time.monotonic(),
        event_type=event_type,
        table_name=table_name,
        operation=operation,
        tenant_id=tenant_id,
        success=success,
        access_denied=access_denied,
        is_cross_tenant_access=is_cross_tenant_access,
        error_message=error_message,
        metadata=metadata or {},
    )


def _primary_tenant(actor_id):
    """Tenant the actor touched most in the last hour."""
    since = timezone.now() - timedelta(hours=1)
    row = (
        AuditEntry.objects.filter(actor_id=actor_id, timestamp__gte=since, tenant_id__isnull=False)
        .order_by()
        .values("tenant_id")
        .annotate(hits=Count("id"))
        .order_by("-hits")
        .first()
    )
    return str(row["tenant_id"]) if row else None


def _crosses_tenant(actor, tenant_id):
    if tenant_id is None or not actor.actor_id:
        return False
    home = actor.tenant_id
    if not home and actor.is_admin:
        home = _primary_tenant(actor.actor_id)
    return home is not None and str(home) != str(tenant_id)


def _write(actor, started, is_cross_tenant_access=None, **fields):
    try:
        with transaction.atomic():
            if is_cross_tenant_access is None:
                is_cross_tenant_access = _crosses_tenant(actor, fields.get("tenant_id"))
            entry = AuditEntry(
                actor_id=actor.actor_id,
                actor_email=actor.email,
                purpose=actor.purpose,
                session_key=actor.session_key or "",
                request_id=actor.request_id or "",
                ip_address=actor.ip_address,
                user_agent=actor.user_agent or "",
                data_classification=classify(fields.get("table_name", "")),
                is_cross_tenant_access=is_cross_tenant_access,
                **fields,
            )
            entry.checksum = compute_checksum(
                entry.actor_id, entry.table_name, entry.operation, entry.row_id,
                entry.new_data if entry.new_data is not None else entry.old_data,
            )
            entry.execution_time_ms = int((time.monotonic() - started) * 1000)
            entry.save()
    except Exception:
        logger.warning(
            "Audit logging failed for %s %s %s",
            fields.get("event_type"), fields.get("table_name"), fields.get("row_id", ""),
            exc_info=True,
        )
        return None

    anomaly.inspect(entry)
    return entry
