"""Audit log helpers – call from views to record events and read trails."""
from datetime import timedelta

from django.db.models import Count, Q
from django.utils import timezone

from access.context import SESSION_PURPOSE_KEY, actor_from_request
from access.policies import policy_for
from access.rollout import get_access_policy
from .models import AuditEntry
from .recorder import record_security_event

# Generic security events written from the request layer.
AUDIT_EVENT_TYPES = (
    "login_success",
    "login_failure",
    "logout",
    "access_denied",
    "unauthorized_attempt",
    "admin_override",
    "data_access",
    "data_export",
    "rls_switchover",
    "rls_rollback",
)


def log_event(request, event_type, user=None, detail="", success=True):
    """Create an audit entry for a request-level event."""
    actor = getattr(request, "actor", None)
    if user is not None or actor is None:
        actor = actor_from_request(request, user=user)
    return record_security_event(
        actor,
        event_type,
        tenant_id=actor.tenant_id,
        success=success,
        access_denied=not success,
        error_message="" if success else str(detail),
        metadata={"detail": str(detail)} if detail else None,
    )


def set_audit_purpose(request, purpose):
    """Remember why the actor is reading data; stamped on their audit records this session."""
    purpose = (purpose or "").strip()[:500]
    request.session[SESSION_PURPOSE_KEY] = purpose
    if hasattr(request, "actor"):
        request.actor = request.actor.with_purpose(purpose)
    return purpose


def visible_entries(actor):
    """Administrators see every record; everyone else their own."""
    return AuditEntry.objects.filter(
        policy_for(AuditEntry).read_filter(get_access_policy(), actor)
    )


def get_record_audit_trail(actor, table_name, row_id):
    return list(
        visible_entries(actor)
        .filter(table_name=table_name, row_id=str(row_id))
        .order_by("-timestamp")
    )


def get_audit_summary(actor, hours=24):
    since = timezone.now() - timedelta(hours=hours)
    qs = visible_entries(actor).filter(timestamp__gte=since)
    totals = qs.aggregate(
        total_events=Count("id"),
        failed_attempts=Count("id", filter=Q(success=False) | Q(access_denied=True)),
        unique_users=Count("actor_id", distinct=True),
    )
    by_type = {
        row["event_type"]: row["count"]
        for row in qs.order_by().values("event_type").annotate(count=Count("id"))
    }
    return {**totals, "event_types": by_type, "hours": hours}


def entry_as_dict(entry):
    return {
        "id": str(entry.id),
        "timestamp": entry.timestamp.isoformat(),
        "event_type": entry.event_type,
        "success": entry.success,
        "actor_id": entry.actor_id,
        "actor_email": entry.actor_email,
        "tenant_id": str(entry.tenant_id) if entry.tenant_id else None,
        "table_name": entry.table_name,
        "operation": entry.operation,
        "row_id": entry.row_id,
        "old_data": entry.old_data,
        "new_data": entry.new_data,
        "changed_fields": entry.changed_fields,
        "data_classification": entry.data_classification,
        "purpose": entry.purpose,
        "is_cross_tenant_access": entry.is_cross_tenant_access,
        "access_denied": entry.access_denied,
        "metadata": entry.metadata,
    }
