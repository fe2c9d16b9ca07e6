"""
Read-only audit reports for administrators.

Every report takes the acting ``ActorContext`` first. The mirror refuses
non-admins on the cached session flag and records the refusal; the roster is
then consulted again, so a revoked administrator is refused mid-session, and
the rows come through the audit table's read policy.
"""
from datetime import timedelta

from django.db.models import Avg, Count, Max, Min
from django.db.models.functions import TruncHour, TruncMinute
from django.utils import timezone

from access import mirror
from access.exceptions import Unauthorized
from access.policies import policy_for
from access.rollout import get_access_policy
from accounts.models import AdminRosterEntry
from .models import AuditEntry, Classification
from .recorder import SELECT

REPORT_COLUMNS = [
    "actor_email", "table_name", "operation", "row_id", "changed_fields",
    "tenant_id", "ip_address", "timestamp", "access_denied", "error_message",
]


def _since(**delta):
    return timezone.now() - timedelta(**delta)


def _rows(qs, limit):
    return list(qs.order_by("-timestamp").values(*REPORT_COLUMNS)[:limit])


def _audit_entries(actor, operation):
    """Audit rows an administrator report may draw on."""
    mirror.require_admin(actor, operation)
    access = get_access_policy()
    if not access.is_admin(actor):
        mirror.log_security_event(actor, mirror.ACCESS_DENIED, operation=operation,
                                  metadata={"required": "administrator"})
        raise Unauthorized("Unauthorized: Admin access required")
    return AuditEntry.objects.filter(policy_for(AuditEntry).read_filter(access, actor))


def recent_sensitive_access(actor, days=30, limit=500):
    """PII reads and writes in the trailing window."""
    qs = _audit_entries(actor, "view sensitive access report").filter(
        data_classification=Classification.PII, timestamp__gte=_since(days=days)
    )
    return _rows(qs, limit)


def cross_tenant_attempts(actor, limit=500):
    entries = _audit_entries(actor, "view cross-tenant report")
    return _rows(entries.filter(is_cross_tenant_access=True), limit)


def admin_activity(actor, limit=500):
    """Everything done by identities that hold, or held, a roster entry."""
    entries = _audit_entries(actor, "view administrator activity")
    identities = set()
    for user_id, external_id in AdminRosterEntry.objects.values_list("user_id", "external_id"):
        if user_id:
            identities.add(str(user_id))
        if external_id:
            identities.add(external_id)
    return _rows(entries.filter(actor_id__in=identities), limit)


def bulk_access(actor, hours=24, threshold=10):
    """Actors reading more than ``threshold`` rows of one table in a single minute."""
    entries = _audit_entries(actor, "view bulk access report")
    return list(
        entries.filter(operation=SELECT, timestamp__gte=_since(hours=hours))
        .annotate(minute=TruncMinute("timestamp"))
        .values("actor_id", "actor_email", "table_name", "tenant_id", "minute")
        .annotate(access_count=Count("id"))
        .filter(access_count__gt=threshold)
        .order_by("-minute", "-access_count")
    )


def failed_access_attempts(actor, limit=500):
    entries = _audit_entries(actor, "view failed access report")
    return _rows(entries.filter(access_denied=True), limit)


def performance_metrics(actor, hours=24):
    """Audit capture cost per table, operation and hour."""
    entries = _audit_entries(actor, "view audit performance metrics")
    return list(
        entries.filter(timestamp__gte=_since(hours=hours), execution_time_ms__isnull=False)
        .annotate(hour=TruncHour("timestamp"))
        .values("table_name", "operation", "hour")
        .annotate(
            avg_execution_ms=Avg("execution_time_ms"),
            max_execution_ms=Max("execution_time_ms"),
            min_execution_ms=Min("execution_time_ms"),
            operation_count=Count("id"),
        )
        .order_by("-hour", "-avg_execution_ms")
    )


REPORTS = {
    "sensitive-access": recent_sensitive_access,
    "cross-tenant": cross_tenant_attempts,
    "admin-activity": admin_activity,
    "bulk-access": bulk_access,
    "failed-access": failed_access_attempts,
    "performance": performance_metrics,
}
