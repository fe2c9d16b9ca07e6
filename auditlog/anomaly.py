"""
Anomaly heuristics run after every audit insert.

They flag, they never block: each check may write an ALERT record and send the
``security_alert`` signal for real-time listeners.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.dispatch import Signal
from django.utils import timezone

from .checksums import compute_checksum
from .models import AuditEntry, Classification

logger = logging.getLogger("srm.security")

ALERT_TABLE = "ALERT"
ALERT_OPERATION = "SUSPICIOUS_ACTIVITY"

RAPID_CROSS_CLIENT_ACCESS = "rapid_cross_client_access"
RAPID_DATA_ACCESS = "rapid_data_access"
REPEATED_FAILED_ACCESS = "repeated_failed_access"

# Sent with alert=<AuditEntry>, alert_type=<str>, details=<dict>.
security_alert = Signal()


def _window(actor_id, minutes):
    since = timezone.now() - timedelta(minutes=minutes)
    return AuditEntry.objects.filter(actor_id=actor_id, timestamp__gte=since).exclude(
        operation=ALERT_OPERATION
    )


def check_cross_tenant(entry):
    minutes = settings.ANOMALY_CROSS_TENANT_WINDOW_MINUTES
    count = (
        _window(entry.actor_id, minutes)
        .filter(tenant_id__isnull=False)
        .order_by()
        .values("tenant_id")
        .distinct()
        .count()
    )
    if count > settings.ANOMALY_CROSS_TENANT_LIMIT:
        return _raise_alert(entry, RAPID_CROSS_CLIENT_ACCESS, minutes, {"client_count": count})
    return None


def check_rapid_access(entry):
    minutes = settings.ANOMALY_RAPID_ACCESS_WINDOW_MINUTES
    count = _window(entry.actor_id, minutes).filter(operation__in=["SELECT", "UPDATE"]).count()
    if count > settings.ANOMALY_RAPID_ACCESS_LIMIT:
        return _raise_alert(entry, RAPID_DATA_ACCESS, minutes, {"access_count": count})
    return None


def check_failed_access(entry):
    minutes = settings.ANOMALY_FAILED_ACCESS_WINDOW_MINUTES
    count = _window(entry.actor_id, minutes).filter(access_denied=True).count()
    if count > settings.ANOMALY_FAILED_ACCESS_LIMIT:
        return _raise_alert(entry, REPEATED_FAILED_ACCESS, minutes, {"failed_count": count})
    return None


CHECKS = (check_cross_tenant, check_rapid_access, check_failed_access)


def _raise_alert(entry, alert_type, minutes, counts):
    since = timezone.now() - timedelta(minutes=minutes)
    already_flagged = AuditEntry.objects.filter(
        actor_id=entry.actor_id, operation=ALERT_OPERATION, event_type=alert_type,
        timestamp__gte=since,
    ).exists()
    if already_flagged:
        return None

    details = {"alert_type": alert_type, **counts, "trigger_event_id": str(entry.id)}
    alert = AuditEntry(
        event_type=alert_type,
        actor_id=entry.actor_id,
        actor_email=entry.actor_email,
        tenant_id=None,
        table_name=ALERT_TABLE,
        operation=ALERT_OPERATION,
        new_data=details,
        ip_address=entry.ip_address,
        session_key=entry.session_key,
        request_id=entry.request_id,
        data_classification=Classification.ALERT,
        purpose="security_monitoring",
    )
    alert.checksum = compute_checksum(alert.actor_id, ALERT_TABLE, ALERT_OPERATION, "", details)
    alert.save()

    logger.warning("Security alert %s for %s: %s", alert_type, entry.actor_email or entry.actor_id, counts)
    responses = security_alert.send_robust(
        sender=AuditEntry, alert=alert, alert_type=alert_type, details=details
    )
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.warning("security_alert receiver %r failed: %s", receiver, response)
    return alert


def inspect(entry):
    """Run every heuristic against a freshly written audit record."""
    if entry.operation == ALERT_OPERATION or not entry.actor_id:
        return []
    alerts = []
    try:
        with transaction.atomic():
            for check in CHECKS:
                alert = check(entry)
                if alert is not None:
                    alerts.append(alert)
    except Exception:
        logger.warning("Anomaly detection failed for audit entry %s", entry.id, exc_info=True)
        return []
    return alerts
