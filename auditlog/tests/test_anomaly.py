"""
Tests for the anomaly heuristics.

Tests:
- An admin touching more than three tenants in five minutes raises one alert
- Repeated denials and bursts of reads raise their alerts
- Alerts are de-duplicated inside the window and never inspected themselves
- The security_alert signal fires for every alert
"""
from datetime import timedelta

import pytest
from django.utils import timezone

from access import mirror
from access.repository import ScopedRepository
from auditlog import anomaly
from auditlog.checksums import verify_checksum
from auditlog.models import AuditEntry, Classification
from relationships.models import Contact
from tenants.models import Tenant


@pytest.fixture
def tenant_contacts(db):
    """One contact in each of five tenants."""
    contacts = []
    for i in range(5):
        tenant = Tenant.objects.create(name=f"Client {i}", slug=f"client-{i}")
        contacts.append(Contact.objects.create(tenant=tenant, name=f"Contact {i}"))
    return contacts


def _alerts(alert_type=None):
    qs = AuditEntry.objects.filter(operation=anomaly.ALERT_OPERATION)
    if alert_type:
        qs = qs.filter(event_type=alert_type)
    return qs


@pytest.mark.django_db
class TestCrossTenantAlert:

    def test_fourth_tenant_raises_one_alert(self, actor_admin, tenant_contacts):
        repo = ScopedRepository(Contact, actor_admin)
        for contact in tenant_contacts[:3]:
            repo.get(contact.pk)
        assert not _alerts().exists()

        repo.get(tenant_contacts[3].pk)
        alert = _alerts(anomaly.RAPID_CROSS_CLIENT_ACCESS).get()
        assert alert.table_name == anomaly.ALERT_TABLE
        assert alert.data_classification == Classification.ALERT
        assert alert.actor_id == actor_admin.actor_id
        assert alert.new_data["client_count"] == 4
        assert alert.new_data["trigger_event_id"]
        assert verify_checksum(alert)

    def test_alert_not_repeated_inside_window(self, actor_admin, tenant_contacts):
        repo = ScopedRepository(Contact, actor_admin)
        for contact in tenant_contacts:
            repo.get(contact.pk)
        assert _alerts(anomaly.RAPID_CROSS_CLIENT_ACCESS).count() == 1

    def test_old_activity_is_outside_window(self, actor_admin, tenant_contacts):
        stale = timezone.now() - timedelta(minutes=10)
        for contact in tenant_contacts[:3]:
            AuditEntry.objects.create(
                actor_id=actor_admin.actor_id, tenant_id=contact.tenant_id,
                event_type="data_select", operation="SELECT", timestamp=stale,
            )
        ScopedRepository(Contact, actor_admin).get(tenant_contacts[3].pk)
        assert not _alerts().exists()

    def test_single_tenant_member_never_alerts(self, actor_u1, acme):
        repo = ScopedRepository(Contact, actor_u1)
        for i in range(5):
            repo.create(name=f"Contact {i}")
        assert not _alerts().exists()


@pytest.mark.django_db
class TestOtherAlerts:

    def test_repeated_failed_access(self, actor_u1, globex):
        for _ in range(6):
            mirror.log_security_event(actor_u1, mirror.ACCESS_DENIED, operation="read",
                                      target_tenant_id=str(globex.pk))
        alert = _alerts(anomaly.REPEATED_FAILED_ACCESS).get()
        assert alert.new_data["failed_count"] == 6

    def test_five_failures_are_tolerated(self, actor_u1, globex):
        for _ in range(5):
            mirror.log_security_event(actor_u1, mirror.ACCESS_DENIED, target_tenant_id=str(globex.pk))
        assert not _alerts(anomaly.REPEATED_FAILED_ACCESS).exists()

    def test_rapid_data_access(self, settings, actor_u1, acme_contact):
        settings.ANOMALY_RAPID_ACCESS_LIMIT = 3
        repo = ScopedRepository(Contact, actor_u1)
        for _ in range(4):
            repo.get(acme_contact.pk)
        alert = _alerts(anomaly.RAPID_DATA_ACCESS).get()
        assert alert.new_data["access_count"] == 4


@pytest.mark.django_db
class TestAlertDelivery:

    def test_signal_is_sent(self, actor_u1, globex):
        received = []

        def receiver(sender, alert, alert_type, details, **kwargs):
            received.append((alert_type, details))

        anomaly.security_alert.connect(receiver)
        try:
            for _ in range(6):
                mirror.log_security_event(actor_u1, mirror.ACCESS_DENIED, target_tenant_id=str(globex.pk))
        finally:
            anomaly.security_alert.disconnect(receiver)
        assert [t for t, _ in received] == [anomaly.REPEATED_FAILED_ACCESS]
        assert received[0][1]["failed_count"] == 6

    def test_broken_receiver_does_not_break_audit(self, actor_u1, globex):
        def receiver(sender, **kwargs):
            raise RuntimeError("pager offline")

        anomaly.security_alert.connect(receiver)
        try:
            for _ in range(6):
                mirror.log_security_event(actor_u1, mirror.ACCESS_DENIED, target_tenant_id=str(globex.pk))
        finally:
            anomaly.security_alert.disconnect(receiver)
        assert _alerts(anomaly.REPEATED_FAILED_ACCESS).count() == 1

    def test_alerts_are_not_inspected(self, actor_u1):
        alert = AuditEntry(actor_id=actor_u1.actor_id, operation=anomaly.ALERT_OPERATION)
        assert anomaly.inspect(alert) == []

    def test_failing_check_is_swallowed(self, monkeypatch, actor_u1, acme):
        def broken(entry):
            raise RuntimeError("bad heuristic")

        monkeypatch.setattr(anomaly, "CHECKS", (broken,))
        contact = ScopedRepository(Contact, actor_u1).create(name="Still saved")
        assert Contact.objects.filter(pk=contact.pk).exists()
        assert AuditEntry.objects.filter(row_id=str(contact.pk)).count() == 1
