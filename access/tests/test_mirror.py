"""
Tests for the application-tier mirror of the access rules.
"""
import uuid

import pytest

from access import mirror
from access.context import ActorContext
from access.exceptions import CrossTenantTransferBlocked, PolicyViolation, Unauthorized
from auditlog.models import AuditEntry

TENANT_A = str(uuid.uuid4())
TENANT_B = str(uuid.uuid4())


@pytest.fixture
def member():
    return ActorContext(actor_id="member-1", email="m@acme.test", tenant_id=TENANT_A)


@pytest.fixture
def admin():
    return ActorContext(actor_id="admin-1", email="a@example.test", is_admin=True)


@pytest.mark.django_db
class TestDecisions:

    def test_validate_tenant_access(self, member, admin):
        assert mirror.validate_tenant_access(member, TENANT_A)
        assert not mirror.validate_tenant_access(member, TENANT_B)
        assert not mirror.validate_tenant_access(member, None)
        assert mirror.validate_tenant_access(admin, TENANT_B)

    def test_no_tenant_means_no_access(self):
        assert not mirror.validate_tenant_access(ActorContext(actor_id="x"), TENANT_A)

    def test_can_modify_user(self, member, admin):
        assert mirror.can_modify_user(member, "member-1")
        assert not mirror.can_modify_user(member, "someone-else")
        assert mirror.can_modify_user(admin, "someone-else")

    def test_can_view_user(self, member, admin):
        assert mirror.can_view_user(member, TENANT_A)
        assert not mirror.can_view_user(member, TENANT_B)
        assert not mirror.can_view_user(member, None)
        assert mirror.can_view_user(admin, None)

    def test_scoped_tenant(self, member, admin):
        assert mirror.get_scoped_tenant_id(member) == TENANT_A
        assert mirror.get_scoped_tenant_id(admin) is None

    def test_validate_org_access(self, member):
        assert mirror.validate_org_access(member, TENANT_A)
        assert not mirror.validate_org_access(member, TENANT_B)


@pytest.mark.django_db
class TestRaisingChecks:

    def test_require_tenant_access_message(self, member):
        with pytest.raises(Unauthorized) as exc:
            mirror.require_tenant_access(member, TENANT_B, "edit notes")
        assert str(exc.value) == "Unauthorized: You don't have permission to edit notes for this client"

    def test_denial_is_recorded(self, member):
        with pytest.raises(Unauthorized):
            mirror.require_tenant_access(member, TENANT_B, "edit notes")
        entry = AuditEntry.objects.get(event_type=mirror.ACCESS_DENIED)
        assert entry.access_denied
        assert not entry.success
        assert entry.actor_id == "member-1"
        assert entry.is_cross_tenant_access
        assert entry.metadata["target_tenant_id"] == TENANT_B

    def test_denial_is_logged(self, member, caplog):
        with pytest.raises(Unauthorized):
            mirror.require_tenant_access(member, TENANT_B, "edit notes")
        assert any("SECURITY AUDIT" in r.getMessage() for r in caplog.records)

    def test_require_tenant_access_with_other_check(self, member):
        mirror.require_tenant_access(member, None, "view users", validate=lambda actor, tenant_id: True)
        with pytest.raises(Unauthorized, match="view users for this client"):
            mirror.require_tenant_access(member, TENANT_B, "view users", validate=mirror.can_view_user)

    def test_require_user_access(self, member, admin):
        mirror.require_user_access(member, "member-1")
        mirror.require_user_access(admin, "someone-else")
        with pytest.raises(Unauthorized, match="permission to update this user"):
            mirror.require_user_access(member, "someone-else", "update this user")
        entry = AuditEntry.objects.get(event_type=mirror.ACCESS_DENIED)
        assert entry.table_name == "users"
        assert entry.metadata["target_user_id"] == "someone-else"

    def test_require_admin(self, member, admin):
        mirror.require_admin(admin)
        with pytest.raises(Unauthorized, match="Admin access required"):
            mirror.require_admin(member)

    def test_prevent_tenant_change(self, member, admin):
        mirror.prevent_tenant_change(member, TENANT_A, TENANT_A)
        mirror.prevent_tenant_change(admin, TENANT_A, TENANT_B)
        with pytest.raises(CrossTenantTransferBlocked, match="Cannot change client assignment"):
            mirror.prevent_tenant_change(member, TENANT_A, TENANT_B)

    def test_apply_tenant_filter(self, member, admin, acme, acme_contact, globex_contact):
        from relationships.models import Contact
        scoped = ActorContext(actor_id="m", tenant_id=str(acme.pk))
        assert list(mirror.apply_tenant_filter(scoped, Contact.objects.all())) == [acme_contact]
        assert mirror.apply_tenant_filter(admin, Contact.objects.all()).count() == 2
        with pytest.raises(Unauthorized, match="No client access configured"):
            mirror.apply_tenant_filter(ActorContext(actor_id="m"), Contact.objects.all())


@pytest.mark.django_db
class TestExecuteWithAudit:

    def test_passes_result_through(self, member):
        assert mirror.execute_with_audit(member, "list notes", lambda: 42) == 42

    def test_access_error_becomes_unauthorized(self, member):
        def denied():
            raise PolicyViolation("row violates policy")

        with pytest.raises(Unauthorized, match="You don't have permission to create notes"):
            mirror.execute_with_audit(member, "create notes", denied, target_tenant_id=TENANT_B)
        entry = AuditEntry.objects.get(event_type=mirror.ACCESS_DENIED)
        assert entry.metadata["error"] == "row violates policy"

    def test_transfer_block_passes_unchanged(self, member):
        def transfer():
            raise CrossTenantTransferBlocked()

        with pytest.raises(CrossTenantTransferBlocked):
            mirror.execute_with_audit(member, "update contacts", transfer)

    def test_other_errors_propagate(self, member):
        def broken():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            mirror.execute_with_audit(member, "update contacts", broken)
        assert not AuditEntry.objects.exists()
