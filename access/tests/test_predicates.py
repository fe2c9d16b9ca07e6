"""
Tests for the authorization predicate layer.

Tests:
- Rule order of has_access
- Administrator detection through the roster (principal and external identity)
- Active flag handling in v1 and v2
- Repeated evaluation is stable
"""
import pytest

from access.context import ActorContext
from access.predicates import LegacyAccessPolicy, TenantAccessPolicy


@pytest.fixture
def policy():
    return TenantAccessPolicy()


@pytest.mark.django_db
class TestHasAccess:

    def test_require_admin_denies_non_admin(self, policy, actor_u1, acme):
        assert not policy.has_access(actor_u1, tenant_id=acme.pk, require_admin=True)

    def test_require_admin_allows_admin(self, policy, actor_admin):
        assert policy.has_access(actor_admin, require_admin=True)

    def test_admin_bypasses_tenant_scope(self, policy, actor_admin, globex):
        assert policy.has_access(actor_admin, tenant_id=globex.pk)

    def test_external_admin_without_principal(self, policy, actor_external_admin, globex):
        assert policy.has_access(actor_external_admin, tenant_id=globex.pk)

    def test_inactive_roster_entry_is_not_admin(self, policy, external_admin, actor_external_admin, globex):
        external_admin.active = False
        external_admin.save()
        assert not policy.is_admin(actor_external_admin)
        assert not policy.has_access(actor_external_admin, tenant_id=globex.pk)

    def test_self_ownership(self, policy, actor_u1, u1, u2):
        assert policy.has_access(actor_u1, user_id=u1.pk)
        assert not policy.has_access(actor_u1, user_id=u2.pk)

    def test_user_id_checked_before_tenant(self, policy, actor_u1, u2, acme):
        # own tenant does not rescue a foreign principal id
        assert not policy.has_access(actor_u1, tenant_id=acme.pk, user_id=u2.pk)

    def test_same_tenant(self, policy, actor_u1, acme, globex):
        assert policy.has_access(actor_u1, tenant_id=acme.pk)
        assert not policy.has_access(actor_u1, tenant_id=globex.pk)

    def test_default_deny(self, policy, actor_u1):
        assert not policy.has_access(actor_u1)

    def test_anonymous_actor(self, policy, acme):
        assert not policy.has_access(ActorContext(), tenant_id=acme.pk)

    def test_cached_session_state_is_ignored(self, policy, u1, globex):
        forged = ActorContext(actor_id=str(u1.pk), tenant_id=str(globex.pk), is_admin=True)
        assert not policy.is_admin(forged)
        assert not policy.has_access(forged, tenant_id=globex.pk)

    def test_repeated_evaluation_is_stable(self, policy, actor_u1, acme, globex):
        first = [policy.has_access(actor_u1, tenant_id=t.pk) for t in (acme, globex)]
        second = [policy.has_access(actor_u1, tenant_id=t.pk) for t in (acme, globex)]
        assert first == second == [True, False]


@pytest.mark.django_db
class TestActiveFlag:

    def test_v2_requires_active_principal(self, actor_u1, u1, acme):
        u1.is_active = False
        u1.save()
        assert not TenantAccessPolicy().has_access(actor_u1, tenant_id=acme.pk)

    def test_v1_ignores_active_flag(self, actor_u1, u1, acme):
        u1.is_active = False
        u1.save()
        assert LegacyAccessPolicy().has_access(actor_u1, tenant_id=acme.pk)


@pytest.mark.django_db
class TestUserVisibility:

    def test_members_see_each_other(self, policy, actor_u1, acme):
        from accounts.models import User
        colleague = User.objects.create_user(email="c@acme.test", password="x" * 12, tenant=acme)
        assert policy.can_see_user(actor_u1, colleague.pk)

    def test_other_tenant_hidden(self, policy, actor_u1, u2):
        assert not policy.can_see_user(actor_u1, u2.pk)

    def test_admin_sees_everyone(self, policy, actor_admin, u1, u2):
        assert policy.can_see_user(actor_admin, u1.pk)
        assert policy.can_see_user(actor_admin, u2.pk)

    def test_can_modify(self, policy, actor_u1, u1, u2, acme, globex):
        assert policy.can_modify(actor_u1, u1.pk)
        assert policy.can_modify(actor_u1, u2.pk, record_tenant_id=acme.pk)
        assert not policy.can_modify(actor_u1, u2.pk, record_tenant_id=globex.pk)
