"""
Authorization predicates.

Pure yes/no answers to "may this actor act on this tenant / principal". Every
answer is read from the directory tables, never from the actor's cached session
state, and nothing here writes.

Two interchangeable rule sets implement the same interface:

* ``LegacyAccessPolicy`` ("v1") – the pre-rollout tenant check, which ignores the
  principal's active flag.
* ``TenantAccessPolicy`` ("v2") – the consolidated rule set; the principal must
  be active for tenant membership to count.

``access.rollout.get_access_policy()`` picks the live one.
"""
from django.db.models import Q

from accounts.models import AdminRosterEntry, User
from .context import as_uuid


class AccessPolicy:
    version = None
    # Only active principals count as tenant members.
    require_active = True

    def is_admin(self, actor):
        if actor.is_system:
            return True
        if not actor.actor_id:
            return False
        identity = Q(external_id=str(actor.actor_id))
        user_id = as_uuid(actor.actor_id)
        if user_id is not None:
            identity |= Q(user_id=user_id)
        return AdminRosterEntry.objects.active().filter(identity).exists()

    def principals(self):
        qs = User.objects.all()
        if self.require_active:
            qs = qs.filter(is_active=True)
        return qs

    def get_user_tenant(self, actor):
        """Tenant id of the actor's principal record, as a string, or None."""
        user_id = as_uuid(actor.actor_id)
        if user_id is None:
            return None
        tenant_id = (
            self.principals().filter(pk=user_id).values_list("tenant_id", flat=True).first()
        )
        return str(tenant_id) if tenant_id else None

    def in_same_tenant(self, actor, tenant_id):
        if tenant_id is None:
            return False
        own = self.get_user_tenant(actor)
        return own is not None and own == str(tenant_id)

    def owns_record(self, actor, user_id):
        if user_id is None or not actor.actor_id:
            return False
        return str(user_id) == str(actor.actor_id)

    def has_access(self, actor, tenant_id=None, user_id=None, require_admin=False):
        admin = self.is_admin(actor)
        if require_admin and not admin:
            return False
        if admin:
            return True
        if user_id is not None:
            return self.owns_record(actor, user_id)
        if tenant_id is not None:
            return self.in_same_tenant(actor, tenant_id)
        return False

    def can_see_user(self, actor, target_user_id):
        """Administrators see everyone; members see members of their own tenant."""
        if self.is_admin(actor) or self.owns_record(actor, target_user_id):
            return True
        target = as_uuid(target_user_id)
        own = self.get_user_tenant(actor)
        if target is None or own is None:
            return False
        return self.principals().filter(pk=target, tenant_id=own).exists()

    def can_modify(self, actor, record_user_id, record_tenant_id=None):
        return (
            self.is_admin(actor)
            or self.owns_record(actor, record_user_id)
            or (record_tenant_id is not None and self.in_same_tenant(actor, record_tenant_id))
        )


class LegacyAccessPolicy(AccessPolicy):
    version = "v1"
    require_active = False


class TenantAccessPolicy(AccessPolicy):
    version = "v2"
    require_active = True
