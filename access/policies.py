"""
Per-table row policies.

Each table gets independent rules for the four operation kinds:

* ``read_filter``   – rows the actor may SELECT
* ``update_filter`` – rows the actor may pick for UPDATE
* ``delete_filter`` – rows the actor may DELETE
* ``check_write``   – whether a row about to be INSERTed, or the post-image of
  an UPDATE, is acceptable

Filters are ``Q`` objects so the repository can intersect them with the
caller's own filters in a single query.
"""
from django.db.models import Q

from .context import as_uuid

NOTHING = Q(pk__in=[])

SELECT, INSERT, UPDATE, DELETE = "SELECT", "INSERT", "UPDATE", "DELETE"


class TablePolicy:
    # Attribute holding the row's tenant reference, if the table has one.
    tenant_attname = None
    # Administrators only, regardless of tenant membership.
    delete_requires_admin = True
    # Read filters that join through a relationship need DISTINCT.
    distinct = False

    def read_filter(self, access, actor):
        raise NotImplementedError

    def update_filter(self, access, actor):
        return self.read_filter(access, actor)

    def delete_filter(self, access, actor):
        if access.is_admin(actor):
            return Q()
        if self.delete_requires_admin:
            return NOTHING
        return self.read_filter(access, actor)

    def check_write(self, access, actor, instance):
        raise NotImplementedError

    def operations(self):
        return (SELECT, INSERT, UPDATE, DELETE)


class AdminWritePolicy(TablePolicy):
    """Readable per ``read_filter``; only administrators write."""

    def update_filter(self, access, actor):
        return Q() if access.is_admin(actor) else NOTHING

    def check_write(self, access, actor, instance):
        return access.is_admin(actor)


class TenantScopedPolicy(TablePolicy):
    """Rows carrying a tenant reference: visible and writable inside the actor's tenant."""
    tenant_attname = "tenant_id"

    def __init__(self, delete_requires_admin=False):
        self.delete_requires_admin = delete_requires_admin

    def read_filter(self, access, actor):
        if access.is_admin(actor):
            return Q()
        tenant_id = access.get_user_tenant(actor)
        return Q(tenant_id=tenant_id) if tenant_id else NOTHING

    def check_write(self, access, actor, instance):
        return access.has_access(actor, tenant_id=instance.tenant_id)


class NotePolicy(TenantScopedPolicy):
    """A note must sit in the same tenant as the relationship it annotates."""

    def check_write(self, access, actor, instance):
        if not super().check_write(access, actor, instance):
            return False
        relationships = instance._meta.get_field("relationship").related_model._default_manager
        return relationships.filter(pk=instance.relationship_id, tenant_id=instance.tenant_id).exists()


class TenantPolicy(AdminWritePolicy):
    def read_filter(self, access, actor):
        if access.is_admin(actor):
            return Q()
        tenant_id = access.get_user_tenant(actor)
        if not tenant_id:
            return NOTHING
        return Q(pk=tenant_id, deleted_at__isnull=True)


class UserPolicy(TablePolicy):
    tenant_attname = "tenant_id"

    def read_filter(self, access, actor):
        if access.is_admin(actor):
            return Q()
        visible = NOTHING
        user_id = as_uuid(actor.actor_id)
        if user_id is not None:
            visible = Q(pk=user_id)
        tenant_id = access.get_user_tenant(actor)
        if tenant_id:
            members = Q(tenant_id=tenant_id)
            if access.require_active:
                members &= Q(is_active=True)
            visible |= members
        return visible

    def update_filter(self, access, actor):
        if access.is_admin(actor):
            return Q()
        user_id = as_uuid(actor.actor_id)
        return Q(pk=user_id) if user_id is not None else NOTHING

    def check_write(self, access, actor, instance):
        return access.can_modify(actor, instance.pk)


class OrganizationPolicy(AdminWritePolicy):
    """Master data, visible to a tenant through its relationships."""
    distinct = True
    tenant_path = "relationships__tenant_id"

    def read_filter(self, access, actor):
        if access.is_admin(actor):
            return Q()
        tenant_id = access.get_user_tenant(actor)
        return Q(**{self.tenant_path: tenant_id}) if tenant_id else NOTHING


class PositionPolicy(OrganizationPolicy):
    tenant_path = "organization__relationships__tenant_id"


class AdminRosterPolicy(AdminWritePolicy):
    def read_filter(self, access, actor):
        if access.is_admin(actor):
            return Q()
        if not actor.actor_id:
            return NOTHING
        own = Q(external_id=str(actor.actor_id))
        user_id = as_uuid(actor.actor_id)
        if user_id is not None:
            own |= Q(user_id=user_id)
        return own

    def delete_filter(self, access, actor):
        # append-only
        return NOTHING

    def operations(self):
        return (SELECT, INSERT, UPDATE)


class AuditLogPolicy(TablePolicy):
    def read_filter(self, access, actor):
        if access.is_admin(actor):
            return Q()
        return Q(actor_id=str(actor.actor_id)) if actor.actor_id else NOTHING

    def update_filter(self, access, actor):
        return NOTHING

    def delete_filter(self, access, actor):
        return NOTHING

    def check_write(self, access, actor, instance):
        # audit rows are written by the recorder only
        return False

    def operations(self):
        return (SELECT,)


_REGISTRY = {
    "tenants": TenantPolicy(),
    "users": UserPolicy(),
    "user_admins": AdminRosterPolicy(),
    "organizations": OrganizationPolicy(),
    "org_positions": PositionPolicy(),
    "tenant_org_relationships": TenantScopedPolicy(delete_requires_admin=True),
    "stakeholder_contacts": TenantScopedPolicy(),
    "stakeholder_notes": NotePolicy(delete_requires_admin=True),
    "security_audit_log": AuditLogPolicy(),
}


def policy_for(model):
    table = model._meta.db_table
    try:
        return _REGISTRY[table]
    except KeyError:
        raise LookupError(f"No row policy registered for table '{table}'") from None


def policy_counts():
    """{table: number of operation kinds covered}, for the ops smoke check."""
    return {table: len(policy.operations()) for table, policy in sorted(_REGISTRY.items())}
