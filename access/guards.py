"""Standing mutation guards applied by the repository before a write reaches the database."""
import logging

from .exceptions import CrossTenantTransferBlocked

logger = logging.getLogger("srm.access")


def prevent_tenant_change(access, actor, table_policy, before, instance):
    """Block a non-administrator from moving a row to another tenant.

    ``before`` is the snapshot taken when the row was selected for update.
    """
    attname = table_policy.tenant_attname
    if attname is None:
        return
    old = before.get(attname)
    new = getattr(instance, attname)
    if str(old) == str(new):
        return
    if access.is_admin(actor):
        return
    logger.warning(
        "Blocked cross-tenant transfer on %s row %s by %s (%s -> %s)",
        instance._meta.db_table, instance.pk, actor.actor_id, old, new,
    )
    raise CrossTenantTransferBlocked()
