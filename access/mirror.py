"""
Application-tier copies of the row rules.

These decide from the session state cached on the ``ActorContext`` at login
(``tenant_id`` and ``is_admin``) without touching the directory tables, so a
view can fail fast with a readable message. The repository still enforces the
real rules underneath; when ``ACCESS_MIRROR_ENABLED`` is off, views skip these
checks entirely.
"""
import logging

from django.conf import settings

from auditlog.recorder import record_security_event
from .exceptions import AccessError, CrossTenantTransferBlocked, Unauthorized

logger = logging.getLogger("srm.security")

ACCESS_DENIED = "access_denied"
UNAUTHORIZED_ATTEMPT = "unauthorized_attempt"
ADMIN_OVERRIDE = "admin_override"
DATA_ACCESS = "data_access"


def is_enabled():
    return settings.ACCESS_MIRROR_ENABLED


def _same(a, b):
    return a is not None and b is not None and str(a) == str(b)


def validate_tenant_access(actor, tenant_id):
    if actor.is_admin:
        return True
    return _same(actor.tenant_id, tenant_id)


def log_security_event(actor, event_type, operation="", target_tenant_id=None, metadata=None,
                       table_name=""):
    """Log and persist a security event. Never raises."""
    denied = event_type in (ACCESS_DENIED, UNAUTHORIZED_ATTEMPT)
    metadata = dict(metadata or {})
    if target_tenant_id is not None:
        metadata["target_tenant_id"] = str(target_tenant_id)
    log = logger.warning if denied else logger.info
    log("[SECURITY AUDIT] %s %s by %s (tenant %s, target %s)", event_type, operation,
        actor.email or actor.actor_id, actor.tenant_id, target_tenant_id)
    return record_security_event(
        actor, event_type,
        operation="DENIED" if denied else operation,
        table_name=table_name,
        tenant_id=actor.tenant_id,
        success=not denied,
        access_denied=denied,
        is_cross_tenant_access=(
            target_tenant_id is not None and not _same(actor.tenant_id, target_tenant_id)
        ),
        error_message=operation if denied else "",
        metadata=metadata,
    )


def require_tenant_access(actor, tenant_id, operation="perform this operation", validate=None):
    """Raise ``Unauthorized`` unless ``validate(actor, tenant_id)`` allows the operation.

    ``validate`` defaults to ``validate_tenant_access``.
    """
    if (validate or validate_tenant_access)(actor, tenant_id):
        return
    log_security_event(actor, ACCESS_DENIED, operation=operation, target_tenant_id=tenant_id)
    raise Unauthorized(f"Unauthorized: You don't have permission to {operation} for this client")


def require_admin(actor, operation="perform an administrator operation"):
    if actor.is_admin:
        return
    log_security_event(actor, ACCESS_DENIED, operation=operation,
                       metadata={"required": "administrator"})
    raise Unauthorized("Unauthorized: Admin access required")


def can_modify_user(actor, target_user_id):
    if actor.is_admin:
        return True
    return _same(actor.actor_id, target_user_id)


def can_view_user(actor, target_tenant_id):
    if actor.is_admin:
        return True
    return _same(actor.tenant_id, target_tenant_id)


def require_user_access(actor, target_user_id, operation="modify this user"):
    if can_modify_user(actor, target_user_id):
        return
    log_security_event(actor, ACCESS_DENIED, operation=operation, table_name="users",
                       metadata={"target_user_id": str(target_user_id)})
    raise Unauthorized(f"Unauthorized: You don't have permission to {operation}")


def prevent_tenant_change(actor, old_tenant_id, new_tenant_id):
    if actor.is_admin:
        return
    if str(old_tenant_id) != str(new_tenant_id):
        raise CrossTenantTransferBlocked(
            "Unauthorized: Cannot change client assignment. "
            "Cross-tenant data transfer is not allowed."
        )


def get_scoped_tenant_id(actor):
    """None for administrators (no scope), else the actor's tenant."""
    if actor.is_admin:
        return None
    return actor.tenant_id or None


def apply_tenant_filter(actor, queryset, field="tenant_id"):
    if actor.is_admin:
        return queryset
    if actor.tenant_id:
        return queryset.filter(**{field: actor.tenant_id})
    raise Unauthorized("No client access configured for user")


def validate_org_access(actor, org_tenant_id):
    return validate_tenant_access(actor, org_tenant_id)


def execute_with_audit(actor, operation, func, target_tenant_id=None, metadata=None):
    """Run ``func()``; on an access rejection, log it and re-raise as ``Unauthorized``.

    A blocked cross-tenant transfer is re-raised unchanged so callers can tell
    it apart.
    """
    try:
        return func()
    except CrossTenantTransferBlocked as exc:
        log_security_event(actor, ACCESS_DENIED, operation=operation,
                           target_tenant_id=target_tenant_id,
                           metadata={**(metadata or {}), "error": str(exc)})
        raise
    except AccessError as exc:
        log_security_event(actor, ACCESS_DENIED, operation=operation,
                           target_tenant_id=target_tenant_id,
                           metadata={**(metadata or {}), "error": str(exc)})
        raise Unauthorized(
            f"You don't have permission to {operation}. "
            "This action requires appropriate access rights."
        ) from exc
