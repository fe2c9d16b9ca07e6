"""
Rollout of the authorization rule sets.

    v1-active ──switchover()──▶ v2-active (v1 restorable) ──rollback()──▶ v1-active

The live version is read from the ``PolicyState`` row; before the first
switchover it falls back to ``settings.ACCESS_POLICY_VERSION``. Both
transitions run in one transaction together with the audit record that marks
them.
"""
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from auditlog.recorder import record_security_event
from .exceptions import RolloutError
from .models import PolicyState, PolicyVersion
from .predicates import LegacyAccessPolicy, TenantAccessPolicy

logger = logging.getLogger("srm.access")

POLICY_CLASSES = {
    PolicyVersion.V1: LegacyAccessPolicy,
    PolicyVersion.V2: TenantAccessPolicy,
}


def _check_version(version):
    if version not in POLICY_CLASSES:
        raise RolloutError(f"Unknown access policy version '{version}'")
    return version


def active_version():
    version = (
        PolicyState.objects.filter(pk=PolicyState.SINGLETON_ID)
        .values_list("active_version", flat=True)
        .first()
    )
    return _check_version(version or settings.ACCESS_POLICY_VERSION)


def get_access_policy(version=None):
    """The live predicate set, or the named one."""
    version = _check_version(version) if version else active_version()
    return POLICY_CLASSES[version]()


def status():
    state = PolicyState.objects.filter(pk=PolicyState.SINGLETON_ID).first()
    return {
        "active_version": active_version(),
        "previous_version": state.previous_version if state else "",
        "switched_at": state.switched_at if state else None,
        "switched_by": state.switched_by if state else "",
    }


def _locked_state():
    state, _ = PolicyState.objects.select_for_update().get_or_create(
        pk=PolicyState.SINGLETON_ID,
        defaults={"active_version": _check_version(settings.ACCESS_POLICY_VERSION)},
    )
    return state


def _who(actor):
    return actor.email or actor.actor_id or "system"


def switchover(actor, to_version=PolicyVersion.V2):
    """Make ``to_version`` live and keep the current set restorable."""
    _check_version(to_version)
    with transaction.atomic():
        state = _locked_state()
        from_version = state.active_version
        if from_version == to_version:
            raise RolloutError(f"Access policy {to_version} is already active")
        state.previous_version = from_version
        state.active_version = to_version
        state.switched_at = timezone.now()
        state.switched_by = _who(actor)
        state.save()
        record_security_event(
            actor, "rls_switchover", operation="MIGRATE", table_name="system",
            metadata={"from_version": from_version, "to_version": str(to_version)},
        )
    logger.info("Access policy switched %s -> %s by %s", from_version, to_version, _who(actor))
    return state


def rollback(actor):
    """Restore the previously live rule set."""
    with transaction.atomic():
        state = _locked_state()
        if not state.previous_version:
            raise RolloutError("No previous access policy to roll back to")
        from_version, to_version = state.active_version, state.previous_version
        state.active_version = to_version
        state.previous_version = ""
        state.switched_at = timezone.now()
        state.switched_by = _who(actor)
        state.save()
        record_security_event(
            actor, "rls_rollback", operation="MIGRATE", table_name="system",
            metadata={"from_version": from_version, "to_version": to_version},
        )
    logger.info("Access policy rolled back %s -> %s by %s", from_version, to_version, _who(actor))
    return state
