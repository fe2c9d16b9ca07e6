"""Errors raised by the access-control and audit layers."""


class AccessError(Exception):
    """Base for every access-control rejection."""


class Unauthorized(AccessError):
    """The actor failed an authorization check. Recoverable by the caller."""


class PolicyViolation(AccessError):
    """A written row does not satisfy the table's write check."""


class CrossTenantTransferBlocked(AccessError):
    """A non-administrator tried to move a row to another tenant."""

    def __init__(self, message="Unauthorized: cross-tenant transfer is not allowed. "
                               "Cannot change tenant assignment."):
        super().__init__(message)


class AuditTamperBlocked(Exception):
    """Audit records cannot be modified or deleted, by anyone."""

    def __init__(self, message="Audit records cannot be modified or deleted for compliance reasons"):
        super().__init__(message)


class RosterAppendOnly(Exception):
    """Administrator roster entries are deactivated, never deleted."""


class RolloutError(Exception):
    """Invalid policy rollout transition."""
