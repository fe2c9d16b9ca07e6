"""Explicit actor context passed through every predicate, repository and audit call."""
import uuid
from dataclasses import dataclass, replace

SESSION_TENANT_KEY = "actor_tenant_id"
SESSION_ADMIN_KEY = "actor_is_admin"
SESSION_PURPOSE_KEY = "audit_purpose"


@dataclass(frozen=True)
class ActorContext:
    """Who is acting, plus the session state cached at login.

    ``tenant_id`` and ``is_admin`` are the cached values the application-layer
    mirror decides on. The predicate layer never trusts them and looks the
    actor up again.
    """
    actor_id: str = None
    email: str = ""
    tenant_id: str = None
    is_admin: bool = False
    is_system: bool = False
    session_key: str = ""
    request_id: str = ""
    ip_address: str = None
    user_agent: str = ""
    purpose: str = ""

    @property
    def is_authenticated(self):
        return bool(self.actor_id) or self.is_system

    def with_purpose(self, purpose):
        return replace(self, purpose=purpose or "")

    @classmethod
    def system(cls, purpose=""):
        """Operator context for management commands. Acts with administrator rights."""
        return cls(email="system", is_admin=True, is_system=True, purpose=purpose)


def get_client_ip(request):
    """Extract IP, respecting X-Forwarded-For from the load balancer."""
    xff = request.META.get("HTTP_X_FORWARDED_FOR")
    if xff:
        return xff.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


def as_uuid(value):
    """Parse ``value`` as a UUID, or return None for external identities."""
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def for_user(user, **extra):
    """Build a context for a principal, resolving the cacheable fields from the database."""
    from .rollout import get_access_policy

    actor_id = str(user.pk)
    is_admin = get_access_policy().is_admin(ActorContext(actor_id=actor_id))
    return ActorContext(
        actor_id=actor_id,
        email=user.email,
        tenant_id=str(user.tenant_id) if user.tenant_id else None,
        is_admin=is_admin,
        **extra,
    )


def cache_actor_session(request, user):
    """Store tenant and administrator status in the session after login."""
    actor = for_user(user)
    request.session[SESSION_TENANT_KEY] = actor.tenant_id
    request.session[SESSION_ADMIN_KEY] = actor.is_admin
    return actor


def actor_from_request(request, user=None):
    user = user if user is not None else getattr(request, "user", None)
    session = getattr(request, "session", None) or {}
    extra = {
        "session_key": getattr(session, "session_key", None) or "",
        "request_id": request.headers.get("X-Request-ID") or uuid.uuid4().hex,
        "ip_address": get_client_ip(request),
        "user_agent": request.META.get("HTTP_USER_AGENT", "")[:500],
        "purpose": session.get(SESSION_PURPOSE_KEY, ""),
    }
    if user is None or not user.is_authenticated:
        return ActorContext(**extra)

    if SESSION_ADMIN_KEY in session:
        return ActorContext(
            actor_id=str(user.pk),
            email=user.email,
            tenant_id=session.get(SESSION_TENANT_KEY),
            is_admin=bool(session.get(SESSION_ADMIN_KEY)),
            **extra,
        )
    return for_user(user, **extra)
