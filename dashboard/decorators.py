"""Access control decorators."""
from functools import wraps

from django.db.models import ProtectedError
from django.http import JsonResponse

from access import mirror
from access.exceptions import (
    AccessError, AuditTamperBlocked, CrossTenantTransferBlocked, RosterAppendOnly,
)
from access.rollout import get_access_policy


def login_required_json(view_func):
    """Like ``login_required``, but answers 401 instead of redirecting to a login page."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"error": "Authentication required"}, status=401)
        return view_func(request, *args, **kwargs)
    return _wrapped


def administrator_required(view_func):
    """Restrict view to active administrators.

    With the mirror on, the cached session flag can refuse early; the roster
    is always consulted before the view runs.
    """
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        actor = request.actor
        allowed = not mirror.is_enabled() or actor.is_admin
        allowed = allowed and get_access_policy().is_admin(actor)
        if not allowed:
            mirror.log_security_event(actor, mirror.ACCESS_DENIED, operation=request.path,
                                      metadata={"required": "administrator"})
            return JsonResponse({"error": "Unauthorized: Admin access required"}, status=403)
        return view_func(request, *args, **kwargs)
    return _wrapped


def access_errors_as_json(view_func):
    """Translate access-layer exceptions into JSON error responses."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except CrossTenantTransferBlocked as exc:
            return JsonResponse({"error": str(exc)}, status=409)
        except (AccessError, AuditTamperBlocked) as exc:
            return JsonResponse({"error": str(exc)}, status=403)
        except ProtectedError:
            return JsonResponse({"error": "Record is still referenced and cannot be deleted."}, status=409)
        except RosterAppendOnly as exc:
            return JsonResponse({"error": str(exc)}, status=409)
    return _wrapped
