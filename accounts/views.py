"""Authentication views: login, logout, current actor."""
from django.contrib.auth import login, logout
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from django_ratelimit.decorators import ratelimit

from access.context import actor_from_request, cache_actor_session
from auditlog.services import log_event
from dashboard.decorators import login_required_json
from .forms import LoginForm


@ratelimit(key="ip", rate="10/m", method="POST", block=True)
@require_http_methods(["POST"])
def login_view(request):
    form = LoginForm(request, data=request.POST)
    if not form.is_valid():
        email = request.POST.get("email", "")
        log_event(request, "login_failure", detail=f"Failed login for {email}", success=False)
        return JsonResponse({"error": "Invalid email or password."}, status=400)

    user = form.get_user()
    login(request, user)
    actor = cache_actor_session(request, user)
    request.actor = actor_from_request(request, user=user)
    log_event(request, "login_success")
    return JsonResponse({
        "id": actor.actor_id,
        "email": actor.email,
        "tenant_id": actor.tenant_id,
        "is_admin": actor.is_admin,
    })


@require_http_methods(["POST"])
def logout_view(request):
    if request.user.is_authenticated:
        log_event(request, "logout")
    logout(request)
    return JsonResponse({"ok": True})


@login_required_json
@require_http_methods(["GET"])
def me_view(request):
    actor = request.actor
    return JsonResponse({
        "id": actor.actor_id,
        "email": actor.email,
        "tenant_id": actor.tenant_id,
        "is_admin": actor.is_admin,
        "purpose": actor.purpose,
    })
