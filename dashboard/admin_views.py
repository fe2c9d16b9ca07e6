"""Administrator views – tenants, users, roster, audit log and reports."""
from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.http import Http404, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from access import rollout
from access.context import as_uuid
from access.policies import policy_counts
from access.repository import ScopedRepository
from accounts.forms import AdminGrantForm, UserCreateForm, UserEditForm
from accounts.models import AdminRosterEntry, User
from auditlog.models import AuditEntry
from auditlog.reports import REPORTS
from auditlog.services import entry_as_dict, log_event
from relationships.forms import changed_values
from tenants.forms import TenantForm
from tenants.models import Tenant
from .decorators import access_errors_as_json, administrator_required, login_required_json
from .views import _bad_request, _parse_int, _payload


def _tenant_dict(tenant):
    return {
        "id": str(tenant.id),
        "name": tenant.name,
        "slug": tenant.slug,
        "is_active": tenant.is_active,
        "deleted_at": tenant.deleted_at.isoformat() if tenant.deleted_at else None,
    }


def _user_dict(user):
    return {
        "id": str(user.id),
        "email": user.email,
        "display_name": user.display_name,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "tenant_id": str(user.tenant_id) if user.tenant_id else None,
        "is_active": user.is_active,
    }


def _roster_dict(entry):
    return {
        "id": str(entry.id),
        "identity": entry.identity,
        "user_id": str(entry.user_id) if entry.user_id else None,
        "external_id": entry.external_id,
        "active": entry.active,
        "granted_by_id": str(entry.granted_by_id) if entry.granted_by_id else None,
        "created_at": entry.created_at.isoformat(),
    }


# ---------------------------------------------------------------------------
# Tenant Management
# ---------------------------------------------------------------------------
@login_required_json
@administrator_required
@access_errors_as_json
@require_http_methods(["GET", "POST"])
def tenant_list_view(request):
    repo = ScopedRepository(Tenant, request.actor)
    if request.method == "GET":
        qs = repo.queryset()
        if request.GET.get("include_deleted") != "true":
            qs = qs.live()
        return JsonResponse({"results": [_tenant_dict(t) for t in qs]})

    form = TenantForm(_payload(request) or {})
    if not form.is_valid():
        return _bad_request(form.errors)
    tenant = repo.create(**form.cleaned_data)
    log_event(request, "tenant_created", detail=f"Created tenant '{tenant.name}'")
    return JsonResponse(_tenant_dict(tenant), status=201)


@login_required_json
@administrator_required
@access_errors_as_json
@require_http_methods(["GET", "PATCH", "DELETE"])
def tenant_detail_view(request, tenant_id):
    repo = ScopedRepository(Tenant, request.actor)
    tenant = repo.queryset().filter(pk=tenant_id).first()
    if tenant is None:
        raise Http404("Not found")

    if request.method == "DELETE":
        # soft delete; scoped rows stay in place
        repo.update(tenant_id, deleted_at=timezone.now(), is_active=False)
        log_event(request, "tenant_deleted", detail=f"Soft-deleted tenant '{tenant.name}'")
    elif request.method == "PATCH":
        data = _payload(request) or {}
        keys = [k for k in data if k in TenantForm.base_fields]
        form = TenantForm({**_tenant_dict(tenant), **{k: data[k] for k in keys}}, instance=tenant)
        if not form.is_valid():
            return _bad_request(form.errors)
        repo.update(tenant_id, **changed_values(form, keys))
    return JsonResponse(_tenant_dict(repo.queryset().get(pk=tenant_id)))


# ---------------------------------------------------------------------------
# User Management
# ---------------------------------------------------------------------------
@login_required_json
@administrator_required
@access_errors_as_json
@require_http_methods(["GET", "POST"])
def user_list_view(request):
    repo = ScopedRepository(User, request.actor)
    if request.method == "GET":
        qs = repo.queryset().order_by("email")
        if request.GET.get("tenant_id"):
            qs = qs.filter(tenant_id=request.GET["tenant_id"])
        return JsonResponse({"results": [_user_dict(u) for u in qs]})

    form = UserCreateForm(_payload(request) or {})
    if not form.is_valid():
        return _bad_request(form.errors)
    cd = form.cleaned_data
    user = repo.create(
        email=User.objects.normalize_email(cd["email"]),
        first_name=cd["first_name"],
        last_name=cd["last_name"],
        tenant_id=cd["tenant"].pk if cd["tenant"] else None,
        password=make_password(cd["password"]),
    )
    log_event(request, "user_created", detail=f"Created user {user.email}")
    return JsonResponse(_user_dict(user), status=201)


@login_required_json
@administrator_required
@access_errors_as_json
@require_http_methods(["GET", "PATCH"])
def user_edit_view(request, user_id):
    repo = ScopedRepository(User, request.actor)
    user = repo.queryset().filter(pk=user_id).first()
    if user is None:
        raise Http404("Not found")

    if request.method == "PATCH":
        data = _payload(request) or {}
        keys = [k for k in data if k in UserEditForm.base_fields]
        initial = {
            "first_name": user.first_name,
            "last_name": user.last_name,
            "tenant": user.tenant_id,
            "is_active": user.is_active,
        }
        form = UserEditForm({**initial, **{k: data[k] for k in keys}}, instance=user)
        if not form.is_valid():
            return _bad_request(form.errors)
        repo.update(user_id, **changed_values(form, keys))
    return JsonResponse(_user_dict(repo.queryset().get(pk=user_id)))


# ---------------------------------------------------------------------------
# Administrator Roster
# ---------------------------------------------------------------------------
@login_required_json
@administrator_required
@access_errors_as_json
@require_http_methods(["GET", "POST"])
def roster_view(request):
    repo = ScopedRepository(AdminRosterEntry, request.actor)
    if request.method == "GET":
        entries = repo.list()
        return JsonResponse({"results": [_roster_dict(e) for e in entries]})

    form = AdminGrantForm(_payload(request) or {})
    if not form.is_valid():
        return _bad_request(form.errors)
    user = form.cleaned_data.get("user")
    entry = repo.create(
        user_id=user.pk if user else None,
        external_id=form.cleaned_data.get("external_id") or "",
        granted_by_id=as_uuid(request.actor.actor_id),
    )
    log_event(request, "admin_override", detail=f"Granted administrator rights to {entry.identity}")
    return JsonResponse(_roster_dict(entry), status=201)


@login_required_json
@administrator_required
@access_errors_as_json
@require_POST
def roster_revoke_view(request, entry_id):
    repo = ScopedRepository(AdminRosterEntry, request.actor)
    if not repo.update(entry_id, active=False):
        raise Http404("Not found")
    entry = repo.queryset().get(pk=entry_id)
    log_event(request, "admin_override", detail=f"Revoked administrator rights of {entry.identity}")
    return JsonResponse(_roster_dict(entry))


# ---------------------------------------------------------------------------
# Audit Log
# ---------------------------------------------------------------------------
@login_required_json
@administrator_required
@require_GET
def audit_log_view(request):
    repo = ScopedRepository(AuditEntry, request.actor)
    qs = repo.queryset()
    for key in ("event_type", "actor_id", "tenant_id", "table_name", "operation"):
        if request.GET.get(key):
            qs = qs.filter(**{key: request.GET[key]})
    if request.GET.get("access_denied") == "true":
        qs = qs.filter(access_denied=True)
    page = _parse_int(request.GET.get("page"), 1)
    size = settings.AUDIT_LOG_PAGE_SIZE
    entries = qs.order_by("-timestamp")[(page - 1) * size:page * size]
    return JsonResponse({"results": [entry_as_dict(e) for e in entries], "page": page})


@login_required_json
@administrator_required
@access_errors_as_json
@require_GET
def report_view(request, name):
    try:
        report = REPORTS[name]
    except KeyError:
        raise Http404(f"Unknown report '{name}'") from None
    return JsonResponse({"report": name, "results": report(request.actor)})


@login_required_json
@administrator_required
@require_GET
def access_policy_view(request):
    return JsonResponse({**rollout.status(), "policies": policy_counts()})
