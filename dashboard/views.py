"""Dashboard views – JSON CRUD over relationship data, plus audit helpers."""
import csv
import json

from django.conf import settings
from django.forms.models import model_to_dict
from django.http import Http404, HttpResponse, JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from access import mirror
from access.context import as_uuid
from access.policies import policy_for
from access.repository import ScopedRepository
from access.rollout import get_access_policy
from accounts.forms import ProfileForm
from accounts.models import User
from auditlog.services import (
    entry_as_dict, get_audit_summary, get_record_audit_trail, log_event, set_audit_purpose,
)
from relationships.forms import (
    ContactForm, NoteForm, OrganizationForm, PositionForm, RelationshipForm, changed_values,
)
from relationships.models import Contact, Note, Organization, Position, Relationship
from .decorators import access_errors_as_json, login_required_json

RESOURCES = {
    "relationships": (Relationship, RelationshipForm),
    "contacts": (Contact, ContactForm),
    "notes": (Note, NoteForm),
    "organizations": (Organization, OrganizationForm),
    "positions": (Position, PositionForm),
}

# Query-string filters accepted on collection endpoints, where the model has the column.
LIST_FILTERS = ("tenant_id", "organization_id", "relationship_id")

CONTACT_CSV_COLUMNS = ["name", "email", "phone", "title", "organization_id", "tenant_id"]


def _parse_int(value, default, minimum=1, maximum=None):
    try:
        v = int(value)
        v = max(v, minimum)
        if maximum:
            v = min(v, maximum)
        return v
    except (TypeError, ValueError):
        return default


def _payload(request):
    """Request body as a dict, from JSON or form encoding."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            return None
        return data if isinstance(data, dict) else None
    return request.POST.dict()


def _resource(name):
    try:
        return RESOURCES[name]
    except KeyError:
        raise Http404(f"Unknown resource '{name}'") from None


def _tenant_bearing(model):
    return policy_for(model).tenant_attname is not None


def _list_filters(model, params):
    """{column: uuid} for the filters ``model`` has. None if a value is not a valid id."""
    columns = {f.attname for f in model._meta.concrete_fields}
    filters = {}
    for key in LIST_FILTERS:
        if key not in columns or not params.get(key):
            continue
        value = as_uuid(params[key])
        if value is None:
            return None
        filters[key] = value
    return filters


def _form(form_class, data, actor, **kwargs):
    if form_class is NoteForm:
        kwargs["relationships"] = ScopedRepository(Relationship, actor).queryset()
    return form_class(data, **kwargs)


def _bad_request(errors):
    if hasattr(errors, "get_json_data"):
        errors = {
            field: [e["message"] for e in messages]
            for field, messages in errors.get_json_data().items()
        }
    return JsonResponse({"errors": errors}, status=400)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------
@login_required_json
@access_errors_as_json
@require_http_methods(["GET", "POST"])
def collection_view(request, resource):
    model, form_class = _resource(resource)
    actor = request.actor
    repo = ScopedRepository(model, actor)

    if request.method == "GET":
        filters = _list_filters(model, request.GET)
        if filters is None:
            return _bad_request({"__all__": ["Malformed filter value."]})
        if "tenant_id" in filters and mirror.is_enabled():
            mirror.require_tenant_access(actor, filters["tenant_id"], f"view {resource}")
        page = _parse_int(request.GET.get("page"), 1)
        page_size = _parse_int(request.GET.get("page_size"), settings.DEFAULT_PAGE_SIZE,
                               maximum=settings.MAX_PAGE_SIZE)
        start = (page - 1) * page_size
        rows = repo.list(start=start, stop=start + page_size, **filters)
        return JsonResponse({"results": [r.as_dict() for r in rows], "page": page})

    data = _payload(request)
    if data is None:
        return _bad_request({"__all__": ["Malformed request body."]})
    form = _form(form_class, data, actor)
    if not form.is_valid():
        return _bad_request(form.errors)
    values = changed_values(form, form.cleaned_data.keys())
    if model is Note:
        values["author_id"] = actor.actor_id or ""
        relationship = form.cleaned_data["relationship"]
        if mirror.is_enabled():
            mirror.require_tenant_access(actor, relationship.tenant_id, "add notes",
                                         validate=mirror.validate_org_access)
        if not values.get("tenant_id"):
            values["tenant_id"] = relationship.tenant_id

    target = None
    if _tenant_bearing(model):
        target = values.get("tenant_id") or actor.tenant_id
        if mirror.is_enabled():
            mirror.require_tenant_access(actor, target, f"create {resource}")

    instance = mirror.execute_with_audit(
        actor, f"create {resource}", lambda: repo.create(**values), target_tenant_id=target,
    )
    return JsonResponse(instance.as_dict(), status=201)


# ---------------------------------------------------------------------------
# Single rows
# ---------------------------------------------------------------------------
@login_required_json
@access_errors_as_json
@require_http_methods(["GET", "PATCH", "POST", "DELETE"])
def detail_view(request, resource, pk):
    model, form_class = _resource(resource)
    actor = request.actor
    repo = ScopedRepository(model, actor)

    if request.method == "GET":
        row = repo.get(pk)
        if row is None:
            raise Http404("Not found")
        return JsonResponse(row.as_dict())

    existing = repo.queryset().filter(pk=pk).first()
    if existing is None:
        raise Http404("Not found")
    tenant_id = getattr(existing, "tenant_id", None)

    if request.method == "DELETE":
        if tenant_id is not None and mirror.is_enabled():
            mirror.require_tenant_access(actor, tenant_id, f"delete {resource}")
        deleted = mirror.execute_with_audit(
            actor, f"delete {resource}", lambda: repo.delete(pk), target_tenant_id=tenant_id,
        )
        if not deleted:
            mirror.log_security_event(actor, mirror.ACCESS_DENIED, operation=f"delete {resource}",
                                      target_tenant_id=tenant_id, table_name=model._meta.db_table)
            return JsonResponse({"error": f"You don't have permission to delete {resource}."},
                                status=403)
        return JsonResponse({"deleted": deleted})

    data = _payload(request)
    if data is None:
        return _bad_request({"__all__": ["Malformed request body."]})
    keys = [k for k in data if k in form_class.base_fields]
    initial = model_to_dict(existing, fields=list(form_class.base_fields))
    form = _form(form_class, {**initial, **{k: data[k] for k in keys}}, actor, instance=existing)
    if not form.is_valid():
        return _bad_request(form.errors)
    values = changed_values(form, keys)

    if tenant_id is not None and mirror.is_enabled():
        mirror.require_tenant_access(actor, tenant_id, f"update {resource}")
        if "tenant_id" in values:
            mirror.prevent_tenant_change(actor, tenant_id, values["tenant_id"])

    updated = mirror.execute_with_audit(
        actor, f"update {resource}", lambda: repo.update(pk, **values), target_tenant_id=tenant_id,
    )
    if not updated:
        raise Http404("Not found")
    return JsonResponse(repo.queryset().get(pk=pk).as_dict())


# ---------------------------------------------------------------------------
# CSV Export
# ---------------------------------------------------------------------------
@login_required_json
@access_errors_as_json
@require_GET
def export_contacts_view(request):
    """Export the actor's visible contacts as CSV."""
    repo = ScopedRepository(Contact, request.actor)
    scoped = mirror.get_scoped_tenant_id(request.actor) if mirror.is_enabled() else None
    rows = repo.list(tenant_id=scoped) if scoped else repo.list()
    log_event(request, "data_export", detail=f"{len(rows)} contacts")

    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = 'attachment; filename="contacts.csv"'
    writer = csv.writer(response)
    writer.writerow(CONTACT_CSV_COLUMNS)
    for row in rows:
        data = row.as_dict()
        writer.writerow([data[c] or "" for c in CONTACT_CSV_COLUMNS])
    return response


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------
def _person_dict(user):
    return {
        "id": str(user.id),
        "email": user.email,
        "display_name": user.display_name,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "tenant_id": str(user.tenant_id) if user.tenant_id else None,
    }


@login_required_json
@access_errors_as_json
@require_GET
def people_view(request):
    """Members of the actor's tenant."""
    actor = request.actor
    qs = ScopedRepository(User, actor).queryset().order_by("email")
    if request.GET.get("tenant_id"):
        tenant_id = as_uuid(request.GET["tenant_id"])
        if tenant_id is None:
            return _bad_request({"tenant_id": ["Malformed filter value."]})
        if mirror.is_enabled():
            mirror.require_tenant_access(actor, tenant_id, "view users", validate=mirror.can_view_user)
        qs = qs.filter(tenant_id=tenant_id)
    if mirror.is_enabled():
        qs = mirror.apply_tenant_filter(actor, qs)
    return JsonResponse({"results": [_person_dict(u) for u in qs]})


@login_required_json
@access_errors_as_json
@require_http_methods(["GET", "PATCH"])
def person_view(request, user_id):
    """One principal; only the principal themselves (or an administrator) may edit."""
    actor = request.actor
    repo = ScopedRepository(User, actor)
    if not get_access_policy().can_see_user(actor, user_id):
        raise Http404("Not found")

    if request.method == "PATCH":
        if mirror.is_enabled():
            mirror.require_user_access(actor, user_id, "update this user")
        data = _payload(request)
        if data is None:
            return _bad_request({"__all__": ["Malformed request body."]})
        user = repo.queryset().filter(pk=user_id).first()
        if user is None:
            raise Http404("Not found")
        keys = [k for k in data if k in ProfileForm.base_fields]
        initial = model_to_dict(user, fields=list(ProfileForm.base_fields))
        form = ProfileForm({**initial, **{k: data[k] for k in keys}}, instance=user)
        if not form.is_valid():
            return _bad_request(form.errors)
        updated = mirror.execute_with_audit(
            actor, "update this user", lambda: repo.update(user_id, **changed_values(form, keys)),
        )
        if not updated:
            raise Http404("Not found")

    user = repo.queryset().filter(pk=user_id).first()
    if user is None:
        raise Http404("Not found")
    return JsonResponse(_person_dict(user))


# ---------------------------------------------------------------------------
# Audit helpers
# ---------------------------------------------------------------------------
@login_required_json
@require_GET
def audit_summary_view(request):
    hours = _parse_int(request.GET.get("hours"), 24, maximum=24 * 90)
    return JsonResponse(get_audit_summary(request.actor, hours=hours))


@login_required_json
@require_GET
def audit_trail_view(request, table_name, row_id):
    entries = get_record_audit_trail(request.actor, table_name, row_id)
    return JsonResponse({"results": [entry_as_dict(e) for e in entries]})


@login_required_json
@require_POST
def audit_purpose_view(request):
    data = _payload(request) or {}
    purpose = set_audit_purpose(request, data.get("purpose", ""))
    return JsonResponse({"purpose": purpose})
