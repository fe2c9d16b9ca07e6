"""
Tests for the JSON relationship-data endpoints.

Tests:
- Listing returns the actor's own tenant only
- Creating fills in the tenant; creating for another tenant is refused
- Tenant reassignment is refused with 409
- Rows of other tenants answer 404
- Audit summary, trail and purpose endpoints
"""
import json

import pytest
from django.urls import reverse

from auditlog.models import AuditEntry
from relationships.models import Contact, Note


def _json(client, method, url, data):
    return getattr(client, method)(url, data=json.dumps(data), content_type="application/json")


@pytest.fixture
def u1_client(client, u1):
    client.force_login(u1)
    return client


@pytest.fixture
def admin_client(client, admin_user):
    client.force_login(admin_user)
    return client


def collection(resource):
    return reverse("dashboard:collection", kwargs={"resource": resource})


def detail(resource, pk):
    return reverse("dashboard:detail", kwargs={"resource": resource, "pk": pk})


@pytest.mark.django_db
class TestAuthentication:

    def test_anonymous_gets_401(self, client):
        response = client.get(collection("contacts"))
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}

    def test_unknown_resource(self, u1_client):
        assert u1_client.get(collection("widgets")).status_code == 404


@pytest.mark.django_db
class TestList:

    def test_own_tenant_only(self, u1_client, acme_contact, globex_contact):
        response = u1_client.get(collection("contacts"))
        assert response.status_code == 200
        assert [r["name"] for r in response.json()["results"]] == ["Peter Gibbons"]

    def test_filter_for_other_tenant_is_refused(self, u1_client, globex, globex_contact):
        response = u1_client.get(collection("contacts"), {"tenant_id": str(globex.pk)})
        assert response.status_code == 403
        assert AuditEntry.objects.filter(event_type="access_denied").exists()

    def test_filter_for_other_tenant_without_mirror_is_empty(self, settings, u1_client, globex, globex_contact):
        settings.ACCESS_MIRROR_ENABLED = False
        response = u1_client.get(collection("contacts"), {"tenant_id": str(globex.pk)})
        assert response.status_code == 200
        assert response.json()["results"] == []

    def test_admin_sees_all(self, admin_client, acme_contact, globex_contact):
        response = admin_client.get(collection("contacts"))
        assert len(response.json()["results"]) == 2

    def test_paging(self, u1_client, acme):
        for i in range(3):
            Contact.objects.create(tenant=acme, name=f"Contact {i}")
        response = u1_client.get(collection("contacts"), {"page": 2, "page_size": 2})
        assert [r["name"] for r in response.json()["results"]] == ["Contact 2"]

    @pytest.mark.parametrize("resource, param", [
        ("organizations", "tenant_id"),
        ("positions", "tenant_id"),
        ("contacts", "relationship_id"),
    ])
    def test_filter_on_missing_column_is_ignored(self, u1_client, acme, acme_relationship, resource, param):
        response = u1_client.get(collection(resource), {param: str(acme.pk)})
        assert response.status_code == 200

    def test_organizations_ignore_tenant_filter(self, u1_client, acme, acme_relationship, organization):
        response = u1_client.get(collection("organizations"), {"tenant_id": str(acme.pk)})
        assert [r["name"] for r in response.json()["results"]] == ["Initech"]

    def test_malformed_filter(self, u1_client):
        response = u1_client.get(collection("contacts"), {"organization_id": "not-a-uuid"})
        assert response.status_code == 400

    def test_contact_reads_are_audited(self, u1_client, acme_contact):
        u1_client.get(collection("contacts"))
        entry = AuditEntry.objects.get(operation="SELECT")
        assert entry.row_id == str(acme_contact.pk)
        assert entry.session_key


@pytest.mark.django_db
class TestCreate:

    def test_tenant_filled_in(self, u1_client, acme):
        response = _json(u1_client, "post", collection("contacts"), {"name": "Samir"})
        assert response.status_code == 201
        assert response.json()["tenant_id"] == str(acme.pk)

    def test_other_tenant_refused(self, u1_client, globex):
        response = _json(u1_client, "post", collection("contacts"),
                         {"name": "Smuggled", "tenant": str(globex.pk)})
        assert response.status_code == 403
        assert not Contact.objects.filter(name="Smuggled").exists()

    def test_other_tenant_refused_without_mirror(self, settings, u1_client, globex):
        settings.ACCESS_MIRROR_ENABLED = False
        response = _json(u1_client, "post", collection("contacts"),
                         {"name": "Smuggled", "tenant": str(globex.pk)})
        assert response.status_code == 403
        assert "requires appropriate access rights" in response.json()["error"]
        assert not Contact.objects.filter(name="Smuggled").exists()

    def test_invalid_payload(self, u1_client):
        response = _json(u1_client, "post", collection("contacts"), {"email": "not-an-email"})
        assert response.status_code == 400
        assert "name" in response.json()["errors"]

    def test_malformed_json(self, u1_client):
        response = u1_client.post(collection("contacts"), data="{", content_type="application/json")
        assert response.status_code == 400

    def test_note_records_author(self, u1_client, u1, acme_relationship):
        response = _json(u1_client, "post", collection("notes"),
                         {"relationship": str(acme_relationship.pk), "body": "Met at the summit"})
        assert response.status_code == 201
        assert response.json()["author_id"] == str(u1.pk)

    def test_hidden_relationship_looks_like_unknown(self, u1_client, globex_relationship):
        import uuid
        hidden = _json(u1_client, "post", collection("notes"),
                       {"relationship": str(globex_relationship.pk), "body": "Smuggled"})
        unknown = _json(u1_client, "post", collection("notes"),
                        {"relationship": str(uuid.uuid4()), "body": "Smuggled"})
        assert hidden.status_code == unknown.status_code == 400
        assert list(hidden.json()["errors"]) == list(unknown.json()["errors"]) == ["relationship"]
        assert not Note.objects.exists()

    def test_admin_note_takes_relationship_tenant(self, admin_client, globex, globex_relationship):
        response = _json(admin_client, "post", collection("notes"),
                         {"relationship": str(globex_relationship.pk), "body": "Board meeting"})
        assert response.status_code == 201
        assert response.json()["tenant_id"] == str(globex.pk)

    def test_note_cannot_be_repointed(self, u1_client, acme, acme_relationship, globex_relationship):
        note = Note.objects.create(tenant=acme, relationship=acme_relationship, body="Keep")
        response = _json(u1_client, "patch", detail("notes", note.pk),
                         {"relationship": str(globex_relationship.pk)})
        assert response.status_code == 400
        assert Note.objects.get(pk=note.pk).relationship_id == acme_relationship.pk

    def test_organization_create_requires_admin(self, u1_client):
        response = _json(u1_client, "post", collection("organizations"), {"name": "Vandelay"})
        assert response.status_code == 403


@pytest.mark.django_db
class TestUpdate:

    def test_partial_update(self, u1_client, acme_contact):
        response = _json(u1_client, "patch", detail("contacts", acme_contact.pk), {"title": "Engineer"})
        assert response.status_code == 200
        assert response.json()["title"] == "Engineer"
        assert response.json()["name"] == "Peter Gibbons"

    def test_tenant_transfer_is_conflict(self, u1_client, acme, globex, acme_contact):
        response = _json(u1_client, "patch", detail("contacts", acme_contact.pk), {"tenant": str(globex.pk)})
        assert response.status_code == 409
        assert "Cannot change client assignment" in response.json()["error"]
        acme_contact.refresh_from_db()
        assert acme_contact.tenant_id == acme.pk

    def test_tenant_transfer_without_mirror(self, settings, u1_client, globex, acme_contact):
        settings.ACCESS_MIRROR_ENABLED = False
        response = _json(u1_client, "patch", detail("contacts", acme_contact.pk), {"tenant": str(globex.pk)})
        assert response.status_code == 409
        assert "cross-tenant transfer" in response.json()["error"]

    def test_hidden_row_is_not_found(self, u1_client, globex_contact):
        response = _json(u1_client, "patch", detail("contacts", globex_contact.pk), {"name": "Hijacked"})
        assert response.status_code == 404
        globex_contact.refresh_from_db()
        assert globex_contact.name == "Bill Lumbergh"


@pytest.mark.django_db
class TestReadAndDelete:

    def test_get(self, u1_client, acme_contact):
        response = u1_client.get(detail("contacts", acme_contact.pk))
        assert response.json()["name"] == "Peter Gibbons"

    def test_get_hidden_row(self, u1_client, globex_contact):
        assert u1_client.get(detail("contacts", globex_contact.pk)).status_code == 404

    def test_delete_contact(self, u1_client, acme_contact):
        response = u1_client.delete(detail("contacts", acme_contact.pk))
        assert response.json() == {"deleted": 1}
        assert not Contact.objects.filter(pk=acme_contact.pk).exists()

    def test_delete_hidden_row(self, u1_client, globex_contact):
        assert u1_client.delete(detail("contacts", globex_contact.pk)).status_code == 404
        assert Contact.objects.filter(pk=globex_contact.pk).exists()

    def test_note_delete_requires_admin(self, u1_client, acme, acme_relationship):
        note = Note.objects.create(tenant=acme, relationship=acme_relationship, body="Keep")
        response = u1_client.delete(detail("notes", note.pk))
        assert response.status_code == 403
        assert Note.objects.filter(pk=note.pk).exists()
        assert AuditEntry.objects.filter(event_type="access_denied", table_name="stakeholder_notes").exists()

    def test_referenced_relationship_is_protected(self, admin_client, acme, acme_relationship):
        Note.objects.create(tenant=acme, relationship=acme_relationship, body="Keep")
        response = admin_client.delete(detail("relationships", acme_relationship.pk))
        assert response.status_code == 409


@pytest.mark.django_db
class TestExport:

    def test_csv_contains_own_contacts(self, u1_client, acme_contact, globex_contact):
        response = u1_client.get(reverse("dashboard:export_contacts"))
        body = response.content.decode()
        assert response["Content-Type"] == "text/csv"
        assert "Peter Gibbons" in body
        assert "Bill Lumbergh" not in body
        assert AuditEntry.objects.filter(event_type="data_export").exists()

    def test_admin_exports_every_tenant(self, admin_client, acme_contact, globex_contact):
        body = admin_client.get(reverse("dashboard:export_contacts")).content.decode()
        assert "Peter Gibbons" in body
        assert "Bill Lumbergh" in body

    def test_export_follows_cached_tenant(self, u1_client, acme_contact, globex_contact, acme):
        session = u1_client.session
        session["actor_is_admin"] = False
        session["actor_tenant_id"] = str(acme.pk)
        session.save()
        body = u1_client.get(reverse("dashboard:export_contacts")).content.decode()
        assert "Peter Gibbons" in body


@pytest.mark.django_db
class TestPeople:

    @pytest.fixture
    def colleague(self, acme):
        from accounts.models import User
        return User.objects.create_user(email="c@acme.test", password="x" * 12, tenant=acme,
                                        first_name="Cal", last_name="League")

    def test_lists_own_tenant(self, u1_client, colleague, u2):
        response = u1_client.get(reverse("dashboard:people"))
        assert [p["email"] for p in response.json()["results"]] == ["c@acme.test", "u1@acme.test"]
        assert response.json()["results"][0]["display_name"] == "Cal League"

    def test_other_tenant_filter_is_refused(self, u1_client, globex, u2):
        response = u1_client.get(reverse("dashboard:people"), {"tenant_id": str(globex.pk)})
        assert response.status_code == 403
        assert "view users for this client" in response.json()["error"]

    def test_other_tenant_filter_without_mirror_is_empty(self, settings, u1_client, globex, u2):
        settings.ACCESS_MIRROR_ENABLED = False
        response = u1_client.get(reverse("dashboard:people"), {"tenant_id": str(globex.pk)})
        assert response.json()["results"] == []

    def test_colleague_is_visible(self, u1_client, colleague):
        response = u1_client.get(reverse("dashboard:person", kwargs={"user_id": colleague.pk}))
        assert response.json()["email"] == "c@acme.test"

    def test_other_tenant_user_is_not_found(self, u1_client, u2):
        response = u1_client.get(reverse("dashboard:person", kwargs={"user_id": u2.pk}))
        assert response.status_code == 404

    def test_update_own_profile(self, u1_client, u1):
        response = _json(u1_client, "patch", reverse("dashboard:person", kwargs={"user_id": u1.pk}),
                         {"first_name": "Una-May"})
        assert response.status_code == 200
        assert response.json()["display_name"] == "Una-May One"
        assert AuditEntry.objects.filter(table_name="users", row_id=str(u1.pk), operation="UPDATE").exists()

    def test_colleague_profile_is_refused(self, u1_client, colleague):
        response = _json(u1_client, "patch", reverse("dashboard:person", kwargs={"user_id": colleague.pk}),
                         {"first_name": "Nope"})
        assert response.status_code == 403
        colleague.refresh_from_db()
        assert colleague.first_name == "Cal"
        assert AuditEntry.objects.filter(event_type="access_denied", table_name="users").exists()

    def test_colleague_profile_without_mirror(self, settings, u1_client, colleague):
        settings.ACCESS_MIRROR_ENABLED = False
        response = _json(u1_client, "patch", reverse("dashboard:person", kwargs={"user_id": colleague.pk}),
                         {"first_name": "Nope"})
        assert response.status_code == 404
        colleague.refresh_from_db()
        assert colleague.first_name == "Cal"

    def test_tenant_cannot_be_changed_here(self, u1_client, u1, acme, globex):
        _json(u1_client, "patch", reverse("dashboard:person", kwargs={"user_id": u1.pk}),
              {"tenant": str(globex.pk)})
        u1.refresh_from_db()
        assert u1.tenant_id == acme.pk


@pytest.mark.django_db
class TestAuditEndpoints:

    def test_summary(self, u1_client, acme_contact):
        _json(u1_client, "patch", detail("contacts", acme_contact.pk), {"title": "Engineer"})
        response = u1_client.get(reverse("dashboard:audit_summary"))
        assert response.json()["event_types"] == {"data_update": 1}

    def test_trail(self, u1_client, acme_contact):
        _json(u1_client, "patch", detail("contacts", acme_contact.pk), {"title": "Engineer"})
        url = reverse("dashboard:audit_trail", kwargs={
            "table_name": "stakeholder_contacts", "row_id": str(acme_contact.pk),
        })
        results = u1_client.get(url).json()["results"]
        assert [r["changed_fields"] for r in results] == [["title"]]

    def test_purpose_is_stamped_on_later_records(self, u1_client, acme_contact):
        response = _json(u1_client, "post", reverse("dashboard:audit_purpose"), {"purpose": "due diligence"})
        assert response.json() == {"purpose": "due diligence"}
        _json(u1_client, "patch", detail("contacts", acme_contact.pk), {"title": "Engineer"})
        entry = AuditEntry.objects.get(operation="UPDATE")
        assert entry.purpose == "due diligence"
