"""
Pytest configuration and fixtures.
"""
import pytest

from access.context import ActorContext, for_user


@pytest.fixture
def acme(db):
    """Tenant "Acme"."""
    from tenants.models import Tenant
    return Tenant.objects.create(name="Acme", slug="acme")


@pytest.fixture
def globex(db):
    """Tenant "Globex", for isolation tests."""
    from tenants.models import Tenant
    return Tenant.objects.create(name="Globex", slug="globex")


@pytest.fixture
def u1(db, acme):
    """Principal in Acme."""
    from accounts.models import User
    return User.objects.create_user(
        email="u1@acme.test", password="testpass123", first_name="Una", last_name="One", tenant=acme
    )


@pytest.fixture
def u2(db, globex):
    """Principal in Globex."""
    from accounts.models import User
    return User.objects.create_user(
        email="u2@globex.test", password="testpass123", first_name="Uli", last_name="Two", tenant=globex
    )


@pytest.fixture
def admin_user(db):
    """Principal with no tenant, holding an active roster entry."""
    from accounts.models import AdminRosterEntry, User
    user = User.objects.create_user(email="ops@example.test", password="testpass123")
    AdminRosterEntry.objects.create(user=user)
    return user


@pytest.fixture
def external_admin(db):
    """Roster entry for an identity-provider id with no principal record at all."""
    from accounts.models import AdminRosterEntry
    return AdminRosterEntry.objects.create(external_id="idp|ops-1")


@pytest.fixture
def actor_u1(u1):
    return for_user(u1)


@pytest.fixture
def actor_u2(u2):
    return for_user(u2)


@pytest.fixture
def actor_admin(admin_user):
    return for_user(admin_user)


@pytest.fixture
def actor_external_admin(external_admin):
    return ActorContext(actor_id=external_admin.external_id, email="ops@idp.test", is_admin=True)


@pytest.fixture
def system_actor():
    return ActorContext.system(purpose="tests")


@pytest.fixture
def organization(db):
    from relationships.models import Organization
    return Organization.objects.create(name="Initech", sector="Software")


@pytest.fixture
def acme_relationship(acme, organization):
    from relationships.models import Relationship
    return Relationship.objects.create(tenant=acme, organization=organization, summary="Key partner")


@pytest.fixture
def globex_relationship(globex, organization):
    from relationships.models import Relationship
    return Relationship.objects.create(tenant=globex, organization=organization, summary="Competitor watch")


@pytest.fixture
def acme_contact(acme, organization):
    from relationships.models import Contact
    return Contact.objects.create(tenant=acme, organization=organization, name="Peter Gibbons")


@pytest.fixture
def globex_contact(globex, organization):
    from relationships.models import Contact
    return Contact.objects.create(tenant=globex, organization=organization, name="Bill Lumbergh")


@pytest.fixture
def audit_entries():
    """Callable returning audit entries for a table and row."""
    from auditlog.models import AuditEntry

    def _entries(table_name, row_id, **filters):
        return AuditEntry.objects.filter(table_name=table_name, row_id=str(row_id), **filters)
    return _entries
