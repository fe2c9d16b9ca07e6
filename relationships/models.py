"""Stakeholder relationship data – tenant-scoped, except organizations."""
import uuid
from django.db import models


class Organization(models.Model):
    """Master data shared across tenants; a tenant sees it through its relationships."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    sector = models.CharField(max_length=128, blank=True, default="")
    website = models.URLField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "relationships"
        db_table = "organizations"
        ordering = ["name"]

    def __str__(self):
        return self.name

    def as_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "sector": self.sector,
            "website": self.website,
        }


class Relationship(models.Model):
    """A tenant's relationship with an organization."""

    class Priority(models.TextChoices):
        LOW = "low"
        MEDIUM = "medium"
        HIGH = "high"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.PROTECT, related_name="relationships")
    organization = models.ForeignKey(Organization, on_delete=models.PROTECT, related_name="relationships")
    relationship_type = models.CharField(max_length=64, blank=True, default="")
    priority = models.CharField(max_length=16, choices=Priority.choices, default=Priority.MEDIUM)
    summary = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "relationships"
        db_table = "tenant_org_relationships"
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(fields=["tenant", "organization"], name="uniq_tenant_org_relationship"),
        ]
        indexes = [
            models.Index(fields=["tenant"], name="idx_relationship_tenant"),
        ]

    def __str__(self):
        return f"{self.tenant_id} → {self.organization_id}"

    def as_dict(self):
        return {
            "id": str(self.id),
            "tenant_id": str(self.tenant_id),
            "organization_id": str(self.organization_id),
            "relationship_type": self.relationship_type,
            "priority": self.priority,
            "summary": self.summary,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Contact(models.Model):
    """A person at an organization the tenant keeps in touch with."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.PROTECT, related_name="contacts")
    organization = models.ForeignKey(
        Organization, on_delete=models.PROTECT, null=True, blank=True, related_name="contacts"
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=64, blank=True, default="")
    title = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "relationships"
        db_table = "stakeholder_contacts"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["tenant"], name="idx_contact_tenant"),
        ]

    def __str__(self):
        return self.name

    def as_dict(self):
        return {
            "id": str(self.id),
            "tenant_id": str(self.tenant_id),
            "organization_id": str(self.organization_id) if self.organization_id else None,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "title": self.title,
        }


class Note(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.PROTECT, related_name="notes")
    relationship = models.ForeignKey(Relationship, on_delete=models.PROTECT, related_name="notes")
    body = models.TextField()
    author_id = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "relationships"
        db_table = "stakeholder_notes"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["tenant", "relationship"], name="idx_note_tenant_rel"),
        ]

    def __str__(self):
        return self.body[:50]

    def as_dict(self):
        return {
            "id": str(self.id),
            "tenant_id": str(self.tenant_id),
            "relationship_id": str(self.relationship_id),
            "body": self.body,
            "author_id": self.author_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Position(models.Model):
    """An organization's stance on a policy topic. Tenant is resolved through relationships."""

    class Stance(models.TextChoices):
        SUPPORT = "support"
        OPPOSE = "oppose"
        NEUTRAL = "neutral"
        UNKNOWN = "unknown"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.PROTECT, related_name="positions")
    topic = models.CharField(max_length=255)
    stance = models.CharField(max_length=16, choices=Stance.choices, default=Stance.UNKNOWN)
    summary = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "relationships"
        db_table = "org_positions"
        ordering = ["topic"]

    def __str__(self):
        return f"{self.organization_id}: {self.topic} ({self.stance})"

    def as_dict(self):
        return {
            "id": str(self.id),
            "organization_id": str(self.organization_id),
            "topic": self.topic,
            "stance": self.stance,
            "summary": self.summary,
        }
