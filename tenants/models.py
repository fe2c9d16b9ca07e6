"""Tenant model – every tenant-scoped row in the dashboard points at one of these."""
import uuid
from django.db import models


class TenantQuerySet(models.QuerySet):
    def live(self):
        return self.filter(deleted_at__isnull=True)


class Tenant(models.Model):
    """An isolated customer organization. Soft-deleted, never removed."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, help_text="Display name for the tenant org")
    slug = models.SlugField(max_length=63, unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = TenantQuerySet.as_manager()

    class Meta:
        app_label = "tenants"
        db_table = "tenants"
        ordering = ["name"]

    def __str__(self):
        return self.name

