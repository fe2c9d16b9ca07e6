"""Audit log – one insert-only table shared by every tenant."""
import uuid
from django.db import models
from django.utils import timezone

from access.exceptions import AuditTamperBlocked


class Classification(models.TextChoices):
    PII = "PII"
    SENSITIVE = "SENSITIVE"
    CONFIDENTIAL = "CONFIDENTIAL"
    PUBLIC = "PUBLIC"
    ALERT = "ALERT"


class AuditEntryQuerySet(models.QuerySet):
    """Bulk paths are closed too; only single inserts are allowed."""

    def update(self, **kwargs):
        raise AuditTamperBlocked()

    def delete(self):
        raise AuditTamperBlocked()

    def bulk_update(self, objs, fields, batch_size=None):
        raise AuditTamperBlocked()


class AuditEntry(models.Model):
    """Immutable audit trail entry.

    Actor and tenant are stored as plain ids, not foreign keys, so removing a
    principal or tenant never reaches back into this table.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)
    event_type = models.CharField(max_length=64, db_index=True)
    success = models.BooleanField(default=True)

    actor_id = models.CharField(max_length=255, blank=True, null=True, db_index=True)
    actor_email = models.CharField(max_length=254, blank=True, default="")
    tenant_id = models.UUIDField(null=True, blank=True, db_index=True)

    table_name = models.CharField(max_length=64, blank=True, default="")
    operation = models.CharField(max_length=32, blank=True, default="")
    row_id = models.CharField(max_length=64, blank=True, default="")
    old_data = models.JSONField(null=True, blank=True)
    new_data = models.JSONField(null=True, blank=True)
    changed_fields = models.JSONField(default=list, blank=True)
    data_classification = models.CharField(
        max_length=16, choices=Classification.choices, default=Classification.PUBLIC
    )
    purpose = models.TextField(blank=True, default="")
    checksum = models.CharField(max_length=64, blank=True, default="")

    session_key = models.CharField(max_length=64, blank=True, default="")
    request_id = models.CharField(max_length=64, blank=True, default="")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default="")

    is_cross_tenant_access = models.BooleanField(default=False)
    access_denied = models.BooleanField(default=False)
    error_message = models.TextField(blank=True, default="")
    execution_time_ms = models.PositiveIntegerField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    objects = AuditEntryQuerySet.as_manager()

    class Meta:
        app_label = "auditlog"
        db_table = "security_audit_log"
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["event_type", "timestamp"], name="idx_audit_type_ts"),
            models.Index(fields=["actor_id", "timestamp"], name="idx_audit_actor_ts"),
            models.Index(fields=["tenant_id", "timestamp"], name="idx_audit_tenant_ts"),
            models.Index(fields=["table_name", "operation"], name="idx_audit_table_op"),
            models.Index(fields=["table_name", "row_id"], name="idx_audit_table_row"),
        ]

    def __str__(self):
        return f"{self.timestamp} [{self.event_type}] {self.actor_email or self.actor_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AuditTamperBlocked()
        kwargs["force_insert"] = True
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditTamperBlocked()
