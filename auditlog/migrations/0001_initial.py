import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditEntry",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("timestamp", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("event_type", models.CharField(db_index=True, max_length=64)),
                ("success", models.BooleanField(default=True)),
                ("actor_id", models.CharField(blank=True, db_index=True, max_length=255, null=True)),
                ("actor_email", models.CharField(blank=True, default="", max_length=254)),
                ("tenant_id", models.UUIDField(blank=True, db_index=True, null=True)),
                ("table_name", models.CharField(blank=True, default="", max_length=64)),
                ("operation", models.CharField(blank=True, default="", max_length=32)),
                ("row_id", models.CharField(blank=True, default="", max_length=64)),
                ("old_data", models.JSONField(blank=True, null=True)),
                ("new_data", models.JSONField(blank=True, null=True)),
                ("changed_fields", models.JSONField(blank=True, default=list)),
                ("data_classification", models.CharField(
                    choices=[
                        ("PII", "Pii"), ("SENSITIVE", "Sensitive"), ("CONFIDENTIAL", "Confidential"),
                        ("PUBLIC", "Public"), ("ALERT", "Alert"),
                    ],
                    default="PUBLIC", max_length=16,
                )),
                ("purpose", models.TextField(blank=True, default="")),
                ("checksum", models.CharField(blank=True, default="", max_length=64)),
                ("session_key", models.CharField(blank=True, default="", max_length=64)),
                ("request_id", models.CharField(blank=True, default="", max_length=64)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.TextField(blank=True, default="")),
                ("is_cross_tenant_access", models.BooleanField(default=False)),
                ("access_denied", models.BooleanField(default=False)),
                ("error_message", models.TextField(blank=True, default="")),
                ("execution_time_ms", models.PositiveIntegerField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
            ],
            options={
                "db_table": "security_audit_log",
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["event_type", "timestamp"], name="idx_audit_type_ts"),
                    models.Index(fields=["actor_id", "timestamp"], name="idx_audit_actor_ts"),
                    models.Index(fields=["tenant_id", "timestamp"], name="idx_audit_tenant_ts"),
                    models.Index(fields=["table_name", "operation"], name="idx_audit_table_op"),
                    models.Index(fields=["table_name", "row_id"], name="idx_audit_table_row"),
                ],
            },
        ),
    ]
