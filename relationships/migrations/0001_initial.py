import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Organization",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("sector", models.CharField(blank=True, default="", max_length=128)),
                ("website", models.URLField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "organizations",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Relationship",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("relationship_type", models.CharField(blank=True, default="", max_length=64)),
                ("priority", models.CharField(
                    choices=[("low", "Low"), ("medium", "Medium"), ("high", "High")],
                    default="medium", max_length=16,
                )),
                ("summary", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("organization", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="relationships",
                    to="relationships.organization",
                )),
                ("tenant", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="relationships",
                    to="tenants.tenant",
                )),
            ],
            options={
                "db_table": "tenant_org_relationships",
                "ordering": ["-updated_at"],
                "indexes": [models.Index(fields=["tenant"], name="idx_relationship_tenant")],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "organization"), name="uniq_tenant_org_relationship"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Contact",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=64)),
                ("title", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("organization", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="contacts", to="relationships.organization",
                )),
                ("tenant", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="contacts",
                    to="tenants.tenant",
                )),
            ],
            options={
                "db_table": "stakeholder_contacts",
                "ordering": ["name"],
                "indexes": [models.Index(fields=["tenant"], name="idx_contact_tenant")],
            },
        ),
        migrations.CreateModel(
            name="Note",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("body", models.TextField()),
                ("author_id", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("relationship", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="notes",
                    to="relationships.relationship",
                )),
                ("tenant", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="notes",
                    to="tenants.tenant",
                )),
            ],
            options={
                "db_table": "stakeholder_notes",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["tenant", "relationship"], name="idx_note_tenant_rel")],
            },
        ),
        migrations.CreateModel(
            name="Position",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("topic", models.CharField(max_length=255)),
                ("stance", models.CharField(
                    choices=[("support", "Support"), ("oppose", "Oppose"), ("neutral", "Neutral"), ("unknown", "Unknown")],
                    default="unknown", max_length=16,
                )),
                ("summary", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("organization", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="positions",
                    to="relationships.organization",
                )),
            ],
            options={
                "db_table": "org_positions",
                "ordering": ["topic"],
            },
        ),
    ]
