"""Database-level guard: no UPDATE or DELETE on the audit table, for any role."""
from django.db import migrations

CREATE_STATEMENTS = [
    """
    CREATE OR REPLACE FUNCTION prevent_audit_log_modification()
    RETURNS TRIGGER AS $$
    BEGIN
        RAISE EXCEPTION 'Audit records cannot be modified or deleted for compliance reasons';
    END;
    $$ LANGUAGE plpgsql
    """,
    "DROP TRIGGER IF EXISTS prevent_audit_update ON security_audit_log",
    """
    CREATE TRIGGER prevent_audit_update
        BEFORE UPDATE ON security_audit_log
        FOR EACH ROW EXECUTE FUNCTION prevent_audit_log_modification()
    """,
    "DROP TRIGGER IF EXISTS prevent_audit_delete ON security_audit_log",
    """
    CREATE TRIGGER prevent_audit_delete
        BEFORE DELETE ON security_audit_log
        FOR EACH ROW EXECUTE FUNCTION prevent_audit_log_modification()
    """,
]

DROP_STATEMENTS = [
    "DROP TRIGGER IF EXISTS prevent_audit_update ON security_audit_log",
    "DROP TRIGGER IF EXISTS prevent_audit_delete ON security_audit_log",
    "DROP FUNCTION IF EXISTS prevent_audit_log_modification()",
]


def install_triggers(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    for statement in CREATE_STATEMENTS:
        schema_editor.execute(statement, params=None)


def remove_triggers(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    for statement in DROP_STATEMENTS:
        schema_editor.execute(statement, params=None)


class Migration(migrations.Migration):

    dependencies = [
        ("auditlog", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(install_triggers, remove_triggers),
    ]
