from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PolicyState",
            fields=[
                ("id", models.PositiveSmallIntegerField(default=1, editable=False, primary_key=True, serialize=False)),
                ("active_version", models.CharField(
                    choices=[("v1", "Legacy rule set"), ("v2", "Consolidated rule set")], max_length=8,
                )),
                ("previous_version", models.CharField(
                    blank=True, choices=[("v1", "Legacy rule set"), ("v2", "Consolidated rule set")],
                    default="", max_length=8,
                )),
                ("switched_at", models.DateTimeField(blank=True, null=True)),
                ("switched_by", models.CharField(blank=True, default="", max_length=255)),
            ],
            options={
                "db_table": "access_policy_state",
            },
        ),
    ]
