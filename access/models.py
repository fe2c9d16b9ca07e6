"""Persisted state of the authorization rule-set rollout."""
from django.db import models


class PolicyVersion(models.TextChoices):
    V1 = "v1", "Legacy rule set"
    V2 = "v2", "Consolidated rule set"


class PolicyState(models.Model):
    """Single row recording which predicate set is live and which one is restorable."""
    SINGLETON_ID = 1

    id = models.PositiveSmallIntegerField(primary_key=True, default=SINGLETON_ID, editable=False)
    active_version = models.CharField(max_length=8, choices=PolicyVersion.choices)
    previous_version = models.CharField(max_length=8, choices=PolicyVersion.choices, blank=True, default="")
    switched_at = models.DateTimeField(null=True, blank=True)
    switched_by = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        app_label = "access"
        db_table = "access_policy_state"

    def __str__(self):
        return f"{self.active_version} (restorable: {self.previous_version or '-'})"
