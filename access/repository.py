"""
Row-filtered data access.

``ScopedRepository`` is the single path through which views and commands read
and write tenant data. Every query is intersected with the table's row policy
for the acting principal, and every mutation runs in one transaction with the
guard checks and its audit record.

Unauthorized reads, updates and deletes are not errors: they simply match no
rows. A row that fails the write check on create or after an update raises
``PolicyViolation``.
"""
import logging

from django.db import transaction

from auditlog.recorder import DELETE, INSERT, UPDATE, record_change, record_read, snapshot
from .context import as_uuid
from .exceptions import PolicyViolation
from .guards import prevent_tenant_change
from .policies import policy_for
from .rollout import get_access_policy

logger = logging.getLogger("srm.access")


class ScopedRepository:

    def __init__(self, model, actor, access_policy=None):
        self.model = model
        self.actor = actor
        self.access = access_policy or get_access_policy()
        self.table_policy = policy_for(model)

    @property
    def table_name(self):
        return self.model._meta.db_table

    def _manager(self):
        return self.model._default_manager

    # -- reads ---------------------------------------------------------------
    def queryset(self):
        """Rows visible to the actor. Not audited; use ``list``/``get`` for sensitive reads."""
        qs = self._manager().filter(self.table_policy.read_filter(self.access, self.actor))
        if self.table_policy.distinct:
            qs = qs.distinct()
        return qs

    def list(self, start=0, stop=None, **filters):
        rows = list(self.queryset().filter(**filters)[start:stop])
        record_read(self.actor, rows)
        return rows

    def get(self, pk):
        """The visible row with this pk, or None."""
        row = self.queryset().filter(pk=pk).first()
        if row is not None:
            record_read(self.actor, [row])
        return row

    # -- writes --------------------------------------------------------------
    def _check_write(self, instance, operation):
        if self.table_policy.check_write(self.access, self.actor, instance):
            return
        logger.warning(
            "Write check failed: %s on %s row %s by %s",
            operation, self.table_name, instance.pk, self.actor.actor_id,
        )
        raise PolicyViolation(
            f"Row violates the {operation.lower()} policy for table '{self.table_name}'"
        )

    def _fill_tenant(self, instance):
        attname = self.table_policy.tenant_attname
        if attname is None or getattr(instance, attname) is not None:
            return
        own = self.access.get_user_tenant(self.actor)
        if own is not None:
            setattr(instance, attname, as_uuid(own))
        elif not instance._meta.get_field(attname).null:
            raise PolicyViolation(f"A tenant is required for table '{self.table_name}'")

    def create(self, **fields):
        with transaction.atomic():
            instance = self.model(**fields)
            self._fill_tenant(instance)
            self._check_write(instance, INSERT)
            instance.save(force_insert=True)
            record_change(self.actor, instance, INSERT, new=snapshot(instance))
        return instance

    def _locked(self, row_filter, pk):
        """Lock and return the row if ``row_filter`` lets the actor touch it, else None.

        Filtering and locking happen in one statement, so a row moved out of
        the actor's reach by a concurrent transaction is never returned.
        """
        return (
            self._manager()
            .select_for_update(of=("self",))
            .filter(row_filter, pk=pk)
            .first()
        )

    def update(self, pk, **changes):
        """Apply ``changes`` to one row. Returns the number of rows updated (0 or 1)."""
        with transaction.atomic():
            instance = self._locked(self.table_policy.update_filter(self.access, self.actor), pk)
            if instance is None:
                return 0
            before = snapshot(instance)
            for name, value in changes.items():
                setattr(instance, name, value)
            prevent_tenant_change(self.access, self.actor, self.table_policy, before, instance)
            self._check_write(instance, UPDATE)
            instance.save()
            record_change(self.actor, instance, UPDATE, old=before, new=snapshot(instance))
        return 1

    def delete(self, pk):
        """Delete one row. Returns the number of rows deleted (0 or 1)."""
        with transaction.atomic():
            instance = self._locked(self.table_policy.delete_filter(self.access, self.actor), pk)
            if instance is None:
                return 0
            # Recorded first so the tenant can still be resolved through joins.
            record_change(self.actor, instance, DELETE, old=snapshot(instance))
            instance.delete()
        return 1
