"""Principals and the administrator roster."""
import uuid

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models

from access.exceptions import RosterAppendOnly


class UserManager(BaseUserManager):
    """Custom manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("Email is required")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """A principal. Belongs to exactly one tenant unless it only holds a roster entry."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    first_name = models.CharField(max_length=150, blank=True)
    last_name = models.CharField(max_length=150, blank=True)
    tenant = models.ForeignKey(
        "tenants.Tenant", on_delete=models.PROTECT, null=True, blank=True, related_name="users"
    )
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["first_name", "last_name"]

    class Meta:
        app_label = "accounts"
        db_table = "users"

    def __str__(self):
        return self.email

    @property
    def display_name(self):
        if self.first_name:
            return f"{self.first_name} {self.last_name}".strip()
        return self.email


class AdminRosterQuerySet(models.QuerySet):
    def active(self):
        return self.filter(active=True)

    def delete(self):
        raise RosterAppendOnly("Administrator roster entries cannot be deleted; deactivate them instead")


class AdminRosterEntry(models.Model):
    """Grants tenant-unbounded privileges to a principal or an external identity.

    Append-only: entries are deactivated, never removed.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User, on_delete=models.PROTECT, null=True, blank=True, related_name="admin_entries"
    )
    external_id = models.CharField(max_length=255, blank=True, default="", db_index=True)
    active = models.BooleanField(default=True)
    granted_by_id = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AdminRosterQuerySet.as_manager()

    class Meta:
        app_label = "accounts"
        db_table = "user_admins"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(user__isnull=False) | ~models.Q(external_id=""),
                name="user_admins_identity_required",
            ),
        ]

    def __str__(self):
        who = self.user.email if self.user_id else self.external_id
        return f"{who} ({'active' if self.active else 'inactive'})"

    @property
    def identity(self):
        """The id the predicate layer matches against an actor."""
        return str(self.user_id) if self.user_id else self.external_id

    def delete(self, *args, **kwargs):
        raise RosterAppendOnly("Administrator roster entries cannot be deleted; deactivate them instead")
