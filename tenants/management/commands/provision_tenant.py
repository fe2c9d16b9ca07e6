"""
Management command to provision a new tenant.

Usage:
    python manage.py provision_tenant \\
        --name "Acme Corp" \\
        --slug acme \\
        --user-email lead@acme.com \\
        --user-password "SecureP@ss123"

This will:
1. Create the tenant record
2. Create the tenant's first user, assigned to the new tenant

Both rows are written through the scoped repository as the system actor, so
the audit log records them like any other change.
"""
import getpass

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from access.context import ActorContext
from access.repository import ScopedRepository
from accounts.models import User
from tenants.models import Tenant


class Command(BaseCommand):
    help = "Provision a new tenant and its first user."

    def add_arguments(self, parser):
        parser.add_argument("--name", required=True, help="Tenant display name")
        parser.add_argument("--slug", required=True, help="Unique slug (e.g. 'acme')")
        parser.add_argument("--user-email", required=True, help="First user's email")
        parser.add_argument("--user-password", required=False, help="Password (prompted if omitted)")
        parser.add_argument("--user-first-name", default="", help="First user's first name")
        parser.add_argument("--user-last-name", default="", help="First user's last name")

    def handle(self, *args, **options):
        slug = options["slug"].lower().strip()
        name = options["name"].strip()
        email = options["user_email"].lower().strip()
        password = options.get("user_password")

        if not password:
            password = getpass.getpass("Enter password: ")
            confirm = getpass.getpass("Confirm password: ")
            if password != confirm:
                raise CommandError("Passwords do not match.")

        if Tenant.objects.filter(slug=slug).exists():
            raise CommandError(f"Tenant with slug '{slug}' already exists.")
        if User.objects.filter(email=email).exists():
            raise CommandError(f"User {email} already exists.")

        actor = ActorContext.system(purpose="provision_tenant")
        with transaction.atomic():
            self.stdout.write(f"Creating tenant '{name}' ({slug})...")
            tenant = ScopedRepository(Tenant, actor).create(name=name, slug=slug)
            ScopedRepository(User, actor).create(
                email=email,
                password=make_password(password),
                first_name=options["user_first_name"],
                last_name=options["user_last_name"],
                tenant_id=tenant.pk,
            )

        self.stdout.write(self.style.SUCCESS(
            f"Tenant '{name}' ({tenant.pk}) created with user {email}."
        ))
