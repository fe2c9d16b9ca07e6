"""
Grant or revoke administrator rights.

Usage:
    python manage.py grant_admin --email ops@example.com
    python manage.py grant_admin --external-id auth0|12345
    python manage.py grant_admin --email ops@example.com --revoke

Roster entries are never deleted; revoking deactivates every active entry
for the identity.
"""
from django.core.management.base import BaseCommand, CommandError

from access.context import ActorContext
from access.repository import ScopedRepository
from accounts.models import AdminRosterEntry, User


class Command(BaseCommand):
    help = "Add an identity to the administrator roster, or deactivate it."

    def add_arguments(self, parser):
        who = parser.add_mutually_exclusive_group(required=True)
        who.add_argument("--email", help="Email of an existing principal")
        who.add_argument("--external-id", help="Identity id issued by the identity provider")
        parser.add_argument("--revoke", action="store_true", help="Deactivate instead of grant")

    def handle(self, *args, **options):
        actor = ActorContext.system(purpose="grant_admin")
        repo = ScopedRepository(AdminRosterEntry, actor)

        user = None
        if options["email"]:
            user = User.objects.filter(email=options["email"].lower().strip()).first()
            if user is None:
                raise CommandError(f"No user with email {options['email']}.")
            entries = AdminRosterEntry.objects.active().filter(user=user)
            label = user.email
        else:
            entries = AdminRosterEntry.objects.active().filter(external_id=options["external_id"])
            label = options["external_id"]

        if options["revoke"]:
            revoked = sum(repo.update(entry.pk, active=False) for entry in entries)
            if not revoked:
                raise CommandError(f"{label} holds no active administrator entry.")
            self.stdout.write(self.style.SUCCESS(f"Revoked administrator rights of {label}."))
            return

        if entries.exists():
            raise CommandError(f"{label} is already an administrator.")
        repo.create(
            user_id=user.pk if user else None,
            external_id="" if user else options["external_id"],
        )
        self.stdout.write(self.style.SUCCESS(f"Granted administrator rights to {label}."))
