"""
Inspect or change the live authorization rule set.

Usage:
    python manage.py access_policy status
    python manage.py access_policy switchover [--to v2]
    python manage.py access_policy rollback
"""
from django.core.management.base import BaseCommand, CommandError

from access import rollout
from access.context import ActorContext
from access.exceptions import RolloutError
from access.policies import policy_counts


class Command(BaseCommand):
    help = "Show, switch over, or roll back the access policy version."

    def add_arguments(self, parser):
        parser.add_argument("action", choices=["status", "switchover", "rollback"])
        parser.add_argument("--to", default="v2", help="Version to switch over to")

    def handle(self, *args, **options):
        action = options["action"]
        actor = ActorContext.system(purpose=f"access_policy {action}")
        try:
            if action == "switchover":
                rollout.switchover(actor, options["to"])
            elif action == "rollback":
                rollout.rollback(actor)
        except RolloutError as exc:
            raise CommandError(str(exc)) from exc

        state = rollout.status()
        self.stdout.write(f"Active access policy: {state['active_version']}")
        if state["previous_version"]:
            self.stdout.write(f"Restorable: {state['previous_version']}")
        if state["switched_at"]:
            self.stdout.write(f"Last change: {state['switched_at']:%Y-%m-%d %H:%M:%S} by {state['switched_by']}")
        self.stdout.write("Row policies (table: operations covered):")
        for table, count in policy_counts().items():
            self.stdout.write(f"  {table}: {count}")
        if action != "status":
            self.stdout.write(self.style.SUCCESS(f"{action} complete."))
