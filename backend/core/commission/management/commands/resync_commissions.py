from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from commission.services.commission_engine import resync_commissions
from organizations.models import Organization


class Command(BaseCommand):
    help = "Recalculate stored policy commissions (one organization, or every active one)."

    def add_arguments(self, parser):
        parser.add_argument("--org", dest="org", help="Organization tenant_code.")
        parser.add_argument(
            "--policy",
            dest="policy_ids",
            action="append",
            type=int,
            help="Policy id to recalculate (repeatable). Requires --org.",
        )

    def handle(self, *args, **options):
        tenant_code = (options.get("org") or "").strip().lower()
        policy_ids = options.get("policy_ids")

        if policy_ids and not tenant_code:
            raise CommandError("--policy requires --org.")

        if tenant_code:
            organizations = Organization.objects.filter(tenant_code=tenant_code)
            if not organizations.exists():
                raise CommandError(f"Organization '{tenant_code}' not found.")
        else:
            organizations = Organization.objects.filter(is_active=True)

        for organization in organizations.order_by("tenant_code"):
            summary = resync_commissions(organization, policy_ids=policy_ids)
            self.stdout.write(
                self.style.SUCCESS(
                    f"resync_commissions[{organization.tenant_code}]: scanned={summary.scanned}, "
                    f"calculated={summary.calculated}, unmatched={summary.unmatched}, "
                    f"failed={summary.failed}"
                )
            )
