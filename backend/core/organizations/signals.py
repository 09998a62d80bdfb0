from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from organizations.models import Domain, Organization


@receiver(post_save, sender=Organization)
def ensure_organization_domains(sender, instance: Organization, created: bool, **_kwargs):
    """Give every new organization a `<subdomain>.localhost` domain.

    When `TENANT_BASE_DOMAIN` is set, `<subdomain>.<base_domain>` becomes the
    primary domain.
    """

    if not created:
        return

    base_domain = getattr(settings, "TENANT_BASE_DOMAIN", "").strip().lower()
    Domain.objects.get_or_create(
        domain=f"{instance.subdomain}.localhost",
        defaults={"tenant": instance, "is_primary": not bool(base_domain)},
    )

    if not base_domain:
        return

    Domain.objects.get_or_create(
        domain=f"{instance.subdomain}.{base_domain}",
        defaults={"tenant": instance, "is_primary": True},
    )
