from django.core.exceptions import ValidationError
from django.db import models

from tenancy.context import get_current_organization
from tenancy.managers import TenantManager


class BaseTenantModel(models.Model):
    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="%(app_label)s_%(class)s_set",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        abstract = True

    def _enforce_organization_scope(self):
        current_organization = get_current_organization()

        if self.organization_id is None and current_organization is not None:
            self.organization = current_organization

        if self.organization_id is None:
            raise ValidationError("organization is required.")

        if current_organization is not None and self.organization_id != current_organization.id:
            raise ValidationError(
                "Cross-tenant write blocked: resource organization does not match request tenant."
            )

    def save(self, *args, **kwargs):
        self._enforce_organization_scope()
        return super().save(*args, **kwargs)
