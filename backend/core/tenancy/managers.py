from django.db import models

from tenancy.context import get_current_organization


class TenantManager(models.Manager):
    """Rows of the current organization; nothing when no organization is bound."""

    def get_queryset(self):
        queryset = super().get_queryset()
        organization = get_current_organization()
        if organization is None:
            return queryset.none()
        return queryset.filter(organization=organization)
