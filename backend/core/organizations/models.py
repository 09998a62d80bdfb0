import re

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import connection, models

from django_tenants.models import DomainMixin, TenantMixin

from tenancy.rbac import validate_rbac_overrides


def _normalize_schema_name(value: str) -> str:
    """Normalize an organization code into a safe postgres schema name."""

    normalized = (value or "").strip().lower()
    normalized = re.sub(r"[^a-z0-9_]+", "_", normalized).strip("_")
    return normalized[:63] if normalized else normalized


class Organization(TenantMixin):
    auto_create_schema = True

    name = models.CharField(max_length=150)
    tenant_code = models.SlugField(
        max_length=63,
        unique=True,
        help_text="Identifier used in the X-Org-ID header.",
    )
    subdomain = models.SlugField(
        max_length=63,
        unique=True,
        help_text="Subdomain used for host-based organization resolution.",
    )
    is_active = models.BooleanField(default=True)
    rbac_overrides = models.JSONField(
        default=dict,
        blank=True,
        validators=[validate_rbac_overrides],
        help_text=(
            "Optional RBAC overrides. "
            "Example: {'policy_commissions': {'POST': ['OWNER']}}"
        ),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name",)

    def __str__(self):
        return f"{self.name} ({self.tenant_code})"

    def clean(self):
        super().clean()

        if not self.schema_name:
            self.schema_name = _normalize_schema_name(self.tenant_code)
        if self.schema_name == "public":
            raise ValidationError({"tenant_code": "tenant_code cannot map to the public schema."})

        validate_rbac_overrides(self.rbac_overrides)

    def save(self, *args, **kwargs):
        if not getattr(self, "schema_name", ""):
            self.schema_name = _normalize_schema_name(self.tenant_code)

        # TenantMixin.save inspects postgres catalogs; skip it in legacy mode.
        if not getattr(settings, "DJANGO_TENANTS_ENABLED", False) or connection.vendor != "postgresql":
            return models.Model.save(self, *args, **kwargs)

        return super().save(*args, **kwargs)


class Domain(DomainMixin):
    """Host mapping for an organization (e.g. `acme.localhost`)."""


class OrganizationMembership(models.Model):
    ROLE_MEMBER = "MEMBER"
    ROLE_MANAGER = "MANAGER"
    ROLE_OWNER = "OWNER"
    ROLE_CHOICES = [
        (ROLE_MEMBER, "Member"),
        (ROLE_MANAGER, "Manager"),
        (ROLE_OWNER, "Owner"),
    ]

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="organization_memberships",
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_MEMBER)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("organization__name", "user__username")
        constraints = [
            models.UniqueConstraint(
                fields=("organization", "user"),
                name="uq_org_membership_org_user",
            ),
        ]

    def __str__(self):
        return f"{self.user} @ {self.organization} ({self.role})"
