from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from tenancy.models import BaseTenantModel


_PERCENT_VALIDATORS = [
    MinValueValidator(Decimal("0.00")),
    MaxValueValidator(Decimal("100.00")),
]


def _percent_field(**kwargs):
    return models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=_PERCENT_VALIDATORS,
        **kwargs,
    )


class Employee(BaseTenantModel):
    name = models.CharField(max_length=255)
    employee_code = models.CharField(max_length=40)
    reporting_manager = models.ForeignKey(
        "self",
        related_name="direct_reports",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("name", "id")
        constraints = [
            models.UniqueConstraint(
                fields=("organization", "employee_code"),
                name="uq_employee_code_per_org",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} ({self.employee_code})"

    def clean(self):
        super().clean()
        if self.reporting_manager_id and self.reporting_manager_id == self.id:
            raise ValidationError({"reporting_manager": "An employee cannot report to themselves."})


class CommissionTier(BaseTenantModel):
    """Named payout tier; its base percentage backs partners without their own."""

    name = models.CharField(max_length=120)
    base_percentage = _percent_field()
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("name", "id")
        constraints = [
            models.UniqueConstraint(
                fields=("organization", "name"),
                name="uq_commission_tier_name_per_org",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class ChannelPartner(BaseTenantModel):
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=40)
    is_active = models.BooleanField(default=True)

    class Meta:
        abstract = True
        ordering = ("name", "id")

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} ({self.code})"

    def to_terms(self):
        from commission.services.types import ChannelPartnerTerms

        return ChannelPartnerTerms(partner_id=self.id)


class TieredChannelPartner(ChannelPartner):
    """Agent-like partner: own percentages, a tier, and an employee hierarchy."""

    base_percentage = _percent_field()
    override_percentage = _percent_field(
        help_text="Takes precedence over the base and tier percentages when set.",
    )
    commission_tier = models.ForeignKey(
        CommissionTier,
        related_name="+",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    reporting_employee = models.ForeignKey(
        Employee,
        related_name="+",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        help_text="Reporting manager who receives the remainder of the commission.",
    )
    employee = models.ForeignKey(
        Employee,
        related_name="+",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        help_text="Associated employee; also redirects the remainder away from the broker.",
    )

    class Meta(ChannelPartner.Meta):
        abstract = True

    def to_terms(self):
        from commission.services.types import ChannelPartnerTerms

        return ChannelPartnerTerms(
            partner_id=self.id,
            override_percentage=self.override_percentage,
            base_percentage=self.base_percentage,
            tier_percentage=self.commission_tier.base_percentage if self.commission_tier_id else None,
            reporting_employee_id=self.reporting_employee_id,
            employee_id=self.employee_id,
        )


class Agent(TieredChannelPartner):
    class Meta(TieredChannelPartner.Meta):
        constraints = [
            models.UniqueConstraint(
                fields=("organization", "code"),
                name="uq_agent_code_per_org",
            ),
        ]


class Misp(TieredChannelPartner):
    """Motor Insurance Service Provider."""

    class Meta(TieredChannelPartner.Meta):
        verbose_name = "MISP"
        constraints = [
            models.UniqueConstraint(
                fields=("organization", "code"),
                name="uq_misp_code_per_org",
            ),
        ]


class Posp(ChannelPartner):
    """Point-of-Sale Person, paid a fixed share with no hierarchy."""

    class Meta(ChannelPartner.Meta):
        verbose_name = "POSP"
        constraints = [
            models.UniqueConstraint(
                fields=("organization", "code"),
                name="uq_posp_code_per_org",
            ),
        ]
