from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from insurance_core.models.insurer import Insurer
from insurance_core.models.product import InsuranceProduct
from tenancy.models import BaseTenantModel


_MIN_ZERO = MinValueValidator(Decimal("0.00"))


def _money_field(**kwargs):
    return models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[_MIN_ZERO],
        **kwargs,
    )


class Policy(BaseTenantModel):
    """Sold or renewed policy: premium components plus selling-channel metadata."""

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        ISSUED = "ISSUED", "Issued"
        ACTIVE = "ACTIVE", "Active"
        EXPIRED = "EXPIRED", "Expired"
        CANCELLED = "CANCELLED", "Cancelled"

    class SourceType(models.TextChoices):
        EMPLOYEE = "employee", "Employee"
        AGENT = "agent", "Agent"
        MISP = "misp", "MISP"
        POSP = "posp", "POSP"
        DIRECT = "direct", "Direct"

    policy_number = models.CharField(max_length=80)
    insurer = models.ForeignKey(
        Insurer,
        related_name="policies",
        on_delete=models.PROTECT,
    )
    product = models.ForeignKey(
        InsuranceProduct,
        related_name="policies",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
    )
    line_of_business = models.CharField(
        max_length=60,
        blank=True,
        help_text="Copied from the product when left blank.",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ISSUED,
        db_index=True,
    )
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    is_renewal = models.BooleanField(default=False)

    gross_premium = _money_field()
    premium_without_tax = _money_field()
    premium_with_tax = _money_field()
    od_premium = _money_field(help_text="Own-damage premium (motor).")
    tp_premium = _money_field(help_text="Third-party premium (motor).")
    sum_assured = _money_field()

    payment_frequency = models.CharField(max_length=30, blank=True)
    policy_term = models.PositiveSmallIntegerField(null=True, blank=True)
    premium_payment_term = models.PositiveSmallIntegerField(null=True, blank=True)
    plan_type = models.CharField(max_length=30, blank=True)
    vehicle_type = models.CharField(max_length=60, blank=True)

    source_type = models.CharField(
        max_length=20,
        choices=SourceType.choices,
        blank=True,
    )
    employee = models.ForeignKey(
        "partners.Employee",
        related_name="policies",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    agent = models.ForeignKey(
        "partners.Agent",
        related_name="policies",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    misp = models.ForeignKey(
        "partners.Misp",
        related_name="policies",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    posp = models.ForeignKey(
        "partners.Posp",
        related_name="policies",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ("-start_date", "-id")
        verbose_name_plural = "Policies"
        constraints = [
            models.UniqueConstraint(
                fields=("organization", "policy_number"),
                name="uq_policy_number_per_org",
            ),
        ]
        indexes = [
            models.Index(
                fields=("organization", "status", "start_date"),
                name="idx_pol_org_stat_start",
            ),
            models.Index(
                fields=("organization", "insurer", "product"),
                name="idx_pol_org_ins_prod",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.policy_number

    @property
    def premium_base(self) -> Decimal:
        """Gross premium, falling back to the taxed then untaxed premium."""

        for value in (self.gross_premium, self.premium_with_tax, self.premium_without_tax):
            if value:
                return value
        return Decimal("0.00")

    def clean(self):
        super().clean()
        if self.insurer_id and self.organization_id and self.insurer.organization_id != self.organization_id:
            raise ValidationError("Policy and Insurer must belong to the same organization.")
        if self.product_id and self.product.insurer_id != self.insurer_id:
            raise ValidationError("Policy product must belong to the policy insurer.")
        if self.end_date and self.start_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "end_date must be on or after start_date."})

    def save(self, *args, **kwargs):
        if self.insurer_id:
            self.organization = self.insurer.organization
        if not self.line_of_business and self.product_id:
            self.line_of_business = self.product.line_of_business
        return super().save(*args, **kwargs)

    def to_policy_details(self, *, as_of=None):
        from commission.services.types import PolicyDetails

        return PolicyDetails.build(
            line_of_business=self.line_of_business
            or (self.product.line_of_business if self.product_id else ""),
            premium_amount=self.premium_base,
            is_renewal=self.is_renewal,
            provider=self.insurer.name,
            product_id=self.product_id,
            product_category=self.product.category if self.product_id else "",
            evaluation_date=as_of,
            od_premium=self.od_premium,
            tp_premium=self.tp_premium,
            vehicle_type=self.vehicle_type,
            policy_term=self.policy_term,
            premium_payment_term=self.premium_payment_term,
            payment_frequency=self.payment_frequency,
            plan_type=self.plan_type,
            sum_assured=self.sum_assured,
        )
