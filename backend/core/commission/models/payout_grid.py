from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from commission.services.types import (
    CommissionRuleError,
    PayoutRow,
    RateRange,
    to_decimal,
)
from tenancy.models import BaseTenantModel


def _rate_field(**kwargs):
    return models.DecimalField(max_digits=7, decimal_places=4, default=Decimal("0"), **kwargs)


def _amount_field(**kwargs):
    return models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"), **kwargs)


class PayoutGridBase(BaseTenantModel):
    """Commission terms shared by the payout grids and the generic rule table.

    `ranges_json` holds ordered tier ranges:
    [{"min_value": 0, "max_value": 10, "commission_rate": 25, "commission_amount": 0}, ...]
    """

    table_name = ""
    secondary_field = ""
    window_fields = ("effective_from", "effective_to")

    provider = models.CharField(
        max_length=255,
        blank=True,
        help_text="Insurer name fragment; blank matches every insurer.",
    )
    product_type = models.CharField(max_length=120, blank=True)
    min_premium = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    max_premium = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    first_year_rate = _rate_field()
    first_year_amount = _amount_field()
    renewal_rate = _rate_field()
    renewal_amount = _amount_field()
    reward_rate = _rate_field()
    bonus_rate = _rate_field()
    ranges_json = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        abstract = True
        ordering = ("-created_at", "-id")
        constraints = [
            models.CheckConstraint(
                condition=Q(min_premium__isnull=True)
                | Q(max_premium__isnull=True)
                | Q(max_premium__gte=F("min_premium")),
                name="ck_%(class)s_premium_band",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.table_name}#{self.pk} {self.provider or '*'} {self.product_type or '*'}"

    def clean(self):
        super().clean()
        start, end = self.window
        if start and end and end < start:
            raise ValidationError("The end of the validity window must not precede its start.")
        try:
            self._parse_ranges()
        except CommissionRuleError as exc:
            raise ValidationError({"ranges_json": str(exc)}) from exc

    @property
    def window(self):
        return tuple(getattr(self, name) for name in self.window_fields)

    @property
    def secondary_type(self) -> str:
        if not self.secondary_field:
            return ""
        return getattr(self, self.secondary_field) or ""

    @property
    def bound_product_id(self) -> int | None:
        return None

    def _parse_ranges(self) -> tuple[RateRange, ...]:
        raw = self.ranges_json or []
        if not isinstance(raw, list):
            raise CommissionRuleError("ranges_json must be a list.")
        return tuple(RateRange.from_mapping(entry) for entry in raw)

    def to_payout_row(self) -> PayoutRow:
        start, end = self.window
        return PayoutRow(
            table=self.table_name,
            row_id=self.pk,
            provider=(self.provider or "").strip(),
            product_type=(self.product_type or "").strip(),
            secondary_type=self.secondary_type.strip(),
            product_id=self.bound_product_id,
            min_premium=to_decimal(self.min_premium, field="min_premium", default=None),
            max_premium=to_decimal(self.max_premium, field="max_premium", default=None),
            window_start=start,
            window_end=end,
            first_year_rate=to_decimal(self.first_year_rate, field="first_year_rate"),
            first_year_amount=to_decimal(self.first_year_amount, field="first_year_amount"),
            renewal_rate=to_decimal(self.renewal_rate, field="renewal_rate"),
            renewal_amount=to_decimal(self.renewal_amount, field="renewal_amount"),
            reward_rate=to_decimal(self.reward_rate, field="reward_rate"),
            bonus_rate=to_decimal(self.bonus_rate, field="bonus_rate"),
            ranges=self._parse_ranges(),
            created_at=self.created_at,
        )


class MotorPayoutGrid(PayoutGridBase):
    table_name = "motor_payout_grid"
    secondary_field = "product_subtype"

    product_subtype = models.CharField(max_length=120, blank=True)
    vehicle_make = models.CharField(max_length=120, blank=True)
    effective_from = models.DateField(null=True, blank=True)
    effective_to = models.DateField(null=True, blank=True)

    class Meta(PayoutGridBase.Meta):
        db_table = "motor_payout_grid"


class HealthPayoutGrid(PayoutGridBase):
    table_name = "health_payout_grid"
    secondary_field = "product_sub_type"

    product_sub_type = models.CharField(max_length=120, blank=True)
    plan_name = models.CharField(max_length=255, blank=True)
    effective_from = models.DateField(null=True, blank=True)
    effective_to = models.DateField(null=True, blank=True)

    class Meta(PayoutGridBase.Meta):
        db_table = "health_payout_grid"


class LifePayoutGrid(PayoutGridBase):
    table_name = "life_payout_grid"
    secondary_field = "plan_name"
    window_fields = ("commission_start_date", "commission_end_date")

    plan_name = models.CharField(max_length=255, blank=True)
    commission_start_date = models.DateField(null=True, blank=True)
    commission_end_date = models.DateField(null=True, blank=True)

    class Meta(PayoutGridBase.Meta):
        db_table = "life_payout_grid"


class CommissionRule(PayoutGridBase):
    """Rule for every line of business without a dedicated grid."""

    table_name = "commission_rules"
    secondary_field = "product_subtype"

    line_of_business = models.CharField(max_length=60, db_index=True)
    product_subtype = models.CharField(max_length=120, blank=True)
    product = models.ForeignKey(
        "insurance_core.InsuranceProduct",
        related_name="commission_rules",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
    )
    effective_from = models.DateField(null=True, blank=True)
    effective_to = models.DateField(null=True, blank=True)

    class Meta(PayoutGridBase.Meta):
        db_table = "commission_rules"

    @property
    def bound_product_id(self) -> int | None:
        return self.product_id
