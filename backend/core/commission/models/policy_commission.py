from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from tenancy.models import BaseTenantModel


def _money_field():
    return models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))


def _rate_field():
    return models.DecimalField(max_digits=7, decimal_places=4, default=Decimal("0"))


class PolicyCommission(BaseTenantModel):
    """Latest commission breakdown of a policy; replaced on every recalculation."""

    class Status(models.TextChoices):
        CALCULATED = "CALCULATED", "Calculated"
        UNMATCHED = "UNMATCHED", "Unmatched"
        FAILED = "FAILED", "Failed"

    policy = models.OneToOneField(
        "insurance_core.Policy",
        related_name="commission",
        on_delete=models.CASCADE,
    )
    product_type = models.CharField(max_length=60, blank=True)
    provider = models.CharField(max_length=255, blank=True)
    source_type = models.CharField(max_length=20, blank=True)
    premium_amount = _money_field()

    commission_rate = _rate_field()
    reward_rate = _rate_field()
    bonus_rate = _rate_field()
    total_rate = _rate_field()

    commission_amount = _money_field()
    insurer_commission = _money_field()
    agent_commission = _money_field()
    misp_commission = _money_field()
    employee_commission = _money_field()
    reporting_employee_commission = _money_field()
    broker_share = _money_field()

    agent = models.ForeignKey(
        "partners.Agent", related_name="+", on_delete=models.SET_NULL, null=True, blank=True
    )
    misp = models.ForeignKey(
        "partners.Misp", related_name="+", on_delete=models.SET_NULL, null=True, blank=True
    )
    posp = models.ForeignKey(
        "partners.Posp", related_name="+", on_delete=models.SET_NULL, null=True, blank=True
    )
    employee = models.ForeignKey(
        "partners.Employee", related_name="+", on_delete=models.SET_NULL, null=True, blank=True
    )
    reporting_employee = models.ForeignKey(
        "partners.Employee", related_name="+", on_delete=models.SET_NULL, null=True, blank=True
    )

    percentage_source = models.CharField(max_length=40, blank=True)
    channel_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    grid_table = models.CharField(max_length=40, blank=True)
    grid_id = models.PositiveBigIntegerField(null=True, blank=True)
    commission_status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.CALCULATED,
        db_index=True,
    )
    error_message = models.TextField(blank=True)
    breakdown = models.JSONField(default=dict, blank=True)
    calc_date = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ("-calc_date", "-id")
        indexes = [
            models.Index(
                fields=("organization", "commission_status"),
                name="idx_polcomm_org_status",
            ),
            models.Index(
                fields=("organization", "product_type"),
                name="idx_polcomm_org_product",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.policy_id}: {self.insurer_commission} ({self.commission_status})"

    @property
    def distributed_total(self) -> Decimal:
        return (
            self.agent_commission
            + self.misp_commission
            + self.employee_commission
            + self.reporting_employee_commission
            + self.broker_share
        )

    def save(self, *args, **kwargs):
        if self.policy_id:
            self.organization = self.policy.organization
        return super().save(*args, **kwargs)
