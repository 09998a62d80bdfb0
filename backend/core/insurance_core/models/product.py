from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models

from insurance_core.models.insurer import Insurer
from tenancy.models import BaseTenantModel


class InsuranceProduct(BaseTenantModel):
    """Product catalog entry of an insurer."""

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        INACTIVE = "INACTIVE", "Inactive"

    class LineOfBusiness(models.TextChoices):
        MOTOR = "Motor", "Motor"
        LIFE = "Life", "Life"
        HEALTH = "Health", "Health"
        COMMERCIAL = "Commercial", "Commercial"
        TRAVEL = "Travel", "Travel"
        OTHER = "Other", "Other"

    insurer = models.ForeignKey(
        Insurer,
        related_name="products",
        on_delete=models.PROTECT,
    )
    code = models.CharField(max_length=80)
    name = models.CharField(max_length=255)
    category = models.CharField(
        max_length=120,
        blank=True,
        help_text="Product type or sub-type matched against payout grid product fields.",
    )
    line_of_business = models.CharField(
        max_length=30,
        choices=LineOfBusiness.choices,
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )

    class Meta:
        ordering = ("line_of_business", "name")
        constraints = [
            models.UniqueConstraint(
                fields=("organization", "insurer", "code"),
                name="uq_product_code_per_insurer_org",
            ),
        ]
        indexes = [
            models.Index(
                fields=("organization", "line_of_business"),
                name="idx_product_org_lob",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.insurer.name} - {self.name}"

    def clean(self):
        super().clean()
        if self.insurer_id and self.organization_id and self.insurer.organization_id != self.organization_id:
            raise ValidationError("InsuranceProduct and Insurer must belong to the same organization.")

    def save(self, *args, **kwargs):
        if self.insurer_id:
            self.organization = self.insurer.organization
        return super().save(*args, **kwargs)
