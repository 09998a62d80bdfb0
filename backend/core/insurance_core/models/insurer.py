from __future__ import annotations

from django.db import models

from tenancy.models import BaseTenantModel


class Insurer(BaseTenantModel):
    """Insurance carrier; its `name` is the provider string matched by payout grids."""

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        INACTIVE = "INACTIVE", "Inactive"

    name = models.CharField(max_length=255)
    code = models.CharField(max_length=40, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )

    class Meta:
        ordering = ("name",)
        constraints = [
            models.UniqueConstraint(
                fields=("organization", "name"),
                name="uq_insurer_name_per_org",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name
