from __future__ import annotations

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from commission.services.commission_engine import recalculate_policy_commission
from insurance_core.models import Policy


@receiver(post_save, sender=Policy)
def recalculate_commission_on_policy_save(sender, instance: Policy, raw: bool = False, **_kwargs):
    """Keep the stored commission in step with the policy when auto calculation is on."""

    if raw or not getattr(settings, "COMMISSION_AUTO_CALCULATE", False):
        return
    recalculate_policy_commission(instance)
