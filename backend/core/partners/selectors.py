from __future__ import annotations

from partners.models import Agent, CommissionTier, Employee, Misp, Posp


_PARTNER_MODELS = {
    "agent": Agent,
    "misp": Misp,
    "posp": Posp,
}


def get_channel_partner(*, organization, channel: str, partner_id: int | None):
    """Return the partner record for a channel, or None when it does not resolve."""

    model = _PARTNER_MODELS.get(channel)
    if model is None or not partner_id:
        return None
    qs = model.all_objects.filter(organization=organization, id=partner_id)
    if model is not Posp:
        qs = qs.select_related("commission_tier")
    return qs.first()


def get_employee(*, organization, employee_id: int | None) -> Employee | None:
    if not employee_id:
        return None
    return Employee.all_objects.filter(organization=organization, id=employee_id).first()


def get_commission_tier(*, organization, tier_id: int) -> CommissionTier:
    return CommissionTier.all_objects.get(organization=organization, id=tier_id)
