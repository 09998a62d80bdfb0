from __future__ import annotations

from typing import Iterable

from insurance_core.models import Policy


def list_policies(*, organization, policy_ids: Iterable[int] | None = None):
    qs = Policy.all_objects.filter(organization=organization).select_related(
        "insurer", "product", "employee", "agent", "misp", "posp"
    )
    if policy_ids is not None:
        qs = qs.filter(id__in=list(policy_ids))
    return qs.order_by("id")


def get_policy(*, organization, policy_id: int) -> Policy:
    return list_policies(organization=organization).get(id=policy_id)
