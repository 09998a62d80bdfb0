from __future__ import annotations

from insurance_core.models import Insurer


def get_insurer(*, organization, insurer_id: int) -> Insurer:
    return Insurer.all_objects.get(organization=organization, id=insurer_id)
