from __future__ import annotations

from insurance_core.models import InsuranceProduct


def get_product(*, organization, product_id: int) -> InsuranceProduct:
    return InsuranceProduct.all_objects.select_related("insurer").get(
        organization=organization, id=product_id
    )
