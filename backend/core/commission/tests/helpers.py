from __future__ import annotations

import datetime
import itertools
from decimal import Decimal

from django.contrib.auth import get_user_model

from insurance_core.models import InsuranceProduct, Insurer, Policy
from organizations.models import Organization, OrganizationMembership


_policy_numbers = itertools.count(1)


def create_organization(code: str = "acme") -> Organization:
    return Organization.objects.create(name=code.title(), tenant_code=code, subdomain=code)


def create_member(organization: Organization, username: str, role: str):
    user = get_user_model().objects.create_user(username=username, password="pass-123")
    OrganizationMembership.objects.create(organization=organization, user=user, role=role)
    return user


def create_insurer(organization: Organization, name: str = "Acko General Insurance") -> Insurer:
    return Insurer.all_objects.create(organization=organization, name=name)


def create_product(
    insurer: Insurer,
    *,
    line_of_business: str = InsuranceProduct.LineOfBusiness.MOTOR,
    category: str = "Private Car",
    code: str = "PC-01",
) -> InsuranceProduct:
    return InsuranceProduct.all_objects.create(
        insurer=insurer,
        code=code,
        name=f"{category} cover",
        category=category,
        line_of_business=line_of_business,
    )


def create_policy(insurer: Insurer, **fields) -> Policy:
    defaults = {
        "policy_number": f"POL-{next(_policy_numbers):05d}",
        "start_date": datetime.date(2024, 4, 1),
        "gross_premium": Decimal("10000.00"),
        "source_type": Policy.SourceType.DIRECT,
    }
    defaults.update(fields)
    return Policy.all_objects.create(insurer=insurer, **defaults)
