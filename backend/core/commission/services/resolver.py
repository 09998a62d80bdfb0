from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from django.db import DatabaseError
from django.utils import timezone

from commission.models import CommissionRule, HealthPayoutGrid, LifePayoutGrid, MotorPayoutGrid
from commission.services.types import (
    CommissionLookupError,
    CommissionRuleError,
    LineOfBusiness,
    NoRuleFound,
    PayoutRow,
    PolicyDetails,
)


logger = logging.getLogger(__name__)

GRID_MODELS = {
    LineOfBusiness.MOTOR: MotorPayoutGrid,
    LineOfBusiness.HEALTH: HealthPayoutGrid,
    LineOfBusiness.LIFE: LifePayoutGrid,
}


@dataclass(frozen=True, slots=True)
class RuleQuery:
    organization: Any
    line_of_business: LineOfBusiness
    line_label: str
    provider: str
    premium_amount: Decimal
    evaluation_date: date
    product_id: int | None = None
    product_category: str = ""

    @classmethod
    def from_details(cls, organization, details: PolicyDetails) -> "RuleQuery":
        return cls(
            organization=organization,
            line_of_business=details.line_of_business,
            line_label=details.line_label or details.line_of_business.value,
            provider=details.provider,
            premium_amount=details.premium_amount,
            evaluation_date=details.evaluation_date or timezone.localdate(),
            product_id=details.product_id,
            product_category=details.product_category,
        )


def _matches_category(row: PayoutRow, category: str) -> bool:
    if not category:
        return True
    if not row.product_type and not row.secondary_type:
        return True
    needle = category.lower()
    return needle in row.product_type.lower() or needle in row.secondary_type.lower()


def _matches_premium(row: PayoutRow, premium: Decimal) -> bool:
    if row.min_premium is not None and premium < row.min_premium:
        return False
    if row.max_premium is not None and premium > row.max_premium:
        return False
    return True


def _matches_provider(row: PayoutRow, provider: str) -> bool:
    if not row.provider:
        return True
    return row.provider.lower() in provider.lower()


def _matches_window(row: PayoutRow, on: date) -> bool:
    if row.window_start is not None and on < row.window_start:
        return False
    if row.window_end is not None and on > row.window_end:
        return False
    return True


def _matches_product(row: PayoutRow, product_id: int | None) -> bool:
    if row.product_id is None or product_id is None:
        return True
    return row.product_id == product_id


def row_matches(row: PayoutRow, query: RuleQuery) -> bool:
    return (
        _matches_category(row, query.product_category)
        and _matches_premium(row, query.premium_amount)
        and _matches_provider(row, query.provider)
        and _matches_window(row, query.evaluation_date)
        and _matches_product(row, query.product_id)
    )


def _candidate_queryset(query: RuleQuery):
    model = GRID_MODELS.get(query.line_of_business, CommissionRule)
    qs = model.all_objects.filter(organization=query.organization, is_active=True)
    if model is CommissionRule:
        qs = qs.filter(line_of_business__iexact=query.line_label)
    # Newest first so that the first surviving row wins ties.
    return qs.order_by("-created_at", "-id")


def _to_rows(records: Iterable[Any]) -> Iterable[PayoutRow]:
    for record in records:
        try:
            yield record.to_payout_row()
        except CommissionRuleError as exc:
            logger.warning(
                "commission.resolve.malformed_row table=%s id=%s error=%s",
                record.table_name,
                record.pk,
                exc,
            )


def select_row(rows: Iterable[PayoutRow], query: RuleQuery) -> PayoutRow:
    """First row (in the given order) satisfying every predicate."""

    for row in rows:
        if row_matches(row, query):
            return row
    raise NoRuleFound(
        f"No active commission rule for line={query.line_label} provider={query.provider or '-'}."
    )


def resolve_rule(organization, details: PolicyDetails) -> PayoutRow:
    """Find the single best rule or grid row for a policy snapshot.

    Raises `NoRuleFound` when nothing matches and `CommissionLookupError`
    when rule storage cannot be read.
    """

    query = RuleQuery.from_details(organization, details)
    try:
        records = list(_candidate_queryset(query))
    except DatabaseError as exc:
        logger.exception(
            "commission.resolve.lookup_failed organization_id=%s line=%s",
            getattr(organization, "id", None),
            query.line_label,
        )
        raise CommissionLookupError("Commission rule storage is unavailable.") from exc

    return select_row(_to_rows(records), query)
