from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from commission.models import PolicyCommission
from commission.services.calculator import calculate_rate
from commission.services.distribution import distribute_commission, round_distribution
from commission.services.resolver import resolve_rule
from commission.services.types import (
    ChannelPartnerTerms,
    ChannelType,
    CommissionBreakdown,
    CommissionEngineError,
    CommissionLookupError,
    CommissionOutcome,
    CommissionStatus,
    NoRuleFound,
    PayoutRow,
    PolicyDetails,
    round_money,
)
from insurance_core.selectors.insurer_selector import get_insurer
from insurance_core.selectors.policy_selector import list_policies
from insurance_core.selectors.product_selector import get_product
from partners.selectors import get_channel_partner, get_commission_tier, get_employee


logger = logging.getLogger(__name__)

_ZERO_MONEY = Decimal("0.00")
_RATE_PLACES = Decimal("0.0001")


@dataclass(frozen=True, slots=True)
class ResyncSummary:
    scanned: int = 0
    calculated: int = 0
    unmatched: int = 0
    failed: int = 0


@dataclass(frozen=True, slots=True)
class QuoteResult:
    commission_amount: Decimal
    rate_used: Decimal
    row: PayoutRow
    breakdown: CommissionBreakdown


def _round_rate(value: Decimal) -> Decimal:
    return value.quantize(_RATE_PLACES)


def _lookup_terms(policy, channel: ChannelType) -> ChannelPartnerTerms | None:
    organization = policy.organization

    if channel is ChannelType.EMPLOYEE:
        employee = get_employee(organization=organization, employee_id=policy.employee_id)
        return ChannelPartnerTerms(partner_id=employee.id) if employee else None

    if channel is ChannelType.DIRECT:
        return None

    partner = get_channel_partner(
        organization=organization,
        channel=channel.value,
        partner_id=getattr(policy, f"{channel.value}_id"),
    )
    return partner.to_terms() if partner is not None else None


def _channel_terms(policy, channel: ChannelType) -> ChannelPartnerTerms | None:
    try:
        return _lookup_terms(policy, channel)
    except DatabaseError as exc:
        logger.exception(
            "commission.partner.lookup_failed policy_id=%s channel=%s",
            policy.id,
            channel.value,
        )
        raise CommissionLookupError("Channel partner storage is unavailable.") from exc


def compute_policy_commission(policy, *, as_of: date | None = None) -> CommissionOutcome:
    """Resolve, calculate and distribute the commission of one policy.

    Never raises for a missing rule or unreadable rule or partner storage; those come
    back as UNMATCHED / FAILED outcomes.
    """

    details = policy.to_policy_details(as_of=as_of)
    channel = ChannelType.parse(policy.source_type)

    logger.info(
        "commission.calculate.started policy_id=%s line=%s channel=%s",
        policy.id,
        details.line_label,
        channel.value,
    )

    try:
        terms = _channel_terms(policy, channel)
        row = resolve_rule(policy.organization, details)
    except NoRuleFound as exc:
        logger.info("commission.calculate.unmatched policy_id=%s", policy.id)
        return CommissionOutcome(
            status=CommissionStatus.UNMATCHED,
            details=details,
            channel=channel,
            error_message=str(exc),
            policy_id=policy.id,
        )
    except CommissionLookupError as exc:
        return CommissionOutcome(
            status=CommissionStatus.FAILED,
            details=details,
            channel=channel,
            error_message=str(exc),
            policy_id=policy.id,
        )

    calculation = calculate_rate(row, details)
    distribution = distribute_commission(calculation.commission_amount, channel, terms)

    logger.info(
        "commission.calculate.finished policy_id=%s table=%s row_id=%s amount=%s",
        policy.id,
        row.table,
        row.row_id,
        calculation.commission_amount,
    )
    return CommissionOutcome(
        status=CommissionStatus.CALCULATED,
        details=details,
        channel=channel,
        row=row,
        calculation=calculation,
        distribution=distribution,
        policy_id=policy.id,
    )


def _record_values(policy, outcome: CommissionOutcome) -> dict[str, Any]:
    details = outcome.details
    row = outcome.row
    calculation = outcome.calculation
    insurer_commission = round_money(outcome.insurer_commission)

    values: dict[str, Any] = {
        "organization": policy.organization,
        "product_type": details.line_label or details.line_of_business.value,
        "provider": details.provider,
        "source_type": outcome.channel.value,
        "premium_amount": round_money(details.premium_amount),
        "commission_rate": Decimal("0"),
        "reward_rate": Decimal("0"),
        "bonus_rate": Decimal("0"),
        "total_rate": Decimal("0"),
        "commission_amount": insurer_commission,
        "insurer_commission": insurer_commission,
        "agent_commission": _ZERO_MONEY,
        "misp_commission": _ZERO_MONEY,
        "employee_commission": _ZERO_MONEY,
        "reporting_employee_commission": _ZERO_MONEY,
        "broker_share": _ZERO_MONEY,
        "agent_id": None,
        "misp_id": None,
        "posp_id": None,
        "employee_id": None,
        "reporting_employee_id": None,
        "percentage_source": "",
        "channel_percentage": None,
        "grid_table": row.table if row else "",
        "grid_id": row.row_id if row else None,
        "commission_status": outcome.status.value,
        "error_message": outcome.error_message,
        "breakdown": calculation.breakdown.as_dict() if calculation else {},
        "calc_date": timezone.now(),
    }

    if row is not None and calculation is not None:
        base_rate, _amount = row.base_terms(is_renewal=details.is_renewal)
        values.update(
            commission_rate=_round_rate(base_rate),
            reward_rate=_round_rate(row.reward_rate),
            bonus_rate=_round_rate(row.bonus_rate),
            total_rate=_round_rate(calculation.total_rate),
        )

    if outcome.distribution is not None:
        distribution = round_distribution(outcome.distribution)
        values.update(distribution.shares())
        values["percentage_source"] = distribution.percentage_source
        if distribution.percentage is not None:
            values["channel_percentage"] = round_money(distribution.percentage)
        if distribution.channel is not ChannelType.DIRECT:
            values[f"{distribution.channel.value}_id"] = distribution.partner_id
        values["reporting_employee_id"] = distribution.reporting_employee_id

    return values


def save_policy_commission(policy, outcome: CommissionOutcome) -> PolicyCommission:
    """Replace the stored commission of `policy` with `outcome`."""

    with transaction.atomic():
        record, created = PolicyCommission.all_objects.update_or_create(
            policy=policy,
            defaults=_record_values(policy, outcome),
        )

    logger.info(
        "commission.record.saved policy_id=%s status=%s created=%s",
        policy.id,
        record.commission_status,
        created,
    )
    return record


def recalculate_policy_commission(policy, *, as_of: date | None = None) -> PolicyCommission:
    return save_policy_commission(policy, compute_policy_commission(policy, as_of=as_of))


def resync_commissions(
    organization,
    *,
    policy_ids: Iterable[int] | None = None,
    as_of: date | None = None,
) -> ResyncSummary:
    """Recalculate every policy of an organization, one at a time.

    A policy that fails is logged and counted; the run carries on.
    """

    scanned = calculated = unmatched = failed = 0
    logger.info("commission.resync.started organization_id=%s", organization.id)

    for policy in list_policies(organization=organization, policy_ids=policy_ids):
        scanned += 1
        try:
            record = recalculate_policy_commission(policy, as_of=as_of)
        except (CommissionEngineError, DatabaseError, ValidationError):
            logger.exception("commission.resync.failed policy_id=%s", policy.id)
            failed += 1
            continue

        if record.commission_status == PolicyCommission.Status.CALCULATED:
            calculated += 1
        elif record.commission_status == PolicyCommission.Status.UNMATCHED:
            unmatched += 1
        else:
            failed += 1

    summary = ResyncSummary(
        scanned=scanned,
        calculated=calculated,
        unmatched=unmatched,
        failed=failed,
    )
    logger.info(
        "commission.resync.finished organization_id=%s scanned=%s calculated=%s unmatched=%s failed=%s",
        organization.id,
        summary.scanned,
        summary.calculated,
        summary.unmatched,
        summary.failed,
    )
    return summary


def calculate_commission_quote(organization, request_data: Mapping[str, Any]) -> QuoteResult:
    """Stateless calculation for a prospective policy.

    Raises `NoRuleFound` or `CommissionLookupError`; lookups of unknown
    insurer, product or tier raise the model's `DoesNotExist`.
    """

    insurer = get_insurer(organization=organization, insurer_id=request_data["insurer_id"])
    product = None
    if request_data.get("product_id"):
        product = get_product(organization=organization, product_id=request_data["product_id"])
    if request_data.get("agent_tier_id"):
        get_commission_tier(organization=organization, tier_id=request_data["agent_tier_id"])

    raw = dict(request_data.get("policy_details") or {})
    category = raw.pop("product_category", "") or (product.category if product else "")
    line_of_business = raw.pop("line_of_business", "") or (product.line_of_business if product else "")
    details = PolicyDetails.build(
        line_of_business=line_of_business,
        premium_amount=raw.pop("premium_amount", None),
        is_renewal=bool(request_data.get("is_renewal")),
        provider=insurer.name,
        product_id=product.id if product else None,
        product_category=category,
        evaluation_date=request_data.get("evaluation_date"),
        **raw,
    )

    row = resolve_rule(organization, details)
    calculation = calculate_rate(row, details)
    return QuoteResult(
        commission_amount=round_money(calculation.commission_amount),
        rate_used=calculation.rate_used,
        row=row,
        breakdown=calculation.breakdown,
    )
