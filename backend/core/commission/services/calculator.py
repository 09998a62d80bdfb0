from __future__ import annotations

from decimal import Decimal
from typing import Callable, Mapping, Sequence

from commission.services.types import (
    CommercialDetails,
    CommissionBreakdown,
    HealthDetails,
    LifeDetails,
    LineOfBusiness,
    MotorDetails,
    PayoutRow,
    PolicyDetails,
    RateCalculation,
    RateRange,
)


_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")

LIFE_FREQUENCY_MULTIPLIERS = {
    "annual": Decimal("1.00"),
    "semi-annual": Decimal("0.95"),
    "quarterly": Decimal("0.90"),
    "monthly": Decimal("0.85"),
}

HEALTH_FREQUENCY_MULTIPLIERS = {
    "annual": Decimal("1.00"),
    "semi-annual": Decimal("0.90"),
    "quarterly": Decimal("0.80"),
    "monthly": Decimal("0.70"),
}

# Regulatory ceilings on the effective health rate, by plan type.
HEALTH_RATE_CAPS = {
    "group": Decimal("7.5"),
    "individual": Decimal("15"),
}


def _percent_of(base: Decimal, rate: Decimal) -> Decimal:
    return base * rate / _HUNDRED


def _frequency_multiplier(schedule: Mapping[str, Decimal], frequency: str) -> Decimal:
    return schedule.get(str(frequency or "").strip().lower(), _ONE)


def find_applicable_range(ranges: Sequence[RateRange], value: Decimal) -> RateRange | None:
    """First range (in list order) whose bounds contain `value`."""

    for rate_range in ranges:
        if rate_range.contains(value):
            return rate_range
    return None


def _amount_or_rate(premium: Decimal, rate: Decimal, fixed_amount: Decimal) -> Decimal:
    if fixed_amount > 0:
        return fixed_amount
    if rate > 0:
        return _percent_of(premium, rate)
    return _ZERO


def _tiered(
    row: PayoutRow,
    *,
    premium: Decimal,
    rate: Decimal,
    fixed_amount: Decimal,
    tier_value: Decimal | None,
) -> RateCalculation:
    effective_rate = rate
    commission = _ZERO
    pre_tier_amount = _amount_or_rate(premium, rate, fixed_amount)

    matched = None
    if row.ranges:
        matched = find_applicable_range(row.ranges, tier_value if tier_value else premium)
    if matched is not None:
        effective_rate = matched.commission_rate or effective_rate
        commission = matched.commission_amount

    if commission == 0:
        commission = _amount_or_rate(premium, effective_rate, fixed_amount)

    if matched is None:
        breakdown = CommissionBreakdown(base_commission=commission)
    else:
        breakdown = CommissionBreakdown(
            base_commission=pre_tier_amount,
            tier_adjustment=commission - pre_tier_amount,
        )
    return RateCalculation(
        commission_amount=commission,
        rate_used=effective_rate,
        total_rate=effective_rate,
        breakdown=breakdown,
    )


def _calculate_motor(row: PayoutRow, policy: PolicyDetails) -> RateCalculation:
    """Commission on the own-damage premium only; third-party earns nothing."""

    rate, fixed_amount = row.base_terms(is_renewal=policy.is_renewal)
    details = policy.details if isinstance(policy.details, MotorDetails) else MotorDetails()

    if fixed_amount > 0:
        return RateCalculation(
            commission_amount=fixed_amount,
            rate_used=rate,
            total_rate=rate,
            breakdown=CommissionBreakdown(
                base_commission=fixed_amount,
                od_commission=_ZERO,
                tp_commission=_ZERO,
            ),
        )

    od_commission = _ZERO
    if rate > 0 and details.od_premium > 0:
        od_commission = _percent_of(details.od_premium, rate)

    return RateCalculation(
        commission_amount=od_commission,
        rate_used=rate,
        total_rate=rate,
        breakdown=CommissionBreakdown(
            base_commission=od_commission,
            od_commission=od_commission,
            tp_commission=_ZERO,
        ),
    )


def _calculate_life(row: PayoutRow, policy: PolicyDetails) -> RateCalculation:
    rate, fixed_amount = row.base_terms(is_renewal=policy.is_renewal)
    details = policy.details if isinstance(policy.details, LifeDetails) else LifeDetails()

    effective_rate = rate
    if details.payment_frequency and rate > 0:
        effective_rate = rate * _frequency_multiplier(
            LIFE_FREQUENCY_MULTIPLIERS, details.payment_frequency
        )

    return _tiered(
        row,
        premium=policy.premium_amount,
        rate=effective_rate,
        fixed_amount=fixed_amount,
        tier_value=details.policy_term,
    )


def _calculate_health(row: PayoutRow, policy: PolicyDetails) -> RateCalculation:
    rate, fixed_amount = row.base_terms(is_renewal=policy.is_renewal)
    details = policy.details if isinstance(policy.details, HealthDetails) else HealthDetails()

    effective_rate = rate
    if details.payment_frequency and rate > 0:
        effective_rate = rate * _frequency_multiplier(
            HEALTH_FREQUENCY_MULTIPLIERS, details.payment_frequency
        )

    cap = HEALTH_RATE_CAPS.get(details.plan_type.strip().lower())
    if cap is not None and effective_rate > cap:
        effective_rate = cap

    commission = _amount_or_rate(policy.premium_amount, effective_rate, fixed_amount)
    return RateCalculation(
        commission_amount=commission,
        rate_used=effective_rate,
        total_rate=effective_rate,
        breakdown=CommissionBreakdown(base_commission=commission),
    )


def _calculate_commercial(row: PayoutRow, policy: PolicyDetails) -> RateCalculation:
    rate, fixed_amount = row.base_terms(is_renewal=policy.is_renewal)
    details = (
        policy.details if isinstance(policy.details, CommercialDetails) else CommercialDetails()
    )
    return _tiered(
        row,
        premium=policy.premium_amount,
        rate=rate,
        fixed_amount=fixed_amount,
        tier_value=details.sum_assured,
    )


def _calculate_generic(row: PayoutRow, policy: PolicyDetails) -> RateCalculation:
    """Base, reward and bonus rates summed over the gross premium."""

    rate, fixed_amount = row.base_terms(is_renewal=policy.is_renewal)
    total_rate = rate + row.reward_rate + row.bonus_rate
    commission = _amount_or_rate(policy.premium_amount, total_rate, fixed_amount)
    return RateCalculation(
        commission_amount=commission,
        rate_used=total_rate,
        total_rate=total_rate,
        breakdown=CommissionBreakdown(base_commission=commission),
    )


RATE_CALCULATORS: dict[LineOfBusiness, Callable[[PayoutRow, PolicyDetails], RateCalculation]] = {
    LineOfBusiness.MOTOR: _calculate_motor,
    LineOfBusiness.LIFE: _calculate_life,
    LineOfBusiness.HEALTH: _calculate_health,
    LineOfBusiness.COMMERCIAL: _calculate_commercial,
    LineOfBusiness.OTHER: _calculate_generic,
}


def calculate_rate(row: PayoutRow, policy: PolicyDetails) -> RateCalculation:
    """Compute the insurer commission for `policy` under the matched `row`.

    All arithmetic is exact Decimal; rounding happens only when the result is
    persisted or rendered.
    """

    return RATE_CALCULATORS[policy.line_of_business](row, policy)
