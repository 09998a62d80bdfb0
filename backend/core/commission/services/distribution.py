from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Callable, Sequence

from django.conf import settings

from commission.services.types import (
    ChannelPartnerTerms,
    ChannelType,
    Distribution,
    RemainderTarget,
    round_money,
    to_decimal,
)


_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

PercentageStep = tuple[str, Callable[[ChannelPartnerTerms], object]]


def _setting_percentage(name: str, default: int) -> Decimal:
    return to_decimal(getattr(settings, name, default), field=name)


def _default_step(setting_name: str, default: int) -> PercentageStep:
    return ("default", lambda _terms: _setting_percentage(setting_name, default))


def percentage_steps(channel: ChannelType) -> list[PercentageStep]:
    """Ordered percentage sources for a channel; the first non-None wins."""

    if channel is ChannelType.POSP:
        return [_default_step("COMMISSION_POSP_PERCENT", 60)]

    partner_steps: list[PercentageStep] = [
        ("override", lambda terms: terms.override_percentage),
        ("base", lambda terms: terms.base_percentage),
        ("tier", lambda terms: terms.tier_percentage),
    ]
    if channel is ChannelType.MISP:
        return partner_steps + [_default_step("COMMISSION_DEFAULT_MISP_PERCENT", 50)]
    return partner_steps + [_default_step("COMMISSION_DEFAULT_AGENT_PERCENT", 70)]


def resolve_first(
    steps: Sequence[PercentageStep], terms: ChannelPartnerTerms
) -> tuple[str, Decimal | None]:
    for source, getter in steps:
        value = getter(terms)
        if value is not None:
            return source, to_decimal(value, field=f"{source}_percentage")
    return "", None


def _direct(amount: Decimal) -> Distribution:
    return Distribution(
        channel=ChannelType.DIRECT,
        channel_share=_ZERO,
        remainder_target=RemainderTarget.BROKER,
        remainder=amount,
        percentage_source="direct",
    )


def distribute_commission(
    amount: Decimal,
    channel: ChannelType,
    terms: ChannelPartnerTerms | None,
) -> Distribution:
    """Split the insurer commission between the selling channel and one remainder.

    A channel whose partner record is missing (`terms is None`) is paid out
    like a direct sale: everything goes to the broker.
    """

    if channel is ChannelType.DIRECT or terms is None:
        return _direct(amount)

    if channel is ChannelType.EMPLOYEE:
        return Distribution(
            channel=channel,
            channel_share=amount,
            remainder_target=RemainderTarget.BROKER,
            remainder=_ZERO,
            percentage=_HUNDRED,
            percentage_source="employee",
            partner_id=terms.partner_id,
        )

    source, percentage = resolve_first(percentage_steps(channel), terms)
    channel_share = amount * percentage / _HUNDRED
    remainder = amount - channel_share

    reporting_employee_id = None
    remainder_target = RemainderTarget.BROKER
    if channel is not ChannelType.POSP and terms.remainder_employee_id:
        reporting_employee_id = terms.remainder_employee_id
        remainder_target = RemainderTarget.REPORTING_EMPLOYEE

    return Distribution(
        channel=channel,
        channel_share=channel_share,
        remainder_target=remainder_target,
        remainder=remainder,
        percentage=percentage,
        percentage_source=source,
        partner_id=terms.partner_id,
        reporting_employee_id=reporting_employee_id,
    )


def round_distribution(distribution: Distribution) -> Distribution:
    """Round to cents, deriving the remainder so the shares still sum exactly."""

    total = round_money(distribution.total)
    channel_share = round_money(distribution.channel_share)
    return replace(distribution, channel_share=channel_share, remainder=total - channel_share)
