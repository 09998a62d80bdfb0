"""Value types shared by the commission resolver, calculator and distribution engine.

Everything here is immutable and free of ORM access so the calculation core
can be exercised with plain values.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Mapping, Union


_ZERO = Decimal("0")
_CENT = Decimal("0.01")


class CommissionEngineError(RuntimeError):
    """Base error for commission engine failures."""


class CommissionRuleError(CommissionEngineError):
    """Raised when a rule or grid row carries malformed numeric data."""


class NoRuleFound(CommissionEngineError):
    """Raised by the resolver when no active rule or grid row matches."""


class CommissionLookupError(CommissionEngineError):
    """Raised when rule storage cannot be read."""


def to_decimal(value: Any, *, field: str, default: Decimal | None = _ZERO) -> Decimal | None:
    """Coerce `value` into a Decimal; blanks yield `default`."""

    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise CommissionRuleError(f"Invalid decimal for {field}.") from exc


def round_money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def as_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise CommissionRuleError(f"Invalid date value: {value!r}.") from exc


class LineOfBusiness(enum.Enum):
    MOTOR = "Motor"
    LIFE = "Life"
    HEALTH = "Health"
    COMMERCIAL = "Commercial"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> "LineOfBusiness":
        """Map free-text line names onto the closed set; unknown text is OTHER."""

        return _LINE_ALIASES.get(str(value or "").strip().lower(), cls.OTHER)


_LINE_ALIASES = {
    "motor": LineOfBusiness.MOTOR,
    "auto": LineOfBusiness.MOTOR,
    "life": LineOfBusiness.LIFE,
    "health": LineOfBusiness.HEALTH,
    "commercial": LineOfBusiness.COMMERCIAL,
}


class ChannelType(enum.Enum):
    EMPLOYEE = "employee"
    AGENT = "agent"
    MISP = "misp"
    POSP = "posp"
    DIRECT = "direct"

    @classmethod
    def parse(cls, value: Any) -> "ChannelType":
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.DIRECT


class RemainderTarget(enum.Enum):
    REPORTING_EMPLOYEE = "reporting_employee"
    BROKER = "broker"


class CommissionStatus(enum.Enum):
    CALCULATED = "CALCULATED"
    UNMATCHED = "UNMATCHED"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class MotorDetails:
    od_premium: Decimal = _ZERO
    tp_premium: Decimal = _ZERO
    vehicle_type: str = ""


@dataclass(frozen=True, slots=True)
class LifeDetails:
    policy_term: Decimal | None = None
    premium_payment_term: Decimal | None = None
    payment_frequency: str = ""


@dataclass(frozen=True, slots=True)
class HealthDetails:
    plan_type: str = ""
    payment_frequency: str = ""


@dataclass(frozen=True, slots=True)
class CommercialDetails:
    sum_assured: Decimal | None = None


LineDetails = Union[MotorDetails, LifeDetails, HealthDetails, CommercialDetails, None]


@dataclass(frozen=True, slots=True)
class PolicyDetails:
    """Snapshot of the policy attributes the engine reads."""

    line_of_business: LineOfBusiness
    line_label: str
    premium_amount: Decimal
    is_renewal: bool = False
    provider: str = ""
    product_id: int | None = None
    product_category: str = ""
    evaluation_date: date | None = None
    details: LineDetails = None

    @classmethod
    def build(
        cls,
        *,
        line_of_business: Any,
        premium_amount: Any,
        is_renewal: bool = False,
        provider: str = "",
        product_id: int | None = None,
        product_category: str = "",
        evaluation_date: Any = None,
        od_premium: Any = None,
        tp_premium: Any = None,
        vehicle_type: str = "",
        policy_term: Any = None,
        premium_payment_term: Any = None,
        payment_frequency: str = "",
        plan_type: str = "",
        sum_assured: Any = None,
    ) -> "PolicyDetails":
        """Build the envelope and the detail record matching the line of business."""

        line = LineOfBusiness.parse(line_of_business)
        details: LineDetails = None
        if line is LineOfBusiness.MOTOR:
            details = MotorDetails(
                od_premium=to_decimal(od_premium, field="od_premium"),
                tp_premium=to_decimal(tp_premium, field="tp_premium"),
                vehicle_type=str(vehicle_type or ""),
            )
        elif line is LineOfBusiness.LIFE:
            details = LifeDetails(
                policy_term=to_decimal(policy_term, field="policy_term", default=None),
                premium_payment_term=to_decimal(
                    premium_payment_term, field="premium_payment_term", default=None
                ),
                payment_frequency=str(payment_frequency or ""),
            )
        elif line is LineOfBusiness.HEALTH:
            details = HealthDetails(
                plan_type=str(plan_type or ""),
                payment_frequency=str(payment_frequency or ""),
            )
        elif line is LineOfBusiness.COMMERCIAL:
            details = CommercialDetails(
                sum_assured=to_decimal(sum_assured, field="sum_assured", default=None),
            )

        return cls(
            line_of_business=line,
            line_label=str(line_of_business or "").strip(),
            premium_amount=to_decimal(premium_amount, field="premium_amount"),
            is_renewal=bool(is_renewal),
            provider=str(provider or "").strip(),
            product_id=product_id,
            product_category=str(product_category or "").strip(),
            evaluation_date=as_date(evaluation_date),
            details=details,
        )


@dataclass(frozen=True, slots=True)
class RateRange:
    min_value: Decimal
    max_value: Decimal | None
    commission_rate: Decimal
    commission_amount: Decimal

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "RateRange":
        if not isinstance(raw, Mapping):
            raise CommissionRuleError("Each rate range must be an object.")
        return cls(
            min_value=to_decimal(raw.get("min_value"), field="ranges.min_value"),
            max_value=to_decimal(raw.get("max_value"), field="ranges.max_value", default=None),
            commission_rate=to_decimal(raw.get("commission_rate"), field="ranges.commission_rate"),
            commission_amount=to_decimal(
                raw.get("commission_amount"), field="ranges.commission_amount"
            ),
        )

    def contains(self, value: Decimal) -> bool:
        # A zero max_value is treated as "no ceiling".
        return value >= self.min_value and (not self.max_value or value <= self.max_value)


@dataclass(frozen=True, slots=True)
class PayoutRow:
    """Table-independent view of a commission rule or payout grid row."""

    table: str
    row_id: int
    provider: str = ""
    product_type: str = ""
    secondary_type: str = ""
    product_id: int | None = None
    min_premium: Decimal | None = None
    max_premium: Decimal | None = None
    window_start: date | None = None
    window_end: date | None = None
    first_year_rate: Decimal = _ZERO
    first_year_amount: Decimal = _ZERO
    renewal_rate: Decimal = _ZERO
    renewal_amount: Decimal = _ZERO
    reward_rate: Decimal = _ZERO
    bonus_rate: Decimal = _ZERO
    ranges: tuple[RateRange, ...] = ()
    created_at: datetime | None = None

    def base_terms(self, *, is_renewal: bool) -> tuple[Decimal, Decimal]:
        """Return `(rate, fixed_amount)` for the first year or renewal."""

        if is_renewal:
            return self.renewal_rate, self.renewal_amount
        return self.first_year_rate, self.first_year_amount


@dataclass(frozen=True, slots=True)
class CommissionBreakdown:
    base_commission: Decimal
    tier_adjustment: Decimal | None = None
    od_commission: Decimal | None = None
    tp_commission: Decimal | None = None

    def as_dict(self) -> dict[str, str]:
        payload = {"baseCommission": self.base_commission}
        if self.tier_adjustment is not None:
            payload["tierAdjustment"] = self.tier_adjustment
        if self.od_commission is not None:
            payload["odCommission"] = self.od_commission
        if self.tp_commission is not None:
            payload["tpCommission"] = self.tp_commission
        return {key: str(round_money(value)) for key, value in payload.items()}


@dataclass(frozen=True, slots=True)
class RateCalculation:
    commission_amount: Decimal
    rate_used: Decimal
    total_rate: Decimal
    breakdown: CommissionBreakdown


@dataclass(frozen=True, slots=True)
class ChannelPartnerTerms:
    """Percentages and hierarchy links of a selling partner."""

    partner_id: int
    override_percentage: Decimal | None = None
    base_percentage: Decimal | None = None
    tier_percentage: Decimal | None = None
    reporting_employee_id: int | None = None
    employee_id: int | None = None

    @property
    def remainder_employee_id(self) -> int | None:
        return self.reporting_employee_id or self.employee_id


@dataclass(frozen=True, slots=True)
class Distribution:
    """One channel share plus one remainder going to a manager or the broker."""

    channel: ChannelType
    channel_share: Decimal
    remainder_target: RemainderTarget
    remainder: Decimal
    percentage: Decimal | None = None
    percentage_source: str = ""
    partner_id: int | None = None
    reporting_employee_id: int | None = None

    @property
    def total(self) -> Decimal:
        return self.channel_share + self.remainder

    def shares(self) -> dict[str, Decimal]:
        payload = {
            "agent_commission": _ZERO,
            "misp_commission": _ZERO,
            "employee_commission": _ZERO,
            "reporting_employee_commission": _ZERO,
            "broker_share": _ZERO,
        }
        channel_field = _CHANNEL_SHARE_FIELDS.get(self.channel)
        if channel_field is not None:
            payload[channel_field] = self.channel_share
        if self.remainder_target is RemainderTarget.REPORTING_EMPLOYEE:
            payload["reporting_employee_commission"] += self.remainder
        else:
            payload["broker_share"] += self.remainder
        return payload


# POSP payouts share the external-partner column with agents.
_CHANNEL_SHARE_FIELDS = {
    ChannelType.AGENT: "agent_commission",
    ChannelType.POSP: "agent_commission",
    ChannelType.MISP: "misp_commission",
    ChannelType.EMPLOYEE: "employee_commission",
}


@dataclass(frozen=True, slots=True)
class CommissionOutcome:
    """Full engine result for one policy."""

    status: CommissionStatus
    details: PolicyDetails
    channel: ChannelType
    row: PayoutRow | None = None
    calculation: RateCalculation | None = None
    distribution: Distribution | None = None
    error_message: str = ""
    policy_id: int | None = None

    @property
    def insurer_commission(self) -> Decimal:
        if self.calculation is None:
            return _ZERO
        return self.calculation.commission_amount

    @property
    def unmatched(self) -> bool:
        return self.status is CommissionStatus.UNMATCHED
