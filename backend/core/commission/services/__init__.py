from commission.services.calculator import calculate_rate
from commission.services.distribution import distribute_commission, resolve_first
from commission.services.types import (
    ChannelPartnerTerms,
    ChannelType,
    CommissionEngineError,
    CommissionLookupError,
    CommissionOutcome,
    CommissionRuleError,
    CommissionStatus,
    Distribution,
    LineOfBusiness,
    NoRuleFound,
    PayoutRow,
    PolicyDetails,
)

__all__ = [
    "ChannelPartnerTerms",
    "ChannelType",
    "CommissionEngineError",
    "CommissionLookupError",
    "CommissionOutcome",
    "CommissionRuleError",
    "CommissionStatus",
    "Distribution",
    "LineOfBusiness",
    "NoRuleFound",
    "PayoutRow",
    "PolicyDetails",
    "calculate_rate",
    "distribute_commission",
    "resolve_first",
]
