from commission.models.payout_grid import (
    CommissionRule,
    HealthPayoutGrid,
    LifePayoutGrid,
    MotorPayoutGrid,
    PayoutGridBase,
)
from commission.models.policy_commission import PolicyCommission

__all__ = [
    "PayoutGridBase",
    "MotorPayoutGrid",
    "HealthPayoutGrid",
    "LifePayoutGrid",
    "CommissionRule",
    "PolicyCommission",
]
