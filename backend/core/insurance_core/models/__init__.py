from .insurer import Insurer
from .policy import Policy
from .product import InsuranceProduct

__all__ = [
    "Insurer",
    "InsuranceProduct",
    "Policy",
]
