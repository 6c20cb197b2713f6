"""Price estimation and ME/EPP quota engine for public-procurement budgets."""

from .config import DEFAULT_LIMITS, LegalLimits
from .models import (
    AmendmentEdit,
    AmendmentField,
    BiddingModality,
    BudgetDocument,
    EstimationMethod,
    ItemGroup,
    PriceEntry,
    PriceSource,
    ProcurementMode,
    Quota,
)
from .price_logic import estimate
from .quotas import compute_quotas
from .recompute import recompute

__all__ = [
    "AmendmentEdit",
    "AmendmentField",
    "BiddingModality",
    "BudgetDocument",
    "DEFAULT_LIMITS",
    "EstimationMethod",
    "ItemGroup",
    "LegalLimits",
    "PriceEntry",
    "PriceSource",
    "ProcurementMode",
    "Quota",
    "compute_quotas",
    "estimate",
    "recompute",
]
