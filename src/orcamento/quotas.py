"""Reserved-quota split for small and micro enterprises (ME/EPP) in open bidding."""

from __future__ import annotations

import math
from typing import List, Tuple

from .config import DEFAULT_LIMITS, LegalLimits
from .models import (
    OPEN_QUOTA_ID,
    OPEN_QUOTA_LABEL,
    RESERVED_QUOTA_ID,
    RESERVED_QUOTA_LABEL,
    BiddingModality,
    ItemGroup,
    ProcurementMode,
    Quota,
)


def item_total_value(item: ItemGroup) -> float:
    return item.unit_estimate * item.total_quantity


def reserved_quantity(
    unit_estimate: float,
    total_quantity: float,
    modality: BiddingModality,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> int:
    """Quantity set aside for ME/EPP bidders, before the exemption threshold is considered."""

    if modality == BiddingModality.ELECTRONIC_COMMON:
        return int(math.floor(total_quantity * limits.reserved_quota_share))
    if modality == BiddingModality.ELECTRONIC_PRICE_REGISTRY:
        total_value = unit_estimate * total_quantity
        reserved_value = min(total_value * limits.reserved_quota_share, limits.reserved_quota_value_cap)
        if unit_estimate <= 0:
            return 0
        return int(math.floor(reserved_value / unit_estimate))
    return 0


def _split(reserved: int, total_quantity: float) -> Tuple[Quota, ...]:
    quotas: List[Quota] = []
    open_quantity = total_quantity - reserved
    if reserved > 0:
        quotas.append(Quota(id=RESERVED_QUOTA_ID, order="1.1", label=RESERVED_QUOTA_LABEL, quantity=float(reserved)))
    if open_quantity > 0:
        quotas.append(Quota(id=OPEN_QUOTA_ID, order="1.2", label=OPEN_QUOTA_LABEL, quantity=float(open_quantity)))
    return tuple(quotas)


def compute_quotas(
    item: ItemGroup,
    mode: ProcurementMode,
    modality: BiddingModality,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> Tuple[Quota, ...]:
    """Quota split for ``item``; empty when no split rule applies.

    Only open bidding splits quantities, and only while the item's total
    value stays within the exemption threshold.
    """

    if mode != ProcurementMode.OPEN_BIDDING:
        return ()
    if item_total_value(item) > limits.quota_exemption_threshold:
        return ()
    if modality not in (BiddingModality.ELECTRONIC_COMMON, BiddingModality.ELECTRONIC_PRICE_REGISTRY):
        return ()
    reserved = reserved_quantity(item.unit_estimate, item.total_quantity, modality, limits)
    return _split(reserved, item.total_quantity)


__all__ = ["compute_quotas", "item_total_value", "reserved_quantity"]
