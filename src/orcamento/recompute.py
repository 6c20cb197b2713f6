"""
Derived-state recomputation for a budget document.

:func:`recompute` is run after every accepted mutation.  It derives, in
order, the unit estimates from the researched prices, the amendment
fields from the last amendment edit, and the quota splits from the unit
estimates.  A derived field is only written when its new value differs
from the stored one, so a second run over unchanged inputs returns the
very same document object.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Tuple

from .amendment import apply_amendment
from .config import DEFAULT_LIMITS, LegalLimits
from .models import BudgetDocument, ItemGroup, ProcurementMode
from .price_logic import item_estimate
from .quotas import compute_quotas

logger = logging.getLogger(__name__)


def _with_estimate(document: BudgetDocument, item: ItemGroup) -> ItemGroup:
    value = item_estimate(document.prices_for(item.id), document.inclusion, document.mode, document.method)
    if value is None or value == item.unit_estimate:
        return item
    logger.debug("estimate %s :: %s -> %s", item.id, item.unit_estimate, value)
    return replace(item, unit_estimate=value)


def _with_quotas(document: BudgetDocument, item: ItemGroup, limits: LegalLimits) -> ItemGroup:
    quotas = compute_quotas(item, document.mode, document.modality, limits)
    if quotas == item.quotas:
        return item
    logger.debug("quotas %s :: %s", item.id, [(quota.order, quota.quantity) for quota in quotas])
    return replace(item, quotas=quotas)


def recompute_estimates(document: BudgetDocument) -> BudgetDocument:
    items = tuple(_with_estimate(document, item) for item in document.items)
    return _swap_items(document, items)


def recompute_amendments(document: BudgetDocument) -> BudgetDocument:
    if document.mode != ProcurementMode.CONTRACT_AMENDMENT:
        return document
    factor = document.readjustment_factor
    items = tuple(apply_amendment(item, factor) for item in document.items)
    return _swap_items(document, items)


def recompute_quotas(document: BudgetDocument, limits: LegalLimits = DEFAULT_LIMITS) -> BudgetDocument:
    items = tuple(_with_quotas(document, item, limits) for item in document.items)
    return _swap_items(document, items)


def _swap_items(document: BudgetDocument, items: Tuple[ItemGroup, ...]) -> BudgetDocument:
    if all(new is old for new, old in zip(items, document.items)):
        return document
    return replace(document, items=items)


def recompute(document: BudgetDocument, limits: LegalLimits = DEFAULT_LIMITS) -> BudgetDocument:
    """Return ``document`` with every derived field brought up to date."""

    document = recompute_estimates(document)
    document = recompute_amendments(document)
    return recompute_quotas(document, limits)


__all__ = ["recompute", "recompute_amendments", "recompute_estimates", "recompute_quotas"]
