"""
Contract amendment ("aditivo contratual") calculations.

An amendment adds scope to an existing contract item.  The user states it
in one of three units (percent of the contracted quantity, added quantity,
or added value in BRL); the last edited unit is kept as an
:class:`~orcamento.models.AmendmentEdit` and the other two are derived from
it on every recompute, using the contract unit price readjusted by the
declared readjustment percentage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional

import numpy as np

from .config import DEFAULT_LIMITS, LegalLimits
from .models import AmendmentEdit, AmendmentField, BudgetDocument, ItemGroup, ProcurementMode
from .price_logic import has_valid_prices, included_entries, market_entries, market_mean

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AmendmentSummaryRow:
    item_id: str
    item_number: str
    description: str
    quantity: float
    contract_unit_price: float
    base_total: float
    amendment_percent: Optional[float]
    amendment_quantity: Optional[float]
    amendment_value: Optional[float]
    new_global_value: float


@dataclass(frozen=True)
class ComparisonRow:
    item_id: str
    item_number: str
    description: str
    new_unit_price: float
    market_mean: float
    difference: float
    has_market_data: bool

    @property
    def above_market(self) -> bool:
        return self.difference > 0


def adjusted_unit_price(base_unit_price: float, readjustment_factor: float) -> float:
    return base_unit_price * readjustment_factor


def _usable(*values: float) -> bool:
    return all(np.isfinite(value) and value > 0 for value in values)


def derive_amendment(
    edit: AmendmentEdit,
    total_quantity: float,
    base_unit_price: float,
    readjustment_factor: float = 1.0,
) -> tuple[Optional[float], Optional[float], Optional[float]]:
    """Return ``(percent, quantity, value)`` derived from ``edit``.

    When the contract base cannot support a derivation (no quantity or no
    positive price) only the edited representation is returned; the other
    two are ``None``.
    """

    unit = adjusted_unit_price(base_unit_price, readjustment_factor)
    total_base = unit * total_quantity
    value = float(edit.value)

    if not _usable(total_quantity, unit, total_base):
        return (
            value if edit.field == AmendmentField.PERCENT else None,
            value if edit.field == AmendmentField.QUANTITY else None,
            value if edit.field == AmendmentField.VALUE else None,
        )

    if edit.field == AmendmentField.PERCENT:
        return value, total_quantity * (value / 100), total_base * (value / 100)
    if edit.field == AmendmentField.QUANTITY:
        return (value / total_quantity) * 100, value, value * unit
    return (value / total_base) * 100, value / unit, value


def apply_amendment(item: ItemGroup, readjustment_factor: float = 1.0) -> ItemGroup:
    """Rebuild the three amendment fields of ``item`` from its last edit.

    Returns ``item`` itself when nothing changes.
    """

    if item.amendment_edit is None:
        return item
    percent, quantity, value = derive_amendment(
        item.amendment_edit,
        item.total_quantity,
        item.unit_estimate,
        readjustment_factor,
    )
    if (percent, quantity, value) == (item.amendment_percent, item.amendment_quantity, item.amendment_value):
        return item
    logger.debug("amendment %s :: pct=%s qty=%s value=%s", item.id, percent, quantity, value)
    return replace(item, amendment_percent=percent, amendment_quantity=quantity, amendment_value=value)


def needs_market_research(document: BudgetDocument, limits: LegalLimits = DEFAULT_LIMITS) -> bool:
    """An amendment needs a market comparison when readjusted or above the percent threshold."""

    if document.mode != ProcurementMode.CONTRACT_AMENDMENT:
        return False
    if document.readjustment_declared:
        return True
    threshold = limits.amendment_research_threshold_pct
    return any((item.amendment_percent or 0.0) > threshold for item in document.items)


def amendment_summary(document: BudgetDocument) -> List[AmendmentSummaryRow]:
    """Per-item amendment table.

    The base total is the historical contract value (no readjustment); the
    new global value adds the amendment value on top of it.
    """

    rows: List[AmendmentSummaryRow] = []
    for item in document.items:
        base_total = item.unit_estimate * item.total_quantity
        rows.append(
            AmendmentSummaryRow(
                item_id=item.id,
                item_number=item.item_number,
                description=item.description,
                quantity=item.total_quantity,
                contract_unit_price=item.unit_estimate,
                base_total=base_total,
                amendment_percent=item.amendment_percent,
                amendment_quantity=item.amendment_quantity,
                amendment_value=item.amendment_value,
                new_global_value=base_total + (item.amendment_value or 0.0),
            )
        )
    return rows


def market_comparison(document: BudgetDocument, limits: LegalLimits = DEFAULT_LIMITS) -> List[ComparisonRow]:
    """New contract unit price versus the mean of included market prices.

    Informational only: empty unless :func:`needs_market_research` holds,
    and it never feeds back into the items' unit estimates.
    """

    if not needs_market_research(document, limits):
        return []

    factor = document.readjustment_factor
    rows: List[ComparisonRow] = []
    for item in document.items:
        adjusted_total = adjusted_unit_price(item.unit_estimate, factor) * item.total_quantity
        new_global = adjusted_total + (item.amendment_value or 0.0)
        new_unit = new_global / item.total_quantity if item.total_quantity > 0 else 0.0
        entries = document.prices_for(item.id)
        mean = market_mean(entries, document.inclusion)
        rows.append(
            ComparisonRow(
                item_id=item.id,
                item_number=item.item_number,
                description=item.description,
                new_unit_price=new_unit,
                market_mean=mean,
                difference=new_unit - mean,
                has_market_data=has_valid_prices(market_entries(included_entries(entries, document.inclusion))),
            )
        )
    return rows


__all__ = [
    "AmendmentSummaryRow",
    "ComparisonRow",
    "adjusted_unit_price",
    "amendment_summary",
    "apply_amendment",
    "derive_amendment",
    "market_comparison",
    "needs_market_research",
]
