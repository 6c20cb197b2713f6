"""
Edit commands for a budget document.

Every command takes the current :class:`BudgetDocument`, applies one
whole-field replacement and returns a new, recomputed document.  Commands
that cannot apply (unknown ids, empty names) log a warning and return the
document unchanged.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import replace
from enum import Enum
from typing import Callable, Iterable, Optional, Type, TypeVar

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
    Signatory,
    Supplier,
)
from .money import normalize_price_text
from .project_meta import READJUSTMENT_INDICES, SIGNATORY_RANKS, lots_enabled, normalize_state
from .recompute import recompute

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

EDITABLE_ITEM_FIELDS = {"item_number", "description", "unit", "catalog_code"}


def _new_id() -> str:
    return uuid.uuid4().hex


def _coerce(enum_cls: Type[E], value: object) -> Optional[E]:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _finite(value: object) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _non_negative(value: object) -> float:
    number = _finite(value)
    if number is None or number < 0:
        return 0.0
    return number


def _update_item(
    document: BudgetDocument,
    item_id: str,
    change: Callable[[ItemGroup], ItemGroup],
    limits: LegalLimits,
) -> BudgetDocument:
    if document.item(item_id) is None:
        logger.warning("Unknown item %s; edit ignored", item_id)
        return document
    items = tuple(change(item) if item.id == item_id else item for item in document.items)
    return recompute(replace(document, items=items), limits)


def _update_prices(
    document: BudgetDocument,
    item_id: str,
    change: Callable[[PriceEntry], PriceEntry],
    price_id: str,
    limits: LegalLimits,
) -> BudgetDocument:
    entries = document.prices_for(item_id)
    if not any(entry.id == price_id for entry in entries):
        logger.warning("Unknown price %s for item %s; edit ignored", price_id, item_id)
        return document
    updated = tuple(change(entry) if entry.id == price_id else entry for entry in entries)
    if updated == entries:
        return document
    prices = dict(document.prices)
    prices[item_id] = updated
    return recompute(replace(document, prices=prices), limits)


# --- items -----------------------------------------------------------------


def add_item(
    document: BudgetDocument,
    *,
    item_id: Optional[str] = None,
    description: str = "",
    unit: str = "",
    quantity: float = 0.0,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    item = ItemGroup(
        id=item_id or _new_id(),
        item_number=str(len(document.items) + 1),
        description=description,
        unit=unit,
        total_quantity=_non_negative(quantity),
    )
    return recompute(replace(document, items=document.items + (item,)), limits)


def remove_item(document: BudgetDocument, item_id: str, limits: LegalLimits = DEFAULT_LIMITS) -> BudgetDocument:
    """Drop an item together with its price entries and their inclusion flags."""

    if document.item(item_id) is None:
        logger.warning("Unknown item %s; removal ignored", item_id)
        return document
    doomed = {entry.id for entry in document.prices_for(item_id)}
    prices = {key: value for key, value in document.prices.items() if key != item_id}
    inclusion = {key: value for key, value in document.inclusion.items() if key not in doomed}
    items = tuple(item for item in document.items if item.id != item_id)
    return recompute(replace(document, items=items, prices=prices, inclusion=inclusion), limits)


def update_item(
    document: BudgetDocument,
    item_id: str,
    limits: LegalLimits = DEFAULT_LIMITS,
    **fields: str,
) -> BudgetDocument:
    """Replace descriptive fields of an item (number, description, unit, catalog code)."""

    unknown = set(fields) - EDITABLE_ITEM_FIELDS
    if unknown:
        logger.warning("Fields %s are not user-editable; edit ignored", sorted(unknown))
        return document
    return _update_item(document, item_id, lambda item: replace(item, **fields), limits)


def set_quantity(
    document: BudgetDocument,
    item_id: str,
    quantity: float,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    value = _non_negative(quantity)
    return _update_item(document, item_id, lambda item: replace(item, total_quantity=value), limits)


def set_unit_estimate(
    document: BudgetDocument,
    item_id: str,
    value: float,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    """Set the contract unit price; only contract amendments take it from the user."""

    if document.mode != ProcurementMode.CONTRACT_AMENDMENT:
        logger.warning("Unit estimate is derived under %s; edit ignored", document.mode.value)
        return document
    price = _non_negative(value)
    return _update_item(document, item_id, lambda item: replace(item, unit_estimate=price), limits)


def set_amendment(
    document: BudgetDocument,
    item_id: str,
    field: AmendmentField | str,
    value: float,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    """Record the amendment as typed in one unit; the other two are derived by recompute."""

    edited = _coerce(AmendmentField, field)
    if edited is None:
        logger.warning("Unknown amendment field %s; edit ignored", field)
        return document
    number = _finite(value)
    if number is None:
        logger.warning("Amendment value %r is not a finite number; edit ignored", value)
        return document
    edit = AmendmentEdit(field=edited, value=number)
    return _update_item(document, item_id, lambda item: replace(item, amendment_edit=edit), limits)


# --- prices ----------------------------------------------------------------


def add_price(
    document: BudgetDocument,
    item_id: str,
    source: PriceSource | str,
    raw_value: str = "",
    *,
    price_id: Optional[str] = None,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    if document.item(item_id) is None:
        logger.warning("Unknown item %s; price not added", item_id)
        return document
    origin = _coerce(PriceSource, source)
    if origin is None:
        logger.warning("Unknown price source %s; price not added", source)
        return document
    entry = PriceEntry(id=price_id or _new_id(), source=origin, raw_value=raw_value)
    prices = dict(document.prices)
    prices[item_id] = document.prices_for(item_id) + (entry,)
    return recompute(replace(document, prices=prices), limits)


def set_price_value(
    document: BudgetDocument,
    item_id: str,
    price_id: str,
    raw_value: str,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    return _update_prices(document, item_id, lambda entry: replace(entry, raw_value=raw_value), price_id, limits)


def blur_price(
    document: BudgetDocument,
    item_id: str,
    price_id: str,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    """Reformat a price to the canonical ``1.234,56`` text once the user leaves the field."""

    return _update_prices(
        document,
        item_id,
        lambda entry: replace(entry, raw_value=normalize_price_text(entry.raw_value)),
        price_id,
        limits,
    )


def remove_price(
    document: BudgetDocument,
    item_id: str,
    price_id: str,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    entries = document.prices_for(item_id)
    if not any(entry.id == price_id for entry in entries):
        logger.warning("Unknown price %s for item %s; removal ignored", price_id, item_id)
        return document
    prices = dict(document.prices)
    prices[item_id] = tuple(entry for entry in entries if entry.id != price_id)
    inclusion = {key: value for key, value in document.inclusion.items() if key != price_id}
    return recompute(replace(document, prices=prices, inclusion=inclusion), limits)


def set_inclusion(
    document: BudgetDocument,
    price_id: str,
    included: bool,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    inclusion = dict(document.inclusion)
    inclusion[price_id] = bool(included)
    return recompute(replace(document, inclusion=inclusion), limits)


# --- document level --------------------------------------------------------


def set_method(
    document: BudgetDocument,
    method: EstimationMethod | str | None,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    chosen = None if method in (None, "") else _coerce(EstimationMethod, method)
    if method not in (None, "") and chosen is None:
        logger.warning("Unknown estimation method %s; edit ignored", method)
        return document
    return recompute(replace(document, method=chosen), limits)


def set_mode(
    document: BudgetDocument,
    mode: ProcurementMode | str,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    chosen = _coerce(ProcurementMode, mode)
    if chosen is None:
        logger.warning("Unknown procurement mode %s; edit ignored", mode)
        return document
    return recompute(replace(document, mode=chosen), limits)


def set_modality(
    document: BudgetDocument,
    modality: BiddingModality | str,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    chosen = _coerce(BiddingModality, modality)
    if chosen is None:
        logger.warning("Unknown bidding modality %s; edit ignored", modality)
        return document
    return recompute(replace(document, modality=chosen), limits)


def set_readjustment(
    document: BudgetDocument,
    declared: bool,
    percent: float = 0.0,
    index: str = "",
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    rate = _finite(percent or 0.0)
    if rate is None:
        logger.warning("Readjustment percent %r is not a finite number; edit ignored", percent)
        return document
    if index and index not in READJUSTMENT_INDICES:
        logger.warning("Unknown readjustment index %s; edit ignored", index)
        return document
    updated = replace(
        document,
        readjustment_declared=bool(declared),
        readjustment_percent=rate,
        readjustment_index=index,
    )
    return recompute(updated, limits)


def set_registry(
    document: BudgetDocument,
    number: str = "",
    year: str = "",
    agency: str = "",
    state: str = "",
) -> BudgetDocument:
    """Record the price-registry record (ata) being adhered to; ``state`` accepts a code or a name."""

    code = normalize_state(state) if state else ""
    if code is None:
        logger.warning("Unknown state %s; registry edit ignored", state)
        return document
    return replace(
        document,
        registry_number=number.strip(),
        registry_year=year.strip(),
        registry_agency=agency.strip(),
        registry_state=code,
    )


def set_signatory(
    document: BudgetDocument,
    position: int,
    *,
    name: str = "",
    call_sign: str = "",
    rank: str = "",
    role: str = "",
) -> BudgetDocument:
    if not 0 <= position < len(document.signatories):
        logger.warning("No signatory at position %s", position)
        return document
    if rank and rank not in SIGNATORY_RANKS:
        logger.warning("Unknown rank %s; signatory edit ignored", rank)
        return document
    signatory = Signatory(name=name.strip(), call_sign=call_sign.strip(), rank=rank, role=role.strip())
    signatories = tuple(
        signatory if idx == position else current for idx, current in enumerate(document.signatories)
    )
    return replace(document, signatories=signatories)


def set_research_sources(
    document: BudgetDocument,
    sources: Iterable[str],
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    chosen = tuple(dict.fromkeys(str(source) for source in sources))
    return recompute(replace(document, research_sources=chosen), limits)


# --- lots ------------------------------------------------------------------


def group_into_lot(
    document: BudgetDocument,
    item_ids: Iterable[str],
    lot_id: str,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    if not lots_enabled(document.mode):
        logger.warning("Lots are not available under %s; grouping ignored", document.mode.value)
        return document
    selected = set(item_ids)
    name = (lot_id or "").strip()
    if not selected:
        logger.warning("No items selected for grouping")
        return document
    if not name:
        logger.warning("Lot name is empty; grouping ignored")
        return document
    items = tuple(replace(item, lot_id=name) if item.id in selected else item for item in document.items)
    return recompute(replace(document, items=items), limits)


def ungroup(
    document: BudgetDocument,
    item_ids: Iterable[str],
    limits: LegalLimits = DEFAULT_LIMITS,
) -> BudgetDocument:
    selected = set(item_ids)
    if not selected:
        logger.warning("No items selected for ungrouping")
        return document
    items = tuple(replace(item, lot_id=None) if item.id in selected else item for item in document.items)
    return recompute(replace(document, items=items), limits)


# --- direct suppliers ------------------------------------------------------


def add_supplier(
    document: BudgetDocument,
    name: str,
    justification: str,
    *,
    supplier_id: Optional[str] = None,
) -> BudgetDocument:
    if not name.strip() or not justification.strip():
        logger.warning("Supplier needs both a name and a justification")
        return document
    supplier = Supplier(id=supplier_id or _new_id(), name=name.strip(), justification=justification.strip())
    return replace(document, suppliers=document.suppliers + (supplier,))


def remove_supplier(document: BudgetDocument, supplier_id: str) -> BudgetDocument:
    return replace(document, suppliers=tuple(s for s in document.suppliers if s.id != supplier_id))


def set_supplier_requirements(document: BudgetDocument, supplier_id: str, meets: Optional[bool]) -> BudgetDocument:
    suppliers = tuple(
        replace(s, meets_requirements=meets) if s.id == supplier_id else s for s in document.suppliers
    )
    return replace(document, suppliers=suppliers)


__all__ = [
    "add_item",
    "add_price",
    "add_supplier",
    "blur_price",
    "group_into_lot",
    "remove_item",
    "remove_price",
    "remove_supplier",
    "set_amendment",
    "set_inclusion",
    "set_method",
    "set_modality",
    "set_mode",
    "set_price_value",
    "set_quantity",
    "set_readjustment",
    "set_registry",
    "set_research_sources",
    "set_signatory",
    "set_supplier_requirements",
    "set_unit_estimate",
    "ungroup",
    "update_item",
]
