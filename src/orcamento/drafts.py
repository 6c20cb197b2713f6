"""Draft persistence: plain JSON-compatible snapshots of a budget document."""
from __future__ import annotations

import json
import logging
import math
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from jsonschema import Draft7Validator

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
    Signatory,
    Supplier,
)
from .project_meta import READJUSTMENT_INDICES, SIGNATORY_RANKS, normalize_state
from .recompute import recompute

DRAFT_VERSION = 1
SCHEMA_PATH = Path(__file__).resolve().parent / "schema" / "draft.schema.json"
LOGGER = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _validator() -> Draft7Validator:
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    return Draft7Validator(schema)


def validate_draft(raw: Dict[str, Any]) -> None:
    """Raise :class:`jsonschema.ValidationError` when ``raw`` is not a valid draft."""

    _validator().validate(raw)


def _quota_to_dict(quota: Quota) -> dict:
    return {"id": quota.id, "order": quota.order, "label": quota.label, "quantity": quota.quantity}


def _item_to_dict(item: ItemGroup, include_derived: bool) -> dict:
    data: Dict[str, Any] = {
        "id": item.id,
        "item_number": item.item_number,
        "description": item.description,
        "unit": item.unit,
        "catalog_code": item.catalog_code,
        "lot_id": item.lot_id,
        "total_quantity": item.total_quantity,
        "unit_estimate": item.unit_estimate,
        "amendment_edit": (
            {"field": item.amendment_edit.field.value, "value": item.amendment_edit.value}
            if item.amendment_edit
            else None
        ),
    }
    if include_derived:
        data["quotas"] = [_quota_to_dict(quota) for quota in item.quotas]
        data["amendment_percent"] = item.amendment_percent
        data["amendment_quantity"] = item.amendment_quantity
        data["amendment_value"] = item.amendment_value
    return data


def document_to_dict(document: BudgetDocument, include_derived: bool = True) -> dict:
    """Snapshot ``document`` as plain data.

    With ``include_derived=False`` the quota splits and the derived
    amendment fields are left out; :func:`document_from_dict` rebuilds
    them.  The unit estimate is always kept because contract amendments
    take it from the user.
    """

    return {
        "version": DRAFT_VERSION,
        "city": document.city,
        "date": document.date,
        "pae": document.pae,
        "mode": document.mode.value,
        "modality": document.modality.value,
        "method": document.method.value if document.method else None,
        "items": [_item_to_dict(item, include_derived) for item in document.items],
        "prices": {
            item_id: [{"id": e.id, "source": e.source.value, "raw_value": e.raw_value} for e in entries]
            for item_id, entries in document.prices.items()
        },
        "inclusion": dict(document.inclusion),
        "research_sources": list(document.research_sources),
        "absent_source_justification": document.absent_source_justification,
        "direct_research_justification": document.direct_research_justification,
        "suppliers": [
            {
                "id": s.id,
                "name": s.name,
                "justification": s.justification,
                "meets_requirements": s.meets_requirements,
            }
            for s in document.suppliers
        ],
        "prices_discarded": document.prices_discarded,
        "discard_justification": document.discard_justification,
        "registry_number": document.registry_number,
        "registry_year": document.registry_year,
        "registry_agency": document.registry_agency,
        "registry_state": document.registry_state,
        "contract_number": document.contract_number,
        "contract_year": document.contract_year,
        "readjustment_declared": document.readjustment_declared,
        "readjustment_percent": document.readjustment_percent,
        "readjustment_index": document.readjustment_index,
        "signatories": [
            {"name": s.name, "call_sign": s.call_sign, "rank": s.rank, "role": s.role}
            for s in document.signatories
        ],
    }


def _finite(value: Any) -> Optional[float]:
    if value is None:
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _non_negative(value: Any) -> float:
    number = _finite(value)
    return number if number is not None and number > 0 else 0.0


def _item_from_dict(raw: dict) -> ItemGroup:
    edit_raw = raw.get("amendment_edit")
    edit = None
    if edit_raw:
        value = _finite(edit_raw["value"])
        if value is None:
            LOGGER.warning("Dropping non-finite amendment of item %s", raw["id"])
        else:
            edit = AmendmentEdit(field=AmendmentField(edit_raw["field"]), value=value)
    quotas = tuple(
        Quota(id=q["id"], order=q["order"], label=q["label"], quantity=float(q["quantity"]))
        for q in raw.get("quotas") or []
    )

    def _optional(key: str) -> Optional[float]:
        return _finite(raw.get(key))

    return ItemGroup(
        id=raw["id"],
        item_number=raw.get("item_number", ""),
        description=raw.get("description", ""),
        unit=raw.get("unit", ""),
        catalog_code=raw.get("catalog_code", ""),
        lot_id=raw.get("lot_id") or None,
        total_quantity=_non_negative(raw.get("total_quantity")),
        unit_estimate=_non_negative(raw.get("unit_estimate")),
        quotas=quotas,
        amendment_edit=edit,
        amendment_percent=_optional("amendment_percent"),
        amendment_quantity=_optional("amendment_quantity"),
        amendment_value=_optional("amendment_value"),
    )


def _known(value: Any, allowed: Sequence[str], label: str) -> str:
    text = str(value or "")
    if text and text not in allowed:
        LOGGER.warning("Clearing unknown %s %r", label, text)
        return ""
    return text


def _state_code(value: Any) -> str:
    text = str(value or "")
    if not text:
        return ""
    code = normalize_state(text)
    if code is None:
        LOGGER.warning("Clearing unknown registry state %r", text)
        return ""
    return code


def document_from_dict(raw: Dict[str, Any], limits: LegalLimits = DEFAULT_LIMITS) -> BudgetDocument:
    """Validate and rebuild a document from plain data, then recompute it once."""

    validate_draft(raw)
    items = tuple(_item_from_dict(entry) for entry in raw.get("items", []))
    known = {item.id for item in items}

    prices = {}
    for item_id, entries in (raw.get("prices") or {}).items():
        if item_id not in known:
            LOGGER.warning("Dropping %d price(s) of unknown item %s", len(entries), item_id)
            continue
        prices[item_id] = tuple(
            PriceEntry(id=e["id"], source=PriceSource(e["source"]), raw_value=e.get("raw_value", ""))
            for e in entries
        )
    price_ids = {entry.id for entries in prices.values() for entry in entries}
    inclusion = {key: bool(value) for key, value in (raw.get("inclusion") or {}).items() if key in price_ids}

    defaults = BudgetDocument()
    method_raw = raw.get("method")
    signatories = tuple(
        Signatory(
            name=s.get("name", ""),
            call_sign=s.get("call_sign", ""),
            rank=_known(s.get("rank"), SIGNATORY_RANKS, "signatory rank"),
            role=s.get("role", ""),
        )
        for s in raw.get("signatories") or []
    ) or defaults.signatories

    document = BudgetDocument(
        city=raw.get("city", ""),
        date=raw.get("date", ""),
        pae=raw.get("pae", ""),
        mode=ProcurementMode(raw.get("mode", defaults.mode.value)),
        modality=BiddingModality(raw.get("modality", defaults.modality.value)),
        method=EstimationMethod(method_raw) if method_raw else None,
        items=items,
        prices=prices,
        inclusion=inclusion,
        research_sources=tuple(raw.get("research_sources", defaults.research_sources)),
        absent_source_justification=raw.get("absent_source_justification", ""),
        direct_research_justification=raw.get("direct_research_justification", ""),
        suppliers=tuple(
            Supplier(
                id=s["id"],
                name=s["name"],
                justification=s.get("justification", ""),
                meets_requirements=s.get("meets_requirements"),
            )
            for s in raw.get("suppliers") or []
        ),
        prices_discarded=bool(raw.get("prices_discarded", False)),
        discard_justification=raw.get("discard_justification", ""),
        registry_number=raw.get("registry_number", ""),
        registry_year=raw.get("registry_year", ""),
        registry_agency=raw.get("registry_agency", ""),
        registry_state=_state_code(raw.get("registry_state")),
        contract_number=raw.get("contract_number", ""),
        contract_year=raw.get("contract_year", ""),
        readjustment_declared=bool(raw.get("readjustment_declared", False)),
        readjustment_percent=_finite(raw.get("readjustment_percent")) or 0.0,
        readjustment_index=_known(raw.get("readjustment_index"), READJUSTMENT_INDICES, "readjustment index"),
        signatories=signatories,
    )
    return recompute(document, limits)


def save_draft(document: BudgetDocument, path: Path, include_derived: bool = True) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(document_to_dict(document, include_derived), f, indent=2, ensure_ascii=False)


def load_draft(path: Path, limits: LegalLimits = DEFAULT_LIMITS) -> BudgetDocument:
    if not path.exists():
        raise FileNotFoundError(f"Draft file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    return document_from_dict(raw, limits)


__all__ = [
    "DRAFT_VERSION",
    "document_from_dict",
    "document_to_dict",
    "load_draft",
    "save_draft",
    "validate_draft",
]
