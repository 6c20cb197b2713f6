from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class ProcurementMode(str, Enum):
    """Kind of procurement the budget supports."""

    OPEN_BIDDING = "licitacao"
    REGISTRY_ADHESION = "adesao_ata"
    WAIVER = "dispensa_licitacao"
    CONTRACT_AMENDMENT = "aditivo_contratual"


class BiddingModality(str, Enum):
    ELECTRONIC_COMMON = "pregao_eletronico_comum"
    ELECTRONIC_PRICE_REGISTRY = "pregao_eletronico_rp"
    OTHER = "outra"


class EstimationMethod(str, Enum):
    LOWEST = "menor"
    MEAN = "media"
    MEDIAN = "mediana"


class PriceSource(str, Enum):
    """Origin of a researched price observation."""

    CATALOG = "simas"
    INVOICE_BASE = "nfe"
    NATIONAL_PORTAL = "pncp"
    SPECIALIZED_MEDIA = "siteEspecializado"
    SIMILAR_CONTRACT = "contratacaoSimilar"
    DIRECT_QUOTE = "direta"
    REGISTRY = "ata"


class AmendmentField(str, Enum):
    PERCENT = "percent"
    QUANTITY = "quantity"
    VALUE = "value"


RESERVED_QUOTA_ID = "cota_reservada"
OPEN_QUOTA_ID = "cota_ampla"
RESERVED_QUOTA_LABEL = "COTA RESERVADA ME/EPP"
OPEN_QUOTA_LABEL = "AMPLA CONCORRÊNCIA"


@dataclass(frozen=True)
class Quota:
    """One legal split of an item's quantity."""

    id: str
    order: str
    label: str
    quantity: float


@dataclass(frozen=True)
class AmendmentEdit:
    """The amendment representation the user typed last; the other two derive from it."""

    field: AmendmentField
    value: float


@dataclass(frozen=True)
class PriceEntry:
    id: str
    source: PriceSource
    raw_value: str = ""


@dataclass(frozen=True)
class ItemGroup:
    """One procurable line item, optionally part of a lot."""

    id: str
    item_number: str = ""
    description: str = ""
    unit: str = ""
    catalog_code: str = ""
    lot_id: Optional[str] = None
    total_quantity: float = 0.0
    unit_estimate: float = 0.0
    quotas: Tuple[Quota, ...] = ()
    amendment_edit: Optional[AmendmentEdit] = None
    amendment_percent: Optional[float] = None
    amendment_quantity: Optional[float] = None
    amendment_value: Optional[float] = None


@dataclass(frozen=True)
class Supplier:
    """Supplier consulted through direct price research."""

    id: str
    name: str
    justification: str
    meets_requirements: Optional[bool] = None


@dataclass(frozen=True)
class Signatory:
    name: str = ""
    call_sign: str = ""
    rank: str = ""
    role: str = ""


@dataclass(frozen=True)
class BudgetDocument:
    """Whole state of one budget edit session.

    ``prices`` maps an item id to its researched price entries and
    ``inclusion`` maps a price id to whether it takes part in aggregation
    (absent means included).  Derived fields on the items (``unit_estimate``
    outside contract amendments, ``quotas`` and the derived amendment
    fields) are rebuilt by :func:`orcamento.recompute.recompute`.
    """

    city: str = ""
    date: str = ""
    pae: str = ""
    mode: ProcurementMode = ProcurementMode.OPEN_BIDDING
    modality: BiddingModality = BiddingModality.ELECTRONIC_COMMON
    method: Optional[EstimationMethod] = None
    items: Tuple[ItemGroup, ...] = ()
    prices: Dict[str, Tuple[PriceEntry, ...]] = field(default_factory=dict)
    inclusion: Dict[str, bool] = field(default_factory=dict)
    research_sources: Tuple[str, ...] = (PriceSource.DIRECT_QUOTE.value,)
    absent_source_justification: str = ""
    direct_research_justification: str = ""
    suppliers: Tuple[Supplier, ...] = ()
    prices_discarded: bool = False
    discard_justification: str = ""
    registry_number: str = ""
    registry_year: str = ""
    registry_agency: str = ""
    registry_state: str = ""
    contract_number: str = ""
    contract_year: str = ""
    readjustment_declared: bool = False
    readjustment_percent: float = 0.0
    readjustment_index: str = ""
    signatories: Tuple[Signatory, ...] = (Signatory(), Signatory())

    def item(self, item_id: str) -> Optional[ItemGroup]:
        for candidate in self.items:
            if candidate.id == item_id:
                return candidate
        return None

    def prices_for(self, item_id: str) -> Tuple[PriceEntry, ...]:
        return self.prices.get(item_id, ())

    def is_included(self, price_id: str) -> bool:
        return self.inclusion.get(price_id, True)

    @property
    def readjustment_factor(self) -> float:
        if self.readjustment_declared and self.readjustment_percent:
            return 1.0 + self.readjustment_percent / 100.0
        return 1.0


__all__ = [
    "AmendmentEdit",
    "AmendmentField",
    "BiddingModality",
    "BudgetDocument",
    "EstimationMethod",
    "ItemGroup",
    "OPEN_QUOTA_ID",
    "OPEN_QUOTA_LABEL",
    "PriceEntry",
    "PriceSource",
    "ProcurementMode",
    "Quota",
    "RESERVED_QUOTA_ID",
    "RESERVED_QUOTA_LABEL",
    "Signatory",
    "Supplier",
]
