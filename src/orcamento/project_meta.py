"""
Shared reference choices for budget inputs (research sources, states, indices, lots).
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import ItemGroup, PriceSource, ProcurementMode

# Keep tuple structure to preserve order for display
SOURCE_CHOICES: Tuple[Tuple[PriceSource, str], ...] = (
    (PriceSource.CATALOG, "Simas"),
    (PriceSource.INVOICE_BASE, "Base Nacional de Notas fiscais Eletrônicas"),
    (PriceSource.NATIONAL_PORTAL, "Portal Nacional de Compras Públicas - PNCP"),
    (PriceSource.SPECIALIZED_MEDIA, "Mídia especializada"),
    (PriceSource.SIMILAR_CONTRACT, "Contratações Similares feitas pela administração pública"),
    (PriceSource.DIRECT_QUOTE, "Pesquisa direta com fornecedor"),
)
REGISTRY_SOURCE_LABEL = "Preço da Ata de SRP"

SOURCE_LABELS: Dict[str, str] = {source.value: label for source, label in SOURCE_CHOICES}
SOURCE_LABELS[PriceSource.REGISTRY.value] = REGISTRY_SOURCE_LABEL

STATE_CHOICES: Tuple[Tuple[str, str], ...] = (
    ("AC", "Acre"),
    ("AL", "Alagoas"),
    ("AP", "Amapá"),
    ("AM", "Amazonas"),
    ("BA", "Bahia"),
    ("CE", "Ceará"),
    ("DF", "Distrito Federal"),
    ("ES", "Espírito Santo"),
    ("GO", "Goiás"),
    ("MA", "Maranhão"),
    ("MT", "Mato Grosso"),
    ("MS", "Mato Grosso do Sul"),
    ("MG", "Minas Gerais"),
    ("PA", "Pará"),
    ("PB", "Paraíba"),
    ("PR", "Paraná"),
    ("PE", "Pernambuco"),
    ("PI", "Piauí"),
    ("RJ", "Rio de Janeiro"),
    ("RN", "Rio Grande do Norte"),
    ("RS", "Rio Grande do Sul"),
    ("RO", "Rondônia"),
    ("RR", "Roraima"),
    ("SC", "Santa Catarina"),
    ("SP", "São Paulo"),
    ("SE", "Sergipe"),
    ("TO", "Tocantins"),
)

STATE_NAME_MAP = {code: name for code, name in STATE_CHOICES}

READJUSTMENT_INDICES: Tuple[str, ...] = ("IPCA", "IGP-M", "INPC", "IPC-Fipe", "Outro")

SIGNATORY_RANKS: Tuple[str, ...] = (
    "Vol. Civil",
    "SD QBM", "CB QBM", "3° SGT QBM", "2° SGT QBM", "1° SGT QBM", "ST QBM",
    "2° TEN QOBM", "2° TEN QOABM", "1° TEN QOBM", "1° TEN QOABM",
    "CAP QOBM", "CAP QOABM", "MAJ QOBM", "MAJ QOABM",
    "TEN CEL QOBM", "TEN CEL QOCBM", "TEN CEL QOSBM",
    "CEL QOCBM", "CEL QOSBM", "CEL QOBM",
)

_FIRST_NUMBER = re.compile(r"\d+")


def source_label(source: str) -> str:
    return SOURCE_LABELS.get(str(source), str(source))


def available_sources(selected: Iterable[str], mode: ProcurementMode) -> List[Tuple[str, str]]:
    """Return ``(code, label)`` pairs offered when adding a price to an item.

    Only sources the user marked as consulted are offered; registry
    adhesion always offers the registry record price as well.
    """

    chosen = {str(value) for value in selected}
    options = [(source.value, label) for source, label in SOURCE_CHOICES if source.value in chosen]
    if mode == ProcurementMode.REGISTRY_ADHESION:
        options.append((PriceSource.REGISTRY.value, REGISTRY_SOURCE_LABEL))
    return options


def is_exclusive_direct_research(selected: Sequence[str]) -> bool:
    """Direct supplier quotes as the only source require extra justification."""

    return list(selected) == [PriceSource.DIRECT_QUOTE.value]


def normalize_state(value: str) -> Optional[str]:
    """
    Normalize a state abbreviation or name into its two-letter code.

    Returns ``None`` if the value cannot be mapped.
    """

    if not value:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    if candidate.upper() in STATE_NAME_MAP:
        return candidate.upper()
    lowered = candidate.lower()
    for code, name in STATE_CHOICES:
        if name.lower() == lowered:
            return code
    return None


def lots_enabled(mode: ProcurementMode) -> bool:
    return mode not in (ProcurementMode.REGISTRY_ADHESION, ProcurementMode.CONTRACT_AMENDMENT)


def _lot_sort_key(lot_id: str) -> tuple:
    match = _FIRST_NUMBER.search(lot_id)
    if match:
        return (0, int(match.group()), lot_id)
    return (1, 0, lot_id)


def lot_layout(items: Sequence[ItemGroup]) -> Tuple[List[str], Dict[str, List[ItemGroup]], List[ItemGroup]]:
    """Group items by lot for display.

    Returns ``(sorted_lot_ids, lots, ungrouped)``; lots are ordered by the
    first number in their name, and by name when they carry none.
    """

    lots: Dict[str, List[ItemGroup]] = {}
    ungrouped: List[ItemGroup] = []
    for item in items:
        if item.lot_id:
            lots.setdefault(item.lot_id, []).append(item)
        else:
            ungrouped.append(item)
    return sorted(lots, key=_lot_sort_key), lots, ungrouped


__all__ = [
    "READJUSTMENT_INDICES",
    "SIGNATORY_RANKS",
    "SOURCE_CHOICES",
    "SOURCE_LABELS",
    "STATE_CHOICES",
    "available_sources",
    "is_exclusive_direct_research",
    "lot_layout",
    "lots_enabled",
    "normalize_state",
    "source_label",
]
