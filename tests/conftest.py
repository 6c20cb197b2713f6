from __future__ import annotations

from typing import Callable, Sequence, Tuple

import pytest

from orcamento.models import (
    BiddingModality,
    BudgetDocument,
    EstimationMethod,
    ItemGroup,
    PriceEntry,
    PriceSource,
    ProcurementMode,
)


PriceRow = Tuple[str, PriceSource, str]


@pytest.fixture
def document_factory() -> Callable[..., BudgetDocument]:
    """Build a document with one item ``i1`` priced by ``(price_id, source, raw_value)`` tuples."""

    def _create(
        prices: Sequence[PriceRow] = (),
        *,
        quantity: float = 10.0,
        unit_estimate: float = 0.0,
        mode: ProcurementMode = ProcurementMode.OPEN_BIDDING,
        modality: BiddingModality = BiddingModality.ELECTRONIC_COMMON,
        method: EstimationMethod | None = EstimationMethod.MEAN,
        **overrides,
    ) -> BudgetDocument:
        item = ItemGroup(
            id="i1",
            item_number="1",
            description="Mangueira de incêndio 1 1/2",
            unit="UN",
            total_quantity=quantity,
            unit_estimate=unit_estimate,
        )
        entries = tuple(PriceEntry(id=pid, source=source, raw_value=raw) for pid, source, raw in prices)
        return BudgetDocument(
            mode=mode,
            modality=modality,
            method=method,
            items=(item,),
            prices={"i1": entries} if entries else {},
            **overrides,
        )

    return _create
