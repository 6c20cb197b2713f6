from __future__ import annotations

import math

import pytest

from orcamento.amendment import (
    amendment_summary,
    apply_amendment,
    derive_amendment,
    market_comparison,
    needs_market_research,
)
from orcamento.models import (
    AmendmentEdit,
    AmendmentField,
    BudgetDocument,
    ItemGroup,
    PriceEntry,
    PriceSource,
    ProcurementMode,
)
from orcamento.recompute import recompute


def test_percent_drives_quantity_and_value():
    percent, quantity, value = derive_amendment(AmendmentEdit(AmendmentField.PERCENT, 10), 50, 20)
    assert percent == 10
    assert quantity == pytest.approx(5)
    assert value == pytest.approx(100)


def test_representations_round_trip():
    _, quantity, value = derive_amendment(AmendmentEdit(AmendmentField.PERCENT, 10), 50, 20)

    percent_q, _, value_q = derive_amendment(AmendmentEdit(AmendmentField.QUANTITY, quantity), 50, 20)
    assert percent_q == pytest.approx(10)
    assert value_q == pytest.approx(100)

    percent_v, quantity_v, _ = derive_amendment(AmendmentEdit(AmendmentField.VALUE, value), 50, 20)
    assert percent_v == pytest.approx(10)
    assert quantity_v == pytest.approx(5)


def test_readjustment_applies_to_derived_value():
    _, quantity, value = derive_amendment(AmendmentEdit(AmendmentField.PERCENT, 10), 50, 20, readjustment_factor=1.1)
    assert quantity == pytest.approx(5)
    assert value == pytest.approx(110)

    percent, quantity_v, _ = derive_amendment(AmendmentEdit(AmendmentField.VALUE, 110), 50, 20, readjustment_factor=1.1)
    assert percent == pytest.approx(10)
    assert quantity_v == pytest.approx(5)


@pytest.mark.parametrize(
    "quantity, price",
    [(0, 20), (50, 0), (0, 0)],
)
def test_zero_base_keeps_only_the_edited_field(quantity, price):
    derived = derive_amendment(AmendmentEdit(AmendmentField.VALUE, 100), quantity, price)
    assert derived == (None, None, 100.0)
    derived = derive_amendment(AmendmentEdit(AmendmentField.PERCENT, 10), quantity, price)
    assert derived == (10.0, None, None)
    for value in derived:
        assert value is None or math.isfinite(value)


def test_apply_amendment_returns_same_item_when_settled():
    item = ItemGroup(
        id="a",
        total_quantity=50,
        unit_estimate=20,
        amendment_edit=AmendmentEdit(AmendmentField.QUANTITY, 5),
    )
    settled = apply_amendment(item)
    assert settled is not item
    assert settled.amendment_percent == pytest.approx(10)
    assert apply_amendment(settled) is settled
    plain = ItemGroup(id="b")
    assert apply_amendment(plain) is plain


def _amendment_document(percent: float, *, readjusted: bool = False, prices=()) -> BudgetDocument:
    item = ItemGroup(
        id="a",
        item_number="1",
        description="Serviço de manutenção",
        total_quantity=50,
        unit_estimate=20,
        amendment_edit=AmendmentEdit(AmendmentField.PERCENT, percent),
    )
    document = BudgetDocument(
        mode=ProcurementMode.CONTRACT_AMENDMENT,
        items=(item,),
        prices={"a": tuple(prices)},
        readjustment_declared=readjusted,
        readjustment_percent=10.0 if readjusted else 0.0,
    )
    return recompute(document)


def test_market_research_trigger():
    assert not needs_market_research(_amendment_document(25))
    assert needs_market_research(_amendment_document(25.01))
    assert needs_market_research(_amendment_document(5, readjusted=True))
    open_bidding = BudgetDocument(readjustment_declared=True)
    assert not needs_market_research(open_bidding)


def test_summary_keeps_historical_base_total():
    document = _amendment_document(10, readjusted=True)
    (row,) = amendment_summary(document)
    assert row.base_total == pytest.approx(1000)
    assert row.amendment_value == pytest.approx(110)
    assert row.new_global_value == pytest.approx(1110)


def test_comparison_uses_readjusted_unit_price_and_market_mean():
    prices = (
        PriceEntry(id="m1", source=PriceSource.NATIONAL_PORTAL, raw_value="20,00"),
        PriceEntry(id="m2", source=PriceSource.DIRECT_QUOTE, raw_value="24,00"),
        PriceEntry(id="r1", source=PriceSource.REGISTRY, raw_value="1,00"),
    )
    document = _amendment_document(10, readjusted=True, prices=prices)
    (row,) = market_comparison(document)
    # (1100 readjusted total + 110 amendment) / 50
    assert row.new_unit_price == pytest.approx(24.2)
    assert row.market_mean == pytest.approx(22)
    assert row.above_market
    assert row.has_market_data


def test_comparison_is_empty_when_not_required():
    assert market_comparison(_amendment_document(10)) == []


def test_comparison_does_not_touch_unit_estimates():
    prices = (PriceEntry(id="m1", source=PriceSource.NATIONAL_PORTAL, raw_value="5,00"),)
    document = _amendment_document(30, prices=prices)
    market_comparison(document)
    assert document.items[0].unit_estimate == 20
