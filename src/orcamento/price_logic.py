from typing import Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .models import EstimationMethod, PriceEntry, PriceSource, ProcurementMode
from .money import parse_currency

# Aggregation method for researched prices. Supported:
#  - LOWEST ("menor")
#  - MEAN ("media")
#  - MEDIAN ("mediana")
# Anything else, including no selection, yields the 0.0 "no data" sentinel.
NO_DATA = 0.0


def _valid_prices(values: Iterable[Optional[float]]) -> pd.Series:
    cleaned = [np.nan if value is None else value for value in values]
    prices = pd.to_numeric(pd.Series(cleaned, dtype=object), errors="coerce").astype(float)
    mask = np.isfinite(prices.to_numpy()) & (prices.to_numpy() > 0)
    return prices.loc[mask]


def estimate(values: Iterable[Optional[float]], method: Optional[EstimationMethod]) -> float:
    """Aggregate researched prices into a single unit estimate.

    Only finite, strictly positive values take part; ``None`` marks an
    entry whose text did not parse.  An empty valid set, or an unknown
    method, returns ``NO_DATA``.
    """

    prices = _valid_prices(values)
    if prices.empty:
        return NO_DATA

    if method == EstimationMethod.LOWEST:
        return float(prices.min())
    if method == EstimationMethod.MEAN:
        return float(prices.mean())
    if method == EstimationMethod.MEDIAN:
        return float(prices.median())
    return NO_DATA


def included_entries(entries: Sequence[PriceEntry], inclusion: Mapping[str, bool]) -> List[PriceEntry]:
    """Entries the user kept for aggregation; an absent flag means included."""

    return [entry for entry in entries if inclusion.get(entry.id, True)]


def market_entries(entries: Sequence[PriceEntry]) -> List[PriceEntry]:
    return [entry for entry in entries if entry.source != PriceSource.REGISTRY]


def parsed_values(entries: Sequence[PriceEntry]) -> List[Optional[float]]:
    return [parse_currency(entry.raw_value) for entry in entries]


def has_valid_prices(entries: Sequence[PriceEntry]) -> bool:
    """True when at least one entry parses to a positive price.

    Distinguishes the ``NO_DATA`` sentinel from a genuine estimate.
    """

    return not _valid_prices(parsed_values(entries)).empty


def registry_price(entries: Sequence[PriceEntry]) -> float:
    """Price of the first registry-record entry, 0.0 when there is none or it does not parse."""

    for entry in entries:
        if entry.source == PriceSource.REGISTRY:
            value = parse_currency(entry.raw_value)
            return value if value is not None else 0.0
    return 0.0


def registry_adhesion_estimate(market_value: float, record_price: float) -> float:
    """Lower of the market estimate and the registry price, or whichever is positive."""

    if market_value > 0 and record_price > 0:
        return min(market_value, record_price)
    if market_value > 0:
        return market_value
    if record_price > 0:
        return record_price
    return NO_DATA


def item_estimate(
    entries: Sequence[PriceEntry],
    inclusion: Mapping[str, bool],
    mode: ProcurementMode,
    method: Optional[EstimationMethod],
) -> Optional[float]:
    """Unit estimate for one item under ``mode``.

    Returns ``None`` under contract amendment, where the unit price is
    entered by the user and must not be overwritten.
    """

    if mode == ProcurementMode.CONTRACT_AMENDMENT:
        return None

    included = included_entries(entries, inclusion)
    market = market_entries(included)

    if mode == ProcurementMode.REGISTRY_ADHESION:
        market_value = estimate(parsed_values(market), method or EstimationMethod.MEAN)
        return registry_adhesion_estimate(market_value, registry_price(included))

    return estimate(parsed_values(market), method)


def market_mean(entries: Sequence[PriceEntry], inclusion: Mapping[str, bool]) -> float:
    """Mean of the included market entries, used for amendment comparisons."""

    market = market_entries(included_entries(entries, inclusion))
    return estimate(parsed_values(market), EstimationMethod.MEAN)


__all__ = [
    "NO_DATA",
    "estimate",
    "has_valid_prices",
    "included_entries",
    "item_estimate",
    "market_entries",
    "market_mean",
    "parsed_values",
    "registry_adhesion_estimate",
    "registry_price",
]
