from __future__ import annotations

from typing import List

import pandas as pd

from .amendment import amendment_summary, market_comparison
from .config import DEFAULT_LIMITS, LegalLimits
from .models import BudgetDocument, ProcurementMode
from .money import format_currency, parse_currency
from .price_logic import has_valid_prices, included_entries, market_entries
from .project_meta import source_label

ITEM_COLUMNS = [
    "ITEM",
    "LOT",
    "DESCRIPTION",
    "UNIT",
    "CATALOG_CODE",
    "QUANTITY",
    "UNIT_ESTIMATE",
    "TOTAL_VALUE",
    "PRICES_USED",
    "NO_DATA",
]


def items_frame(document: BudgetDocument) -> pd.DataFrame:
    rows: List[dict] = []
    for item in document.items:
        entries = document.prices_for(item.id)
        used = included_entries(entries, document.inclusion)
        if document.mode != ProcurementMode.REGISTRY_ADHESION:
            used = market_entries(used)
        rows.append(
            {
                "ITEM": item.item_number,
                "LOT": item.lot_id or "",
                "DESCRIPTION": item.description,
                "UNIT": item.unit,
                "CATALOG_CODE": item.catalog_code,
                "QUANTITY": item.total_quantity,
                "UNIT_ESTIMATE": item.unit_estimate,
                "TOTAL_VALUE": item.unit_estimate * item.total_quantity,
                "PRICES_USED": len(used),
                "NO_DATA": (
                    document.mode != ProcurementMode.CONTRACT_AMENDMENT and not has_valid_prices(used)
                ),
            }
        )
    return pd.DataFrame(rows, columns=ITEM_COLUMNS)


def prices_frame(document: BudgetDocument) -> pd.DataFrame:
    columns = ["ITEM", "PRICE_ID", "SOURCE", "RAW_VALUE", "VALUE", "INCLUDED"]
    rows: List[dict] = []
    for item in document.items:
        for entry in document.prices_for(item.id):
            value = parse_currency(entry.raw_value)
            rows.append(
                {
                    "ITEM": item.item_number,
                    "PRICE_ID": entry.id,
                    "SOURCE": source_label(entry.source.value),
                    "RAW_VALUE": entry.raw_value,
                    "VALUE": value if value is not None else float("nan"),
                    "INCLUDED": document.is_included(entry.id),
                }
            )
    return pd.DataFrame(rows, columns=columns)


def quotas_frame(document: BudgetDocument) -> pd.DataFrame:
    columns = ["ITEM", "ORDER", "QUOTA", "QUANTITY", "UNIT_ESTIMATE", "TOTAL_VALUE"]
    rows: List[dict] = []
    for item in document.items:
        for quota in item.quotas:
            rows.append(
                {
                    "ITEM": item.item_number,
                    "ORDER": quota.order,
                    "QUOTA": quota.label,
                    "QUANTITY": quota.quantity,
                    "UNIT_ESTIMATE": item.unit_estimate,
                    "TOTAL_VALUE": quota.quantity * item.unit_estimate,
                }
            )
    return pd.DataFrame(rows, columns=columns)


def amendment_frame(document: BudgetDocument) -> pd.DataFrame:
    columns = [
        "ITEM",
        "DESCRIPTION",
        "QUANTITY",
        "CONTRACT_UNIT_PRICE",
        "BASE_TOTAL",
        "AMENDMENT_PCT",
        "AMENDMENT_QTY",
        "AMENDMENT_VALUE",
        "NEW_GLOBAL_VALUE",
    ]
    rows = [
        {
            "ITEM": row.item_number,
            "DESCRIPTION": row.description,
            "QUANTITY": row.quantity,
            "CONTRACT_UNIT_PRICE": row.contract_unit_price,
            "BASE_TOTAL": row.base_total,
            "AMENDMENT_PCT": row.amendment_percent,
            "AMENDMENT_QTY": row.amendment_quantity,
            "AMENDMENT_VALUE": row.amendment_value,
            "NEW_GLOBAL_VALUE": row.new_global_value,
        }
        for row in amendment_summary(document)
    ]
    return pd.DataFrame(rows, columns=columns)


def comparison_frame(document: BudgetDocument, limits: LegalLimits = DEFAULT_LIMITS) -> pd.DataFrame:
    columns = ["ITEM", "DESCRIPTION", "NEW_UNIT_PRICE", "MARKET_MEAN", "DIFFERENCE", "ABOVE_MARKET", "HAS_MARKET_DATA"]
    rows = [
        {
            "ITEM": row.item_number,
            "DESCRIPTION": row.description,
            "NEW_UNIT_PRICE": row.new_unit_price,
            "MARKET_MEAN": row.market_mean,
            "DIFFERENCE": row.difference,
            "ABOVE_MARKET": row.above_market,
            "HAS_MARKET_DATA": row.has_market_data,
        }
        for row in market_comparison(document, limits)
    ]
    return pd.DataFrame(rows, columns=columns)


def make_summary_text(document: BudgetDocument) -> str:
    items_df = items_frame(document)
    total = float(items_df["TOTAL_VALUE"].sum()) if not items_df.empty else 0.0
    method = document.method.value if document.method else "(not selected)"
    lines = [
        f"Budget total (items x unit estimate): R$ {format_currency(total)}.",
        f"Procurement mode: {document.mode.value} | modality: {document.modality.value} | method: {method}",
    ]
    if not items_df.empty:
        top = items_df.sort_values("TOTAL_VALUE", ascending=False).head(5)[
            ["ITEM", "DESCRIPTION", "QUANTITY", "UNIT_ESTIMATE", "TOTAL_VALUE"]
        ]
        lines.append(f"Top cost drivers:\n{top.to_string(index=False)}")
        missing = items_df.loc[items_df["NO_DATA"], "ITEM"].tolist()
        if missing:
            lines.append(f"Items without valid prices: {', '.join(str(code) for code in missing)}")
    quota_count = sum(len(item.quotas) for item in document.items)
    if quota_count:
        lines.append(f"Quota lines (ME/EPP reserved + open): {quota_count}")
    return "\n".join(lines) + "\n"


__all__ = [
    "amendment_frame",
    "comparison_frame",
    "items_frame",
    "make_summary_text",
    "prices_frame",
    "quotas_frame",
]
