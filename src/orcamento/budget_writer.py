"""Write recomputed budget tables to an Excel workbook."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

import pandas as pd

from .amendment import needs_market_research
from .config import DEFAULT_LIMITS, LegalLimits
from .drafts import save_draft
from .models import BudgetDocument, ProcurementMode
from .reporting import amendment_frame, comparison_frame, items_frame, prices_frame, quotas_frame

logger = logging.getLogger(__name__)


def budget_sheets(document: BudgetDocument, limits: LegalLimits = DEFAULT_LIMITS) -> Dict[str, pd.DataFrame]:
    """Tables for the workbook, keyed by sheet name, in display order."""

    sheets: Dict[str, pd.DataFrame] = {
        "ITEMS": items_frame(document),
        "PRICES": prices_frame(document),
    }
    if document.mode == ProcurementMode.OPEN_BIDDING:
        sheets["QUOTAS"] = quotas_frame(document)
    if document.mode == ProcurementMode.CONTRACT_AMENDMENT:
        sheets["AMENDMENT"] = amendment_frame(document)
        if needs_market_research(document, limits):
            sheets["MARKET_COMPARISON"] = comparison_frame(document, limits)
    return sheets


def write_outputs(
    document: BudgetDocument,
    xlsx_path: Path,
    draft_path: Path | None = None,
    limits: LegalLimits = DEFAULT_LIMITS,
) -> Dict[str, Path]:
    """Write the workbook (and optionally the recomputed draft); return the artifact paths."""

    xlsx_path.parent.mkdir(parents=True, exist_ok=True)
    sheets = budget_sheets(document, limits)
    with pd.ExcelWriter(xlsx_path, engine="openpyxl") as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=name, index=False)
    logger.debug("Wrote sheets %s to %s", list(sheets), xlsx_path)

    artifacts = {"xlsx": xlsx_path}
    if draft_path is not None:
        save_draft(document, draft_path)
        artifacts["draft"] = draft_path
    return artifacts


__all__ = ["budget_sheets", "write_outputs"]
