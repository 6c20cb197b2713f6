import argparse
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .amendment import market_comparison, needs_market_research
from .budget_writer import write_outputs
from .config import Config
from .config import load_config as load_runtime_config
from .drafts import load_draft
from .models import ProcurementMode
from .money import format_currency, format_percent
from .project_meta import is_exclusive_direct_research, lot_layout, lots_enabled
from .recompute import recompute
from .reporting import make_summary_text

BASE_DIR = Path(__file__).resolve().parents[2]

load_dotenv(BASE_DIR / ".env")

logger = logging.getLogger(__name__)


def run(runtime_config: Optional[Config] = None) -> int:
    """Recompute a budget draft and write its workbook and recomputed draft.

    Returns a process exit code.
    """

    runtime_cfg = runtime_config or load_runtime_config(os.environ, None)

    stage_counter = 0

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    def log_stage(message: str) -> None:
        nonlocal stage_counter
        stage_counter += 1
        logger.info("[pipeline:%02d] %s", stage_counter, message)

    def log_detail(message: str) -> None:
        logger.info("           %s", message)

    draft_path = runtime_cfg.draft_path
    if draft_path is None:
        logger.error("No draft given; pass a draft path or set BUDGET_DRAFT.")
        return 2

    log_stage(f"Loading draft {draft_path}")
    document = load_draft(draft_path, runtime_cfg.limits)
    log_detail(f"items={len(document.items)} mode={document.mode.value} modality={document.modality.value}")

    if runtime_cfg.method_override is not None and runtime_cfg.method_override != document.method:
        log_detail(f"method override => {runtime_cfg.method_override.value}")
        document = replace(document, method=runtime_cfg.method_override)

    log_stage("Recomputing estimates and quotas")
    document = recompute(document, runtime_cfg.limits)

    if lots_enabled(document.mode):
        lot_ids, lots, ungrouped = lot_layout(document.items)
        for lot_id in lot_ids:
            log_detail(f"lot {lot_id}: items {', '.join(item.item_number for item in lots[lot_id])}")
        if lot_ids and ungrouped:
            log_detail(f"ungrouped: items {', '.join(item.item_number for item in ungrouped)}")

    for item in document.items:
        logger.info(
            "[item] %s :: qty=%s %s :: %s",
            item.item_number or item.id,
            f"{item.total_quantity:,.3f}",
            item.unit,
            (item.description or "")[:60],
        )
        logger.info("        unit_estimate=R$ %s", format_currency(item.unit_estimate))
        for quota in item.quotas:
            logger.info("        quota %s %s => %s", quota.order, quota.label, f"{quota.quantity:g}")
        if document.mode == ProcurementMode.CONTRACT_AMENDMENT and item.amendment_edit is not None:
            logger.info(
                "        amendment => %s | qty=%s | R$ %s",
                format_percent(item.amendment_percent),
                "" if item.amendment_quantity is None else f"{item.amendment_quantity:,.2f}",
                "" if item.amendment_value is None else format_currency(item.amendment_value),
            )

    if needs_market_research(document, runtime_cfg.limits):
        log_stage("Comparing amended prices with market research")
        for row in market_comparison(document, runtime_cfg.limits):
            status = "above market" if row.above_market else "within market"
            log_detail(
                f"item {row.item_number}: new=R$ {format_currency(row.new_unit_price)} "
                f"market=R$ {format_currency(row.market_mean)} ({status})"
            )

    if is_exclusive_direct_research(document.research_sources):
        if not document.absent_source_justification.strip():
            logger.warning("Direct supplier research is the only source but no justification was given.")
        if not document.suppliers:
            logger.warning("Direct supplier research is the only source but no supplier is listed.")

    log_stage("Writing outputs")
    artifacts = write_outputs(
        document,
        runtime_cfg.output_xlsx,
        runtime_cfg.output_draft,
        runtime_cfg.limits,
    )

    logger.info("\n=== SUMMARY ===\n")
    logger.info("%s", make_summary_text(document))
    logger.info("\nOutputs written:")
    for path in artifacts.values():
        logger.info(" - %s", path)
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute price estimates and quotas of a procurement budget draft")
    parser.add_argument("draft", nargs="?", help="Path to the budget draft JSON")
    parser.add_argument("--output-dir", help="Directory for generated outputs")
    parser.add_argument(
        "--method",
        choices=["menor", "media", "mediana", "lowest", "mean", "median"],
        help="Override the estimation method stored in the draft",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    runtime_cfg = load_runtime_config(os.environ, args)
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    try:
        return run(runtime_config=runtime_cfg)
    except Exception:
        logger.exception("Fatal error during budget recomputation")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
