from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .models import EstimationMethod


_BOOLEAN_TRUE = {"1", "true", "yes", "on", "sim", "s"}
XLSX_NAME = "Orcamento.xlsx"
DRAFT_NAME = "Orcamento_recalculado.json"


@dataclass(frozen=True)
class LegalLimits:
    """Statutory thresholds used by the quota and amendment rules (values in BRL)."""

    quota_exemption_threshold: float = 4_800_000.0
    reserved_quota_share: float = 0.25
    reserved_quota_value_cap: float = 80_000.0
    amendment_research_threshold_pct: float = 25.0


DEFAULT_LIMITS = LegalLimits()


@dataclass(frozen=True)
class Config:
    """Runtime configuration assembled from environment variables and CLI options."""

    base_dir: Path
    draft_path: Optional[Path]
    output_dir: Path
    output_xlsx: Path
    output_draft: Path
    method_override: Optional[EstimationMethod] = None
    limits: LegalLimits = field(default_factory=LegalLimits)
    verbose: bool = False


def _to_path(value: object | None) -> Optional[Path]:
    """Resolve a path from the environment or the CLI; ``$VARS`` and ``~`` are expanded."""

    if value is None:
        return None
    text = os.path.expandvars(os.fspath(value) if isinstance(value, os.PathLike) else str(value)).strip()
    return Path(text).expanduser().resolve() if text else None


def _to_float(value: object | None) -> Optional[float]:
    if value is None:
        return None
    text = str(value).replace("R$", "").replace("_", "").strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _to_method(value: object | None) -> Optional[EstimationMethod]:
    if value is None:
        return None
    if isinstance(value, EstimationMethod):
        return value
    text = str(value).strip().lower()
    if not text:
        return None
    for method in EstimationMethod:
        if text in {method.value, method.name.lower()}:
            return method
    return None


def _flag(value: object | None) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _BOOLEAN_TRUE


def _cli_options(cli_args: object | None) -> Dict[str, Any]:
    """Non-empty CLI options as a dict; accepts argparse or SimpleNamespace objects."""

    if cli_args is None or not hasattr(cli_args, "__dict__"):
        return {}
    return {key: value for key, value in vars(cli_args).items() if value not in (None, "", False)}


def load_limits(env: Mapping[str, str]) -> LegalLimits:
    """Read the legal thresholds from ``env``, keeping defaults for unset or invalid values."""

    defaults = DEFAULT_LIMITS
    threshold = _to_float(env.get("QUOTA_EXEMPTION_THRESHOLD"))
    share = _to_float(env.get("RESERVED_QUOTA_SHARE"))
    cap = _to_float(env.get("RESERVED_QUOTA_VALUE_CAP"))
    research = _to_float(env.get("AMENDMENT_RESEARCH_THRESHOLD_PCT"))
    if share is not None and not 0.0 <= share <= 1.0:
        share = None
    return LegalLimits(
        quota_exemption_threshold=threshold if threshold is not None and threshold > 0 else defaults.quota_exemption_threshold,
        reserved_quota_share=share if share is not None else defaults.reserved_quota_share,
        reserved_quota_value_cap=cap if cap is not None and cap >= 0 else defaults.reserved_quota_value_cap,
        amendment_research_threshold_pct=research if research is not None and research >= 0 else defaults.amendment_research_threshold_pct,
    )


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables and CLI options.

    CLI options win over the environment.  ``--output-dir`` relocates both
    artifacts, overriding ``OUTPUT_XLSX``/``OUTPUT_DRAFT``.
    """

    base_dir = Path(__file__).resolve().parents[2]
    options = _cli_options(cli_args)

    draft_path = _to_path(options.get("draft")) or _to_path(env.get("BUDGET_DRAFT"))
    cli_output_dir = _to_path(options.get("output_dir"))
    output_dir = cli_output_dir or _to_path(env.get("OUTPUT_DIR")) or (base_dir / "outputs").resolve()
    output_xlsx = output_dir / XLSX_NAME
    output_draft = output_dir / DRAFT_NAME
    if cli_output_dir is None:
        output_xlsx = _to_path(env.get("OUTPUT_XLSX")) or output_xlsx
        output_draft = _to_path(env.get("OUTPUT_DRAFT")) or output_draft

    return Config(
        base_dir=base_dir,
        draft_path=draft_path,
        output_dir=output_dir,
        output_xlsx=output_xlsx,
        output_draft=output_draft,
        method_override=_to_method(options.get("method")) or _to_method(env.get("ESTIMATION_METHOD")),
        limits=load_limits(env),
        verbose=_flag(options.get("verbose")) or _flag(env.get("ORCAMENTO_VERBOSE")),
    )


__all__ = ["Config", "DEFAULT_LIMITS", "LegalLimits", "load_config", "load_limits"]
