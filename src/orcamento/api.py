from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, Optional

from .cli import run as run_pipeline
from .config import load_config
from .models import EstimationMethod


@dataclass
class BudgetOptions:
    draft_path: Path
    output_dir: Optional[Path] = None
    method: Optional[EstimationMethod | str] = None
    verbose: bool = False


def run_budget(options: BudgetOptions) -> Dict[str, Path]:
    """Recompute ``options.draft_path`` and write its outputs.

    The options take the place of the command-line arguments, so the
    environment still supplies anything they leave unset (legal limits,
    explicit output files).  Returns ``{"xlsx": ..., "draft": ...}``.
    """

    method = options.method.value if isinstance(options.method, EstimationMethod) else options.method
    cli_args = SimpleNamespace(
        draft=str(options.draft_path),
        output_dir=str(options.output_dir) if options.output_dir else None,
        method=method,
        verbose=options.verbose,
    )
    cfg = load_config(os.environ, cli_args)
    rc = run_pipeline(runtime_config=cfg)
    if rc != 0:
        raise RuntimeError(f"Budget run for {options.draft_path} exited with code {rc}")
    return {"xlsx": cfg.output_xlsx, "draft": cfg.output_draft}
