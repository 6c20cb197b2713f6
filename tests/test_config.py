from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

from orcamento.config import DEFAULT_LIMITS, load_config, load_limits
from orcamento.models import EstimationMethod


def test_defaults_without_environment():
    cfg = load_config({}, None)
    assert cfg.draft_path is None
    assert cfg.output_xlsx.name == "Orcamento.xlsx"
    assert cfg.output_draft.name == "Orcamento_recalculado.json"
    assert cfg.output_xlsx.parent == cfg.output_dir
    assert cfg.method_override is None
    assert cfg.limits == DEFAULT_LIMITS
    assert cfg.verbose is False


def test_environment_values(tmp_path: Path):
    env = {
        "BUDGET_DRAFT": str(tmp_path / "draft.json"),
        "OUTPUT_DIR": str(tmp_path / "out"),
        "OUTPUT_XLSX": str(tmp_path / "custom.xlsx"),
        "ESTIMATION_METHOD": "Mediana",
        "ORCAMENTO_VERBOSE": "sim",
    }
    cfg = load_config(env, None)
    assert cfg.draft_path == (tmp_path / "draft.json").resolve()
    assert cfg.output_xlsx == (tmp_path / "custom.xlsx").resolve()
    assert cfg.output_draft == (tmp_path / "out" / "Orcamento_recalculado.json").resolve()
    assert cfg.method_override == EstimationMethod.MEDIAN
    assert cfg.verbose is True


def test_cli_arguments_take_precedence(tmp_path: Path):
    env = {"BUDGET_DRAFT": str(tmp_path / "env.json"), "ESTIMATION_METHOD": "media"}
    args = SimpleNamespace(draft=str(tmp_path / "cli.json"), output_dir=str(tmp_path / "cli_out"), method="lowest", verbose=False)
    cfg = load_config(env, args)
    assert cfg.draft_path == (tmp_path / "cli.json").resolve()
    assert cfg.output_xlsx == (tmp_path / "cli_out" / "Orcamento.xlsx").resolve()
    assert cfg.method_override == EstimationMethod.LOWEST


def test_unknown_method_is_ignored():
    assert load_config({"ESTIMATION_METHOD": "moda"}, None).method_override is None


def test_legal_limits_from_environment(monkeypatch):
    monkeypatch.setenv("QUOTA_EXEMPTION_THRESHOLD", "5_000_000")
    monkeypatch.setenv("RESERVED_QUOTA_SHARE", "0.3")
    monkeypatch.setenv("RESERVED_QUOTA_VALUE_CAP", "R$ 90000")
    monkeypatch.setenv("AMENDMENT_RESEARCH_THRESHOLD_PCT", "50")
    import os

    limits = load_limits(os.environ)
    assert limits.quota_exemption_threshold == 5_000_000
    assert limits.reserved_quota_share == 0.3
    assert limits.reserved_quota_value_cap == 90_000
    assert limits.amendment_research_threshold_pct == 50


def test_invalid_limits_fall_back_to_defaults():
    limits = load_limits(
        {
            "QUOTA_EXEMPTION_THRESHOLD": "-1",
            "RESERVED_QUOTA_SHARE": "1.5",
            "RESERVED_QUOTA_VALUE_CAP": "muito",
            "AMENDMENT_RESEARCH_THRESHOLD_PCT": "",
        }
    )
    assert limits == DEFAULT_LIMITS


def test_paths_expand_environment_variables(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("ORCAMENTO_BASE", str(tmp_path))
    cfg = load_config({"BUDGET_DRAFT": "$ORCAMENTO_BASE/draft.json", "ORCAMENTO_VERBOSE": "S"}, None)
    assert cfg.draft_path == (tmp_path / "draft.json").resolve()
    assert cfg.verbose is True


def test_cli_output_dir_relocates_both_artifacts(tmp_path: Path):
    env = {"OUTPUT_XLSX": str(tmp_path / "env.xlsx"), "OUTPUT_DRAFT": str(tmp_path / "env.json")}
    cfg = load_config(env, SimpleNamespace(draft=None, output_dir=str(tmp_path / "cli"), method=None, verbose=False))
    assert cfg.output_xlsx == (tmp_path / "cli" / "Orcamento.xlsx").resolve()
    assert cfg.output_draft == (tmp_path / "cli" / "Orcamento_recalculado.json").resolve()
