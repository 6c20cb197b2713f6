from __future__ import annotations

import json
import logging
from pathlib import Path

import pandas as pd
import pytest
from jsonschema import ValidationError

from orcamento import cli
from orcamento.api import BudgetOptions, run_budget
from orcamento.drafts import load_draft


def _write_draft(path: Path, **overrides) -> Path:
    raw = {
        "city": "Belém",
        "mode": "licitacao",
        "modality": "pregao_eletronico_comum",
        "method": "media",
        "items": [
            {"id": "a", "item_number": "1", "description": "Bota de combate", "unit": "PAR", "total_quantity": 100, "lot_id": "Lote 1"},
            {"id": "b", "item_number": "2", "description": "Balaclava", "unit": "UN", "total_quantity": 10},
        ],
        "prices": {
            "a": [
                {"id": "a1", "source": "pncp", "raw_value": "300,00"},
                {"id": "a2", "source": "direta", "raw_value": "500,00"},
            ],
            "b": [{"id": "b1", "source": "direta", "raw_value": "40,00"}],
        },
        "research_sources": ["direta"],
    }
    raw.update(overrides)
    path.write_text(json.dumps(raw, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("BUDGET_DRAFT", "OUTPUT_DIR", "OUTPUT_XLSX", "OUTPUT_DRAFT", "ESTIMATION_METHOD"):
        monkeypatch.delenv(name, raising=False)


def test_main_writes_outputs(tmp_path: Path, caplog):
    draft = _write_draft(tmp_path / "draft.json")
    out_dir = tmp_path / "out"
    with caplog.at_level(logging.INFO):
        rc = cli.main([str(draft), "--output-dir", str(out_dir)])
    assert rc == 0
    assert (out_dir / "Orcamento.xlsx").exists()
    recomputed = load_draft(out_dir / "Orcamento_recalculado.json")
    assert recomputed.item("a").unit_estimate == 400.0
    assert "[pipeline:01] Loading draft" in caplog.text
    assert "lot Lote 1: items 1" in caplog.text
    assert "=== SUMMARY ===" in caplog.text
    assert "no justification was given" in caplog.text


def test_method_override(tmp_path: Path):
    draft = _write_draft(tmp_path / "draft.json")
    out_dir = tmp_path / "out"
    assert cli.main([str(draft), "--output-dir", str(out_dir), "--method", "menor"]) == 0
    items = pd.read_excel(out_dir / "Orcamento.xlsx", sheet_name="ITEMS")
    assert items["UNIT_ESTIMATE"].tolist() == [300.0, 40.0]


def test_missing_draft_argument_returns_usage_code(caplog):
    with caplog.at_level(logging.ERROR):
        assert cli.main([]) == 2
    assert "No draft given" in caplog.text


def test_invalid_draft_is_reported(tmp_path: Path):
    draft = tmp_path / "broken.json"
    draft.write_text(json.dumps({"items": [{"id": ""}]}), encoding="utf-8")
    assert cli.main([str(draft), "--output-dir", str(tmp_path / "out")]) == 1


def test_amendment_draft_logs_market_comparison(tmp_path: Path, caplog):
    draft = _write_draft(
        tmp_path / "draft.json",
        mode="aditivo_contratual",
        items=[
            {
                "id": "a",
                "item_number": "1",
                "total_quantity": 50,
                "unit_estimate": 20,
                "amendment_edit": {"field": "percent", "value": 30},
            }
        ],
        prices={"a": [{"id": "m1", "source": "pncp", "raw_value": "21,00"}]},
    )
    with caplog.at_level(logging.INFO):
        assert cli.main([str(draft), "--output-dir", str(tmp_path / "out")]) == 0
    assert "Comparing amended prices with market research" in caplog.text
    sheets = pd.read_excel(tmp_path / "out" / "Orcamento.xlsx", sheet_name=None)
    assert "MARKET_COMPARISON" in sheets
    assert sheets["AMENDMENT"]["AMENDMENT_VALUE"].tolist() == pytest.approx([300.0])


def test_run_budget(tmp_path: Path):
    draft = _write_draft(tmp_path / "draft.json")
    artifacts = run_budget(BudgetOptions(draft_path=draft, output_dir=tmp_path / "api", method="mediana"))
    assert artifacts["xlsx"] == (tmp_path / "api" / "Orcamento.xlsx").resolve()
    assert artifacts["xlsx"].exists()
    assert load_draft(artifacts["draft"]).item("a").unit_estimate == 400.0


def test_run_budget_raises_on_failure(tmp_path: Path):
    draft = tmp_path / "broken.json"
    draft.write_text(json.dumps({"items": [{"id": ""}]}), encoding="utf-8")
    with pytest.raises(ValidationError):
        run_budget(BudgetOptions(draft_path=draft, output_dir=tmp_path / "api"))
