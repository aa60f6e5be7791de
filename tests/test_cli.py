"""CLI integration tests for ventas-clean."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from openpyxl import load_workbook
from typer.testing import CliRunner

import ventas_clean.cli as cli_mod
from ventas_clean import __version__
from ventas_clean.cli import app

runner = CliRunner()
FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"
HEADER = "fecha,franja,familia,producto,unidades,precio_unitario,importe\n"


def _write_csv(tmp_path: Path, name: str, rows: str) -> Path:
    path = tmp_path / name
    path.write_text(rows, encoding="utf-8")
    return path


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"ventas-clean v{__version__}" in result.output


def test_run_writes_all_artifacts(tmp_path: Path) -> None:
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        ["run", "--input", str(FIXTURES_DIR / "ventas_raw.csv"), "--out-dir", str(out_dir), "--quiet"],
    )

    assert result.exit_code == 0, result.output
    for name in (
        "ventas_clean.csv", "Informe_Ventas.xlsx", "summary.json",
        "qc_report.json", "run_manifest.json",
    ):
        assert (out_dir / name).exists(), name

    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "success"
    assert manifest["error_code"] is None
    assert manifest["rows_in"] == 12
    assert manifest["rows_out"] == 5
    assert len(manifest["sha256"]) == 64


def test_run_exports_clean_csv(tmp_path: Path) -> None:
    csv_path = _write_csv(
        tmp_path, "raw.csv",
        HEADER
        + "2024-03-01,desayuno,bebida,  café ,2,1.5,999\n"
        + "2024-03-01,Desayuno,Bebida,Café,2,1.5,3\n"
        + "2024-03-02,comida,postre,flan,3,4,0\n",
    )
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["run", "--input", str(csv_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 0, result.output
    assert (out_dir / "ventas_clean.csv").read_text(encoding="utf-8") == (
        "fecha,franja,familia,producto,unidades,precio_unitario,importe\n"
        "2024-03-01,Desayuno,Bebida,Café,2,1.5,3\n"
        "2024-03-02,Comida,Postre,Flan,3,4,12"
    )
    qc = json.loads((out_dir / "qc_report.json").read_text(encoding="utf-8"))
    assert qc["duplicate_rows"] == 1
    assert qc["rows_out"] == 2


def test_run_summary_respects_top_option(tmp_path: Path) -> None:
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "run", "--input", str(FIXTURES_DIR / "ventas_raw.csv"),
            "--out-dir", str(out_dir), "--top", "2", "--quiet",
        ],
    )

    assert result.exit_code == 0, result.output
    summary = json.loads((out_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary["top_products"] == [
        {"producto": "Ensalada Mixta", "importe": 13.0},
        {"producto": "Paella Valenciana", "importe": 12.5},
    ]
    assert summary["kpis"]["Total Revenue"] == 44.5
    wb = load_workbook(out_dir / "Informe_Ventas.xlsx")
    assert wb["Top_Productos"].max_row == 3


def test_run_missing_columns_fails_without_export(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "missing.csv", "fecha,producto\n2024-03-01,Flan\n")
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["run", "--input", str(csv_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    assert "Missing columns" in result.output
    assert not (out_dir / "ventas_clean.csv").exists()
    qc = json.loads((out_dir / "qc_report.json").read_text(encoding="utf-8"))
    assert "franja" in qc["missing_columns"]
    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "failed"
    assert manifest["error_code"] == 2


def test_run_with_no_valid_rows_refuses_to_export(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "bad.csv", HEADER + "31/02/2024,Comida,Postre,Flan,1,4,4\n")
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["run", "--input", str(csv_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    assert "nothing to export" in result.output
    assert not (out_dir / "ventas_clean.csv").exists()
    qc = json.loads((out_dir / "qc_report.json").read_text(encoding="utf-8"))
    assert qc["rejected"] == {"fecha": 1}


def test_run_header_only_input_fails(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "empty.csv", HEADER)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["run", "--input", str(csv_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    assert "0 rows" in result.output


def test_run_unexpected_error_exits_1_with_artifacts(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _boom(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(cli_mod, "write_report", _boom)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        ["run", "--input", str(FIXTURES_DIR / "ventas_raw.csv"), "--out-dir", str(out_dir), "--quiet"],
    )

    assert result.exit_code == 1
    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "failed"
    assert manifest["error_code"] == 1
    assert "boom" in manifest["error_message"]


def test_run_prints_progress_when_not_quiet(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["run", "--input", str(FIXTURES_DIR / "ventas_raw.csv"), "--out-dir", str(tmp_path / "o")],
    )

    assert result.exit_code == 0, result.output
    assert "Pipeline Complete" in result.output
    assert "Dropped 1 duplicate rows" in result.output


def test_validate_writes_qc_and_manifest_only(tmp_path: Path) -> None:
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        ["validate", "--input", str(FIXTURES_DIR / "ventas_raw.csv"), "--out-dir", str(out_dir), "--quiet"],
    )

    assert result.exit_code == 0, result.output
    qc = json.loads((out_dir / "qc_report.json").read_text(encoding="utf-8"))
    assert qc["rows_in"] == 12
    assert qc["rows_out"] == 5
    assert qc["duplicate_rows"] == 1
    assert qc["rejected"] == {
        "fecha": 1, "franja": 1, "producto": 2, "unidades": 1, "precio_unitario": 1,
    }
    assert (out_dir / "run_manifest.json").exists()
    assert not (out_dir / "ventas_clean.csv").exists()


def test_validate_missing_columns_exits_2(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "missing.csv", "fecha,producto\n2024-03-01,Flan\n")
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["validate", "--input", str(csv_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "failed"
    assert manifest["error_message"].startswith("Missing columns")


def test_validate_summary_table(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["validate", "--input", str(FIXTURES_DIR / "ventas_raw.csv"), "--out-dir", str(tmp_path)],
    )

    assert result.exit_code == 0, result.output
    assert "Validation Summary" in result.output
    assert "PASS" in result.output


def test_preview_shows_counts_and_rows(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["preview", "--input", str(FIXTURES_DIR / "ventas_raw.csv"), "--rows", "2"]
    )

    assert result.exit_code == 0, result.output
    assert "Raw rows: 12  Clean rows: 5" in result.output
    assert "Raw data" in result.output
    assert "Clean data" in result.output


def test_missing_input_file_is_a_usage_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", "--input", str(tmp_path / "nope.csv")])

    assert result.exit_code == 2


def test_preview_prints_values_with_markup_brackets_literally(tmp_path: Path) -> None:
    csv_path = _write_csv(
        tmp_path, "brackets.csv", HEADER + "2024-03-01,comida,postre,flan [/b],1,4,4\n"
    )

    result = runner.invoke(app, ["preview", "--input", str(csv_path)])

    assert result.exit_code == 0, result.output
    assert "Raw rows: 1  Clean rows: 1" in result.output
