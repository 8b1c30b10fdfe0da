import json

import pandas as pd
import pytest

import run_wls_analysis
from wls_analysis import common, pipeline, reporting, regression
from wls_analysis.weights import WeightStrategy


def test_run_writes_reports_for_every_model(tmp_path, abalone_file):
    out_dir = pipeline.run(output_root=tmp_path / "outputs", data_path=abalone_file)

    assert out_dir == tmp_path / "outputs" / "wls"
    for name in ("ols", "wls_a", "wls_b", "wls_c"):
        assert (out_dir / f"{name}_summary.txt").exists()
        assert (out_dir / f"fig_{name}_residuals.png").exists()
        assert (out_dir / f"fig_{name}_residuals.pdf").exists()
    assert (out_dir / "fig_length_rings_fits.png").exists()

    comparison = pd.read_csv(out_dir / "model_comparison.csv")
    assert comparison["model"].tolist() == ["ols", "wls_a", "wls_b", "wls_c"]
    assert comparison["r_squared"].between(0, 1).all()
    assert comparison["weighted"].tolist() == [False, True, True, True]

    coefficients = pd.read_csv(out_dir / "model_coefficients.csv")
    assert len(coefficients) == 8
    assert set(coefficients["term"]) == {"Intercept", "length"}

    observations = pd.read_parquet(out_dir / "observations.parquet")
    assert len(observations) == 600
    assert {"ols_fitted", "wls_c_weight", "wls_b_residual"}.issubset(observations.columns)
    assert (observations["wls_a_weight"] > 0).all()

    data_check = json.loads((out_dir / "data_check.json").read_text(encoding="utf-8"))
    assert data_check["row_count"] == 600

    summary = (out_dir / "summary.txt").read_text(encoding="utf-8").splitlines()
    assert len(summary) <= 10
    assert (out_dir / "memo.txt").exists()
    assert (out_dir / "session_info.txt").exists()


def test_run_with_strategy_subset(tmp_path, abalone_file):
    out_dir = pipeline.run(output_root=tmp_path, data_path=abalone_file, strategies=["C"])

    comparison = pd.read_csv(out_dir / "model_comparison.csv")
    assert comparison["model"].tolist() == ["ols", "wls_c"]
    assert not (out_dir / "wls_a_summary.txt").exists()


def test_comparison_table_matches_fits(abalone_frame):
    x = abalone_frame["length"]
    y = abalone_frame["rings"]
    ols = regression.fit_ols(y, x)

    table = reporting.comparison_table({"ols": ols})

    row = table.iloc[0]
    assert row["slope"] == pytest.approx(ols.slope)
    assert row["slope_se"] == pytest.approx(ols.bse[1])
    assert row["nobs"] == len(abalone_frame)


def test_format_fit_summary_lists_terms(abalone_frame):
    fit = regression.fit_ols(abalone_frame["rings"], abalone_frame["length"])

    text = reporting.format_fit_summary(fit, model_name="OLS")

    assert text.splitlines()[0].startswith("OLS (OLS, n=600")
    assert "Intercept" in text
    assert "length" in text
    assert f"R2 = {fit.rsquared:.4f}" in text


def test_model_names_follow_strategy_labels():
    assert [pipeline.model_name(s) for s in WeightStrategy] == ["wls_a", "wls_b", "wls_c"]


def test_cli_runs_selected_strategies(tmp_path, abalone_file, capsys):
    run_wls_analysis.main(
        [
            "--data-path",
            str(abalone_file),
            "--output-root",
            str(tmp_path),
            "--strategies",
            "A",
            "B",
            "--log-level",
            "WARNING",
        ]
    )

    assert "Outputs written to" in capsys.readouterr().out
    comparison = pd.read_csv(tmp_path / "wls" / "model_comparison.csv")
    assert comparison["model"].tolist() == ["ols", "wls_a", "wls_b"]


def test_cli_reports_missing_file(tmp_path):
    with pytest.raises(SystemExit, match="Missing file"):
        run_wls_analysis.main(["--data-path", str(tmp_path / "missing.data")])


def test_cli_reports_parse_errors(tmp_path):
    bad = tmp_path / "bad.data"
    bad.write_text("M,0.455,0.365\nF,0.35,0.265\n", encoding="utf-8")

    with pytest.raises(SystemExit, match="ParseError"):
        run_wls_analysis.main(["--data-path", str(bad), "--output-root", str(tmp_path)])


def test_run_drops_repeated_strategies(tmp_path, abalone_file):
    out_dir = pipeline.run(output_root=tmp_path, data_path=abalone_file, strategies=["A", "A"])

    comparison = pd.read_csv(out_dir / "model_comparison.csv")
    assert comparison["model"].tolist() == ["ols", "wls_a"]
    assert len(pd.read_csv(out_dir / "model_coefficients.csv")) == 4

    session = json.loads((out_dir / "session_info.txt").read_text(encoding="utf-8"))
    assert session["run_settings"]["strategies"] == ["A"]
    assert set(session["packages"]) == set(common.SESSION_PACKAGES)


def test_select_strategies_keeps_first_occurrence_order():
    assert pipeline.select_strategies(["C", "A", "C"]) == [
        WeightStrategy.INVERSE_SQUARED_RESIDUAL,
        WeightStrategy.INVERSE_FITTED,
    ]
    assert pipeline.select_strategies(None) == list(WeightStrategy)


def test_format_console_block_indents_bullets():
    block = common.format_console_block("Title:", {"Observations": 600, "R2": "0.31"})

    assert block.splitlines() == ["Title:", "  • Observations: 600", "  • R2: 0.31"]
