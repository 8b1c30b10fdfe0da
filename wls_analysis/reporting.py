"""Tables, text summaries and diagnostic figures for fitted line models."""
from __future__ import annotations

from pathlib import Path
from typing import Mapping

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from . import common, regression
from .regression import FittedModel


def coefficient_table(fit: FittedModel, *, model_name: str) -> pd.DataFrame:
    frame = pd.DataFrame(
        {
            "term": list(fit.term_names),
            "estimate": fit.params,
            "std_error": fit.bse,
            "t_value": fit.tvalues,
            "p_value": fit.pvalues,
            "conf_low": fit.conf_int[:, 0],
            "conf_high": fit.conf_int[:, 1],
            "model": model_name,
        }
    )
    return frame


def comparison_table(fits: Mapping[str, FittedModel]) -> pd.DataFrame:
    """One row per model with coefficients, fit quality and heteroscedasticity tests."""

    records: list[dict[str, float | int | str]] = []
    for name, fit in fits.items():
        bp_stat, bp_pvalue = regression.breusch_pagan(fit)
        records.append(
            {
                "model": name,
                "weighted": fit.weighted,
                "nobs": fit.nobs,
                "intercept": fit.intercept,
                "intercept_se": float(fit.bse[0]),
                "intercept_t": float(fit.tvalues[0]),
                "slope": fit.slope,
                "slope_se": float(fit.bse[1]),
                "slope_t": float(fit.tvalues[1]),
                "r_squared": fit.rsquared,
                "adj_r_squared": fit.rsquared_adj,
                "breusch_pagan_lm": bp_stat,
                "breusch_pagan_p": bp_pvalue,
                "spread_spearman": regression.residual_spread_correlation(fit),
            }
        )
    return pd.DataFrame.from_records(records)


def format_fit_summary(fit: FittedModel, *, model_name: str) -> str:
    """Render a compact coefficient block for console and text reports."""

    kind = "WLS" if fit.weighted else "OLS"
    lines = [
        f"{model_name} ({kind}, n={fit.nobs}, df={fit.df_resid:.0f})",
        f"  {'term':<12}{'estimate':>12}{'std.err':>12}{'t':>10}",
    ]
    for idx, term in enumerate(fit.term_names):
        lines.append(
            f"  {term:<12}{fit.params[idx]:>12.4f}{fit.bse[idx]:>12.4f}{fit.tvalues[idx]:>10.2f}"
        )
    lines.append(f"  R2 = {fit.rsquared:.4f}, adj. R2 = {fit.rsquared_adj:.4f}")
    return "\n".join(lines)


def full_summary(fit: FittedModel, *, model_name: str) -> str:
    """Full statsmodels summary titled with the model name."""

    summary = fit.results.summary(
        yname=fit.response_name, xname=list(fit.term_names), title=model_name
    )
    return summary.as_text()


def residual_plot(fit: FittedModel, output_prefix: Path, *, title: str) -> None:
    """Scatter fitted values against residuals with a zero reference line.

    Weighted fits plot residuals scaled by sqrt(weight).
    """

    keep = fit.weights > 0
    fig, ax = plt.subplots(figsize=(8, 5))
    sns.scatterplot(
        x=fit.fitted[keep],
        y=fit.weighted_residuals[keep],
        ax=ax,
        s=12,
        alpha=0.5,
        edgecolor=None,
    )
    ax.axhline(0, color="black", linestyle="--", linewidth=1)
    ax.set_xlabel("Fitted value")
    ax.set_ylabel("Weighted residual" if fit.weighted else "Residual")
    ax.set_title(title)
    fig.tight_layout()
    fig.savefig(f"{output_prefix}.png", dpi=common.FIGURE_DPI)
    fig.savefig(f"{output_prefix}.pdf")
    plt.close(fig)


def scatter_with_fit(
    data: pd.DataFrame,
    fits: Mapping[str, FittedModel],
    output_prefix: Path,
    *,
    x_col: str = common.PREDICTOR,
    y_col: str = common.RESPONSE,
) -> None:
    """Raw scatter of the response on the predictor with every fitted line overlaid."""

    fig, ax = plt.subplots(figsize=(8, 5))
    sns.scatterplot(data=data, x=x_col, y=y_col, ax=ax, s=10, alpha=0.3, color="grey", edgecolor=None)
    grid = np.linspace(float(data[x_col].min()), float(data[x_col].max()), 100)
    for name, fit in fits.items():
        ax.plot(grid, fit.intercept + fit.slope * grid, linewidth=1.5, label=name)
    ax.set_xlabel(x_col)
    ax.set_ylabel(y_col)
    ax.set_title(f"{y_col} vs {x_col} with OLS and WLS lines")
    ax.legend(frameon=False)
    fig.tight_layout()
    fig.savefig(f"{output_prefix}.png", dpi=common.FIGURE_DPI)
    fig.savefig(f"{output_prefix}.pdf")
    plt.close(fig)
