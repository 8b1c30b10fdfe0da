"""Simple linear regression primitives (OLS and WLS) on a single predictor."""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats
from statsmodels.stats.diagnostic import het_breuschpagan

from .errors import DegenerateWeightError, SingularDesignError, ZeroWeightWarning

logger = logging.getLogger(__name__)

ArrayLike = Sequence[float] | np.ndarray | pd.Series


@dataclass(frozen=True)
class FittedModel:
    """Immutable result of a (weighted) least squares line fit.

    Arrays are stored read-only. Coefficient-level statistics are ordered
    ``(intercept, slope)``.
    """

    term_names: tuple[str, str]
    response_name: str
    predictor: np.ndarray
    response: np.ndarray
    weights: np.ndarray
    fitted: np.ndarray
    residuals: np.ndarray
    params: np.ndarray
    bse: np.ndarray
    tvalues: np.ndarray
    pvalues: np.ndarray
    conf_int: np.ndarray
    rsquared: float
    rsquared_adj: float
    nobs: int
    df_resid: float
    weighted: bool
    results: sm.regression.linear_model.RegressionResultsWrapper

    @property
    def intercept(self) -> float:
        return float(self.params[0])

    @property
    def slope(self) -> float:
        return float(self.params[1])

    @property
    def weighted_residuals(self) -> np.ndarray:
        """Residuals scaled by the square root of their weight (plain residuals for OLS)."""
        return np.sqrt(self.weights) * self.residuals


def _as_vector(values: ArrayLike, label: str) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    if array.ndim != 1:
        raise ValueError(f"{label} must be one-dimensional, got shape {array.shape}")
    if not np.all(np.isfinite(array)):
        raise ValueError(f"{label} contains missing or non-finite values")
    return array


def _term_names(x: ArrayLike) -> tuple[str, str]:
    name = getattr(x, "name", None)
    return ("Intercept", str(name) if name is not None else "x")


def _response_name(y: ArrayLike) -> str:
    name = getattr(y, "name", None)
    return str(name) if name is not None else "y"


def _validate_design(y: np.ndarray, x: np.ndarray) -> None:
    if y.shape != x.shape:
        raise ValueError(
            f"Response and predictor lengths differ ({y.size} vs {x.size})"
        )
    if y.size < 2:
        raise ValueError(f"At least two observations are required, got {y.size}")


def _read_only(array: np.ndarray) -> np.ndarray:
    copy = np.array(array, dtype=float)
    copy.flags.writeable = False
    return copy


def _build(
    results: sm.regression.linear_model.RegressionResultsWrapper,
    *,
    term_names: tuple[str, str],
    response_name: str,
    x: np.ndarray,
    y: np.ndarray,
    weights: np.ndarray,
    weighted: bool,
) -> FittedModel:
    params = np.asarray(results.params, dtype=float)
    fitted = params[0] + params[1] * x
    return FittedModel(
        term_names=term_names,
        response_name=response_name,
        predictor=_read_only(x),
        response=_read_only(y),
        weights=_read_only(weights),
        fitted=_read_only(fitted),
        residuals=_read_only(y - fitted),
        params=_read_only(params),
        bse=_read_only(results.bse),
        tvalues=_read_only(results.tvalues),
        pvalues=_read_only(results.pvalues),
        conf_int=_read_only(results.conf_int()),
        rsquared=float(results.rsquared),
        rsquared_adj=float(results.rsquared_adj),
        nobs=int(results.nobs),
        df_resid=float(results.df_resid),
        weighted=weighted,
        results=results,
    )


def fit_ols(y: ArrayLike, x: ArrayLike) -> FittedModel:
    """Fit ``y = a + b * x`` by ordinary least squares.

    Raises :class:`SingularDesignError` when ``x`` is constant.
    """

    term_names = _term_names(x)
    y_arr = _as_vector(y, "response")
    x_arr = _as_vector(x, "predictor")
    _validate_design(y_arr, x_arr)
    if np.ptp(x_arr) == 0:
        raise SingularDesignError(
            f"Predictor '{term_names[1]}' has zero variance; slope is not identified"
        )

    design = sm.add_constant(x_arr, has_constant="add")
    results = sm.OLS(y_arr, design).fit()
    return _build(
        results,
        term_names=term_names,
        response_name=_response_name(y),
        x=x_arr,
        y=y_arr,
        weights=np.ones_like(x_arr),
        weighted=False,
    )


def fit_wls(y: ArrayLike, x: ArrayLike, weights: ArrayLike) -> FittedModel:
    """Fit ``y = a + b * x`` minimising ``sum(w * (y - a - b * x) ** 2)``.

    Zero weights are accepted and drop their observation from the fit (a
    :class:`ZeroWeightWarning` is emitted); fitted values and residuals are
    still reported for every observation. Negative or non-finite weights raise
    :class:`DegenerateWeightError`.
    """

    term_names = _term_names(x)
    y_arr = _as_vector(y, "response")
    x_arr = _as_vector(x, "predictor")
    _validate_design(y_arr, x_arr)

    w_arr = np.asarray(weights, dtype=float)
    if w_arr.shape != x_arr.shape:
        raise ValueError(
            f"Weight vector length {w_arr.size} does not match {x_arr.size} observations"
        )
    if not np.all(np.isfinite(w_arr)):
        raise DegenerateWeightError("Weight vector contains missing or non-finite entries")
    if np.any(w_arr < 0):
        raise DegenerateWeightError(
            f"Weight vector contains {int((w_arr < 0).sum())} negative entries"
        )

    keep = w_arr > 0
    n_zero = int((~keep).sum())
    if n_zero:
        warnings.warn(
            f"{n_zero} observation(s) have zero weight and are excluded from the fit",
            ZeroWeightWarning,
            stacklevel=2,
        )
    if keep.sum() < 2:
        raise DegenerateWeightError("Fewer than two observations carry positive weight")
    if np.ptp(x_arr[keep]) == 0:
        raise SingularDesignError(
            f"Predictor '{term_names[1]}' has zero variance among positively weighted observations"
        )

    design = sm.add_constant(x_arr[keep], has_constant="add")
    results = sm.WLS(y_arr[keep], design, weights=w_arr[keep]).fit()
    return _build(
        results,
        term_names=term_names,
        response_name=_response_name(y),
        x=x_arr,
        y=y_arr,
        weights=w_arr,
        weighted=True,
    )


def breusch_pagan(fit: FittedModel) -> tuple[float, float]:
    """Breusch-Pagan LM test of the (weighted) residuals against ``[1, x]``."""

    keep = fit.weights > 0
    exog = sm.add_constant(fit.predictor[keep], has_constant="add")
    lm_stat, lm_pvalue, _, _ = het_breuschpagan(fit.weighted_residuals[keep], exog)
    return float(lm_stat), float(lm_pvalue)


def residual_spread_correlation(fit: FittedModel) -> float:
    """Spearman correlation between |weighted residual| and fitted value.

    Values well above zero indicate the fan shape of heteroscedastic errors.
    """

    keep = fit.weights > 0
    rho, _ = stats.spearmanr(np.abs(fit.weighted_residuals[keep]), fit.fitted[keep])
    return float(rho)
