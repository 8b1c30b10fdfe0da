"""Two-stage estimate-then-reweight weighting strategies.

Every strategy follows the same pattern: fit OLS, model the dispersion of its
residuals as a function of the predictor, invert the dispersion estimate to
obtain weights, and refit by weighted least squares. The strategies differ only
in which residual transform is modelled and how the estimate is inverted, so
they are described as :class:`DispersionModel` records rather than separate
code paths.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np

from . import regression
from .errors import DegenerateWeightError
from .regression import ArrayLike, FittedModel

logger = logging.getLogger(__name__)


class WeightStrategy(str, Enum):
    INVERSE_FITTED = "inverse_fitted"
    INVERSE_SQUARED_ABS_RESIDUAL = "inverse_squared_abs_residual"
    INVERSE_SQUARED_RESIDUAL = "inverse_squared_residual"

    @property
    def label(self) -> str:
        return DISPERSION_MODELS[self].label

    @property
    def description(self) -> str:
        return DISPERSION_MODELS[self].description

    @classmethod
    def from_name(cls, name: str | WeightStrategy) -> WeightStrategy:
        """Resolve a strategy from its value (``inverse_fitted``) or short label (``A``)."""

        if isinstance(name, cls):
            return name
        token = str(name).strip()
        for strategy in cls:
            if token.lower() == strategy.value or token.upper() == strategy.label:
                return strategy
        choices = ", ".join(f"{s.label}/{s.value}" for s in cls)
        raise ValueError(f"Unknown weight strategy '{name}'. Choose one of: {choices}")


@dataclass(frozen=True)
class DispersionModel:
    """How a strategy turns an OLS fit into a weight vector.

    ``transform`` maps OLS residuals to the quantity regressed on the
    predictor; ``None`` means the OLS fitted values are used directly as the
    dispersion estimate. ``invert`` maps the dispersion estimate to weights.
    """

    label: str
    description: str
    transform: Callable[[np.ndarray], np.ndarray] | None
    invert: Callable[[np.ndarray], np.ndarray]


DISPERSION_MODELS: dict[WeightStrategy, DispersionModel] = {
    WeightStrategy.INVERSE_FITTED: DispersionModel(
        label="A",
        description="w = 1 / fitted",
        transform=None,
        invert=lambda z: 1.0 / z,
    ),
    WeightStrategy.INVERSE_SQUARED_ABS_RESIDUAL: DispersionModel(
        label="B",
        description="w = 1 / predicted(|resid|)^2",
        transform=np.abs,
        invert=lambda z: 1.0 / np.square(z),
    ),
    WeightStrategy.INVERSE_SQUARED_RESIDUAL: DispersionModel(
        label="C",
        description="w = 1 / |predicted(resid^2)|",
        transform=np.square,
        invert=lambda z: 1.0 / np.abs(z),
    ),
}


@dataclass(frozen=True)
class ReweightResult:
    """Artefacts of one pass of the two-stage pattern."""

    strategy: WeightStrategy
    base_fit: FittedModel
    dispersion_fit: FittedModel | None
    weights: np.ndarray
    fit: FittedModel


def _dispersion_estimate(
    fit: FittedModel,
    x: np.ndarray,
    strategy: WeightStrategy,
) -> tuple[np.ndarray, FittedModel | None]:
    model = DISPERSION_MODELS[strategy]
    if model.transform is None:
        non_positive = int((fit.fitted <= 0).sum())
        if non_positive:
            raise DegenerateWeightError(
                f"Strategy {model.label}: {non_positive} fitted value(s) are <= 0 "
                f"(minimum {fit.fitted.min():.4g}); inverse fitted weights are undefined"
            )
        return np.asarray(fit.fitted), None

    dispersion_fit = regression.fit_ols(model.transform(fit.residuals), x)
    estimate = np.asarray(dispersion_fit.fitted)
    negative = int((estimate < 0).sum())
    if negative:
        logger.warning(
            f"Strategy {model.label}: dispersion fit predicts {negative} negative value(s) "
            f"(minimum {estimate.min():.4g})"
        )
    return estimate, dispersion_fit


def _checked_weights(raw: np.ndarray, strategy: WeightStrategy) -> np.ndarray:
    bad = ~(np.isfinite(raw) & (raw > 0))
    if bad.any():
        raise DegenerateWeightError(
            f"Strategy {strategy.label}: {int(bad.sum())} weight(s) are not finite and positive"
        )
    weights = np.array(raw, dtype=float)
    weights.flags.writeable = False
    return weights


def _weights_with_dispersion(
    fit: FittedModel,
    x: ArrayLike,
    strategy: WeightStrategy | str,
) -> tuple[np.ndarray, FittedModel | None]:
    strategy = WeightStrategy.from_name(strategy)
    x_arr = np.asarray(x, dtype=float)
    if x_arr.shape != fit.fitted.shape:
        raise ValueError(
            f"Predictor length {x_arr.size} does not match the fit ({fit.fitted.size} observations)"
        )
    estimate, dispersion_fit = _dispersion_estimate(fit, x_arr, strategy)
    with np.errstate(divide="ignore", invalid="ignore"):
        raw = DISPERSION_MODELS[strategy].invert(estimate)
    return _checked_weights(raw, strategy), dispersion_fit


def estimate_weights(
    fit: FittedModel,
    x: ArrayLike,
    strategy: WeightStrategy | str,
) -> np.ndarray:
    """Derive a strictly positive weight vector from an OLS fit."""

    weights, _ = _weights_with_dispersion(fit, x, strategy)
    return weights


def reweight(
    y: ArrayLike,
    x: ArrayLike,
    strategy: WeightStrategy | str,
    *,
    base_fit: FittedModel | None = None,
) -> ReweightResult:
    """Run the full fit, model dispersion, invert, refit sequence."""

    strategy = WeightStrategy.from_name(strategy)
    if base_fit is None:
        base_fit = regression.fit_ols(y, x)
    weights, dispersion_fit = _weights_with_dispersion(base_fit, x, strategy)
    fit = regression.fit_wls(y, x, weights)
    logger.info(
        f"Strategy {strategy.label} ({strategy.description}): "
        f"slope {fit.slope:.4f} (SE {fit.bse[1]:.4f}), R2 {fit.rsquared:.4f}"
    )
    return ReweightResult(
        strategy=strategy,
        base_fit=base_fit,
        dispersion_fit=dispersion_fit,
        weights=weights,
        fit=fit,
    )
