"""Error taxonomy for the weighted regression workflow."""
from __future__ import annotations


class ParseError(ValueError):
    """A row of the input file has the wrong shape or unparseable values."""


class SingularDesignError(ValueError):
    """The predictor has zero variance, so intercept and slope are not identified."""


class DegenerateWeightError(ValueError):
    """A weight vector contains non-positive or undefined entries."""


class ZeroWeightWarning(UserWarning):
    """Some observations carry a weight of exactly zero and drop out of the fit."""
