"""Weighted least squares analysis of abalone ring counts."""

from . import common, errors, pipeline, regression, reporting, weights  # noqa: F401

__all__ = [
    "common",
    "errors",
    "pipeline",
    "regression",
    "reporting",
    "weights",
]
