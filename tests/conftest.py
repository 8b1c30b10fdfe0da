from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from wls_analysis import common


def _heteroscedastic_sample(n: int, low: float, high: float, *, seed: int) -> tuple[np.ndarray, np.ndarray]:
    """y = 2 + 3x + e with sd(e) = 0.5 * x, so Var(e) grows with x squared."""

    rng = np.random.default_rng(seed)
    x = rng.uniform(low, high, size=n)
    y = 2.0 + 3.0 * x + rng.normal(0.0, 0.5 * x)
    return x, y


def _abalone_like_frame(n: int = 600, *, seed: int = 7) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    length = rng.uniform(0.4, 0.8, size=n)
    rings = np.clip(np.round(1.0 + 14.0 * length + rng.normal(0.0, 4.0 * length)), 1, None)
    return pd.DataFrame(
        {
            "sex": rng.choice(["M", "F", "I"], size=n),
            "length": length.round(3),
            "diameter": (0.8 * length).round(3),
            "height": (0.3 * length).round(3),
            "whole_weight": (2.0 * length**3).round(4),
            "shucked_weight": (0.9 * length**3).round(4),
            "viscera_weight": (0.4 * length**3).round(4),
            "shell_weight": (0.6 * length**3).round(4),
            "rings": rings.astype(int),
        },
        columns=list(common.ABALONE_COLUMNS),
    )


@pytest.fixture
def wide_range_sample() -> tuple[np.ndarray, np.ndarray]:
    """x in [4, 10]: enough spread in the error variance for WLS to pay off."""

    return _heteroscedastic_sample(5000, 4.0, 10.0, seed=2024)


@pytest.fixture
def narrow_range_sample() -> tuple[np.ndarray, np.ndarray]:
    """x in [5, 10]: a straight line tracks x**2 closely, keeping dispersion fits positive."""

    return _heteroscedastic_sample(5000, 5.0, 10.0, seed=11)


@pytest.fixture
def small_sample() -> tuple[np.ndarray, np.ndarray]:
    return _heteroscedastic_sample(200, 1.0, 5.0, seed=3)


@pytest.fixture
def abalone_frame() -> pd.DataFrame:
    return _abalone_like_frame()


@pytest.fixture
def abalone_file(tmp_path: Path, abalone_frame: pd.DataFrame) -> Path:
    path = tmp_path / "abalone.data"
    abalone_frame.to_csv(path, header=False, index=False)
    return path
