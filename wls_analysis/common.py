"""Shared helpers for the abalone weighted least squares analysis."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path
from typing import Mapping, Sequence

import pandas as pd

from .errors import ParseError

logger = logging.getLogger(__name__)

DATA_PATH = Path("data/abalone.data")
OUTPUT_ROOT = Path("outputs")
RUN_NAME = "wls"
FIGURE_DPI = 300

# The source file ships without a header row.
ABALONE_COLUMNS: Sequence[str] = (
    "sex",
    "length",
    "diameter",
    "height",
    "whole_weight",
    "shucked_weight",
    "viscera_weight",
    "shell_weight",
    "rings",
)

MEASUREMENT_COLUMNS: Sequence[str] = (
    "length",
    "diameter",
    "height",
    "whole_weight",
    "shucked_weight",
    "viscera_weight",
    "shell_weight",
)

PREDICTOR = "length"
RESPONSE = "rings"

SESSION_PACKAGES: Sequence[str] = (
    "pandas",
    "numpy",
    "matplotlib",
    "seaborn",
    "pyarrow",
    "scipy",
    "statsmodels",
)


@dataclass
class LoadResult:
    """Container for the typed dataset and associated diagnostics."""

    data: pd.DataFrame
    diagnostics: Mapping[str, object]


def prepare_output_dir(run_name: str = RUN_NAME, output_root: Path | None = None) -> Path:
    """Ensure the output directory for a run exists and return it."""

    root = Path(output_root) if output_root is not None else OUTPUT_ROOT
    directory = root / run_name
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _describe_rows(row_numbers: Sequence[int], limit: int = 10) -> str:
    shown = ", ".join(str(number) for number in row_numbers[:limit])
    if len(row_numbers) > limit:
        shown += f" (+{len(row_numbers) - limit} more)"
    return shown


def load_abalone_data(data_path: Path | None = None) -> LoadResult:
    """Load the headerless abalone file and assign column names.

    Rows with the wrong number of fields, measurements that do not parse as
    numbers, or a fractional ring count raise :class:`ParseError`, as does an
    empty file. Row numbers in the message
    are 1-based positions among the non-blank lines of the file.
    """

    path = Path(data_path) if data_path is not None else DATA_PATH
    if not path.exists():
        raise FileNotFoundError(
            f"Abalone dataset not found at {path}. Pass --data-path to point at abalone.data."
        )

    try:
        raw = pd.read_csv(path, header=None, skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ParseError(f"Malformed row in {path}: {exc}") from exc

    if raw.shape[1] != len(ABALONE_COLUMNS):
        raise ParseError(
            f"Expected {len(ABALONE_COLUMNS)} columns in {path}, found {raw.shape[1]}."
        )
    raw.columns = list(ABALONE_COLUMNS)

    numeric = raw.loc[:, list(MEASUREMENT_COLUMNS) + [RESPONSE]].apply(
        pd.to_numeric, errors="coerce"
    )
    # Ring counts are whole numbers; 15.7 must not be truncated to 15.
    fractional_rings = numeric[RESPONSE].notna() & (numeric[RESPONSE] % 1 != 0)
    bad_rows = numeric.isna().any(axis=1) | raw["sex"].isna() | fractional_rings
    if bad_rows.any():
        row_numbers = [int(idx) + 1 for idx in raw.index[bad_rows]]
        raise ParseError(
            f"{len(row_numbers)} malformed row(s) in {path}: rows {_describe_rows(row_numbers)}"
        )

    data = numeric.copy()
    data.insert(0, "sex", raw["sex"].astype(str).str.strip().astype("category"))
    data[RESPONSE] = data[RESPONSE].astype(int)

    logger.info(f"Loaded {len(data)} observations from {path}")

    diagnostics = {
        "data_path": str(path),
        "row_count": int(len(data)),
        "column_count": int(data.shape[1]),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
    return LoadResult(data=data, diagnostics=diagnostics)


def write_json(path: Path, payload: Mapping[str, object]) -> Path:
    """Write a JSON payload; paths and numpy scalars are stored as strings."""

    path.write_text(
        json.dumps(payload, indent=2, sort_keys=True, default=str) + "\n",
        encoding="utf-8",
    )
    return path


def write_text(path: Path, text: str) -> Path:
    with path.open("w", encoding="utf-8") as handle:
        handle.write(text.rstrip() + "\n")
    return path


def write_summary(
    directory: Path,
    lines: Sequence[str],
    *,
    filename: str = "summary.txt",
    max_lines: int = 10,
) -> Path:
    """Persist a short summary text file (at most ``max_lines`` lines)."""

    trimmed = list(lines)[:max_lines]
    return write_text(directory / filename, "\n".join(trimmed).strip())


def write_memo(
    directory: Path,
    lines: Sequence[str],
    *,
    filename: str = "memo.txt",
) -> Path:
    """Persist the numbered run memo."""

    return write_text(directory / filename, "\n".join(lines).strip())


def write_session_info(directory: Path, *, run_settings: Mapping[str, object]) -> Path:
    """Record installed versions of the fitting and plotting stack next to the run settings."""

    versions = {}
    for pkg in SESSION_PACKAGES:
        try:
            versions[pkg] = metadata.version(pkg)
        except metadata.PackageNotFoundError:
            versions[pkg] = "not installed"

    return write_json(
        directory / "session_info.txt",
        {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "packages": versions,
            "run_settings": dict(run_settings),
        },
    )


def format_console_block(title: str, items: Mapping[str, object], *, indent: int = 2) -> str:
    """Title line followed by indented ``• key: value`` bullets."""

    prefix = " " * indent
    return "\n".join([title, *(f"{prefix}• {key}: {value}" for key, value in items.items())])
