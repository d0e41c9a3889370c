# cdft_micelle/utils.py

from pathlib import Path
from dataclasses import dataclass
from collections.abc import Mapping

import numpy as np

from .errors import ReductionError


@dataclass
class ExecutionContext:
    input_file: Path | None = None
    input_data: str | None = None
    scratch_dir: Path | None = None
    plots_dir: Path | None = None


def get_unique_dir(base_name: str = "scratch", root: Path | None = None) -> Path:
    """
    Create a unique directory below `root` (default: current working directory).

    Rules
    -----
    - If ./<base_name> does not exist → create ./<base_name>
    - Else create ./<base_name>_1, ./<base_name>_2, ...
    - Return Path to the created directory
    """

    root = Path.cwd() if root is None else Path(root)
    base_path = root / base_name

    if not base_path.exists():
        base_path.mkdir(parents=True)
        return base_path

    i = 1
    while True:
        candidate = root / f"{base_name}_{i}"
        if not candidate.exists():
            candidate.mkdir(parents=True)
            return candidate
        i += 1


def find_key_recursive(obj, key, default=None):
    """
    Recursively find the FIRST occurrence of key in nested dicts/lists.
    """
    if isinstance(obj, Mapping):
        if key in obj:
            return obj[key]
        for v in obj.values():
            found = find_key_recursive(v, key)
            if found is not None:
                return found

    elif isinstance(obj, (list, tuple)):
        for item in obj:
            found = find_key_recursive(item, key)
            if found is not None:
                return found

    return default


def safe_exp(x, xmin=-50.0, xmax=50.0):
    """
    Numerically safe exponential.
    Clips exponent argument before applying exp.
    """
    return np.exp(np.clip(x, xmin, xmax))


def to_reduced(quantity, reference):
    """
    Reduce `quantity` by `reference` (elementwise division).

    Raises
    ------
    ReductionError
        If the result is not finite, e.g. for a vanishing reference.
    """
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        value = np.asarray(quantity, dtype=float) / np.asarray(reference, dtype=float)

    if not np.all(np.isfinite(value)):
        raise ReductionError(
            f"Reducing {np.asarray(quantity)} by {np.asarray(reference)} gives a non-finite value."
        )

    if value.ndim == 0:
        return float(value)
    return value
