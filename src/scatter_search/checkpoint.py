"""
Warm-start save/load of the Reference Set and sub-region matrices.

Files are tab separated, one record per line:
- reference set: n parameter columns + 1 cost column, one row per member
- frequencies: p integer columns, one row per dimension
- probabilities: p real columns, one row per dimension
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .data_structures import Individual, ReferenceSet
from .parameters import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class WarmStartPaths:
    ref_set_file: str
    freqs_file: str
    probs_file: str

    @classmethod
    def for_loading(cls, config) -> "WarmStartPaths":
        return cls(
            config.warm_start_ref_set_file,
            config.warm_start_freqs_file,
            config.warm_start_probs_file,
        )

    @classmethod
    def for_saving(cls, config) -> Optional["WarmStartPaths"]:
        paths = (config.final_ref_set_file, config.final_freqs_file, config.final_probs_file)
        if not all(paths):
            return None
        return cls(*paths)


def _atomic_savetxt(path: str, matrix: np.ndarray, fmt: str):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    # Save to temporary file first, then rename for atomic write
    temp_path = path + '.tmp'
    with open(temp_path, 'w') as f:
        np.savetxt(f, matrix, fmt=fmt, delimiter="\t")
    os.replace(temp_path, path)


def save_warm_start(ref_set: ReferenceSet, grid, paths: WarmStartPaths) -> bool:
    """
    Persist the Reference Set and the grid matrices.

    Floats use 17 significant digits so a reload reproduces them exactly.
    A failed save is logged and reported through the return value; the run
    result is still handed back to the caller.

    Returns:
        True if all three files were written
    """
    rows = np.column_stack([ref_set.params_matrix(), ref_set.costs()])
    try:
        _atomic_savetxt(paths.ref_set_file, rows, "%.17g")
        _atomic_savetxt(paths.freqs_file, grid.freqs, "%d")
        _atomic_savetxt(paths.probs_file, grid.probs, "%.17g")
    except OSError as e:
        logger.error(f"Failed to save warm-start state: {e}")
        for path in (paths.ref_set_file, paths.freqs_file, paths.probs_file):
            if os.path.exists(path + '.tmp'):
                os.remove(path + '.tmp')
        return False

    logger.info(
        f"Warm-start state saved to {paths.ref_set_file}, {paths.freqs_file}, {paths.probs_file}"
    )
    return True


def _load_matrix(path: str, dtype, expected_shape, what: str) -> np.ndarray:
    try:
        matrix = np.loadtxt(path, dtype=dtype, delimiter="\t", ndmin=2)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Could not read {what} file {path}: {e}") from e
    if matrix.shape != expected_shape:
        raise ConfigurationError(
            f"Dimension mismatch in {what} file {path}: "
            f"expected {expected_shape[0]} rows x {expected_shape[1]} columns, "
            f"got {matrix.shape[0]} x {matrix.shape[1]}"
        )
    return matrix


def load_warm_start(paths: WarmStartPaths, n_dimensions: int, ref_set_size: int, p: int):
    """
    Load a warm-start state and check it against the active configuration.

    Returns:
        Tuple of (ReferenceSet, freqs, probs)

    Raises:
        ConfigurationError: On unreadable files or any size mismatch
    """
    rows = _load_matrix(paths.ref_set_file, float, (ref_set_size, n_dimensions + 1), "reference set")
    freqs = _load_matrix(paths.freqs_file, np.int64, (n_dimensions, p), "frequency matrix")
    probs = _load_matrix(paths.probs_file, float, (n_dimensions, p), "probability matrix")

    if np.any(freqs < 1):
        raise ConfigurationError(f"Frequency matrix {paths.freqs_file} has counts below 1")
    if np.any(probs < 0) or not np.all(np.isfinite(probs)):
        raise ConfigurationError(f"Probability matrix {paths.probs_file} has invalid entries")
    if np.any(np.isnan(rows)):
        raise ConfigurationError(f"Reference set file {paths.ref_set_file} contains NaN")

    members = [Individual(row[:-1], row[-1]) for row in rows]
    logger.info(f"Warm-start state loaded from {paths.ref_set_file}")
    return ReferenceSet(members), freqs, probs
