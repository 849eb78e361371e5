"""
Search space and configuration processing for Scatter Search optimization.
"""

import dataclasses
import json
import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

MIN_REF_SET_SIZE = 20
MIN_SCATTER_SET_SIZE = 40
LOCAL_SEARCH_METHODS = ("nelder_mead", "hill_climbing")


class ConfigurationError(ValueError):
    """Invalid configuration or warm-start state; raised before any search work."""


class SearchSpace:
    """
    Immutable box bounds, one [lower, upper] pair per optimized parameter.
    """

    def __init__(self, lower, upper, names: Optional[Sequence[str]] = None):
        lower = np.array(lower, dtype=float)
        upper = np.array(upper, dtype=float)

        if lower.ndim != 1 or lower.shape != upper.shape:
            raise ConfigurationError(
                f"Dimension mismatch: lower bounds have shape {lower.shape}, "
                f"upper bounds have shape {upper.shape}"
            )
        if lower.size == 0:
            raise ConfigurationError("bounds cannot be empty")
        if not (np.all(np.isfinite(lower)) and np.all(np.isfinite(upper))):
            raise ConfigurationError("bounds must be finite")

        for i, (lo, hi) in enumerate(zip(lower, upper)):
            label = names[i] if names else i
            if lo > hi:
                raise ConfigurationError(
                    f"Invalid bounds for parameter '{label}': min ({lo}) > max ({hi})"
                )
            if lo == hi:
                raise ConfigurationError(
                    f"Parameter '{label}' has zero range ({lo}); remove it from the search space"
                )

        lower.flags.writeable = False
        upper.flags.writeable = False
        self.lower = lower
        self.upper = upper
        self.names = list(names) if names else [f"x{i}" for i in range(lower.size)]
        if len(self.names) != lower.size:
            raise ConfigurationError(
                f"Got {len(self.names)} parameter names for {lower.size} dimensions"
            )

    @classmethod
    def from_bounds(cls, bounds: Union[Dict[str, Sequence[float]], Sequence[Sequence[float]]]):
        """
        Build a search space from `{name: (min, max)}` or `[[min, max], ...]`.
        """
        if not bounds:
            raise ConfigurationError("bounds cannot be empty")
        if isinstance(bounds, dict):
            names = list(bounds.keys())
            pairs = [bounds[name] for name in names]
        else:
            names = None
            pairs = list(bounds)
        for pair in pairs:
            if len(pair) != 2:
                raise ConfigurationError(f"Each bound must be a (min, max) pair, got {pair}")
        return cls([p[0] for p in pairs], [p[1] for p in pairs], names)

    @property
    def n_dimensions(self) -> int:
        return self.lower.size

    @property
    def span(self) -> np.ndarray:
        return self.upper - self.lower

    def clip(self, params: np.ndarray) -> np.ndarray:
        return np.clip(params, self.lower, self.upper)

    def contains(self, params: np.ndarray) -> bool:
        return bool(np.all(params >= self.lower) and np.all(params <= self.upper))


def default_ref_set_size(n_dimensions: int) -> int:
    """max(20, even-rounded(1 + sqrt(1 + 40n) / 2))"""
    size = int(math.ceil(1 + math.sqrt(1 + 40 * n_dimensions) / 2))
    if size % 2:
        size += 1
    return max(MIN_REF_SET_SIZE, size)


def default_scatter_set_size(n_dimensions: int) -> int:
    """max(40, 10n)"""
    return max(MIN_SCATTER_SET_SIZE, 10 * n_dimensions)


def _is_auto(value) -> bool:
    return value is None or value == -1


@dataclass
class ScatterSearchConfig:
    """
    Every recognized Scatter Search option.

    Sizes left at None (or -1) are derived from the dimension count by
    `resolve()`; the optimizer only ever works with a resolved copy.
    """

    bounds: Union[Dict[str, Sequence[float]], Sequence[Sequence[float]], None] = None

    # Set sizes
    ref_set_size: Optional[int] = None
    scatter_set_size: Optional[int] = None
    max_elite: Optional[int] = None
    p: int = 4

    # Distances and tolerances
    dist_epsilon: float = 1e-3
    fitness_epsilon: float = 1e-3
    target_solution: float = 0.0
    good_enough_score_diff: float = 1e3
    different_enough_param_dist: float = 1e-3
    different_cost_margin: float = 1e-3

    # Toggles
    perform_flatzone_detection: bool = True
    perform_ref_set_regen: bool = True
    ref_set_regen_freq: int = 10
    perform_stop_criteria: bool = True
    stop_criteria: float = 1e-6
    perform_local_search: bool = False
    local_search_freq: int = 10
    local_search_method: str = "nelder_mead"
    filter_good_enough: bool = False
    filter_different_enough: bool = True

    # Local search
    max_no_improve: int = 100
    step_size: float = 0.01

    # Budgets
    max_iter: Optional[int] = 200
    max_eval: Optional[int] = None
    max_walltime_s: Optional[float] = None

    # Reproducibility and resources
    seed: Optional[int] = None
    n_workers: int = 1

    # Warm start and final state files
    perform_warm_start: bool = False
    warm_start_ref_set_file: Optional[str] = None
    warm_start_freqs_file: Optional[str] = None
    warm_start_probs_file: Optional[str] = None
    final_ref_set_file: Optional[str] = None
    final_freqs_file: Optional[str] = None
    final_probs_file: Optional[str] = None

    # Reporting
    track_frequencies: bool = False
    report_interval: int = 10
    stats_path: Optional[str] = None
    history_path: Optional[str] = None
    verbose: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "ScatterSearchConfig":
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {unknown}")
        return cls(**data)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    def search_space(self) -> SearchSpace:
        if self.bounds is None:
            raise ConfigurationError("bounds are required")
        return SearchSpace.from_bounds(self.bounds)

    def resolve(self, n_dimensions: Optional[int] = None) -> "ScatterSearchConfig":
        """
        Validate the options and fill in every derived size.

        Args:
            n_dimensions: Dimension count; taken from `bounds` when omitted

        Returns:
            New, fully resolved config

        Raises:
            ConfigurationError: On any invalid option or size relation
        """
        if n_dimensions is None:
            n_dimensions = self.search_space().n_dimensions
        n = n_dimensions
        if n < 1:
            raise ConfigurationError(f"Dimension count must be >= 1, got {n}")

        # Reference set size
        ref_set_size = self.ref_set_size
        if _is_auto(ref_set_size):
            ref_set_size = default_ref_set_size(n)
        else:
            ref_set_size = int(ref_set_size)
            if ref_set_size < 2:
                raise ConfigurationError(f"ref_set_size must be >= 2, got {ref_set_size}")
            if ref_set_size % 2:
                logger.info(f"ref_set_size {ref_set_size} is odd, using {ref_set_size + 1}")
                ref_set_size += 1
            if ref_set_size < MIN_REF_SET_SIZE or ref_set_size <= n:
                logger.warning(
                    f"ref_set_size {ref_set_size} is below the recommended minimum "
                    f"(>= {MIN_REF_SET_SIZE} and > {n} dimensions)"
                )

        # Scatter set size
        scatter_set_size = self.scatter_set_size
        if _is_auto(scatter_set_size):
            scatter_set_size = max(default_scatter_set_size(n), ref_set_size)
        else:
            scatter_set_size = int(scatter_set_size)
            if scatter_set_size % 2:
                logger.info(f"scatter_set_size {scatter_set_size} is odd, using {scatter_set_size + 1}")
                scatter_set_size += 1
            if scatter_set_size < MIN_SCATTER_SET_SIZE:
                logger.warning(
                    f"scatter_set_size {scatter_set_size} is below the recommended "
                    f"minimum of {MIN_SCATTER_SET_SIZE}"
                )
        if scatter_set_size < ref_set_size:
            raise ConfigurationError(
                f"scatter_set_size ({scatter_set_size}) must be >= ref_set_size ({ref_set_size})"
            )

        # Sub-regions
        if self.p is None or int(self.p) <= 0:
            raise ConfigurationError(f"p must be > 0, got {self.p}")
        if scatter_set_size < self.p:
            raise ConfigurationError(
                f"scatter_set_size ({scatter_set_size}) must be >= p ({self.p})"
            )

        # Elite cutoff
        max_elite = self.max_elite
        if _is_auto(max_elite):
            max_elite = ref_set_size // 2
        else:
            max_elite = int(max_elite)
            if not 1 <= max_elite <= ref_set_size:
                raise ConfigurationError(
                    f"max_elite must be in [1, {ref_set_size}], got {max_elite}"
                )

        for name in ("dist_epsilon", "fitness_epsilon", "different_enough_param_dist",
                     "different_cost_margin", "good_enough_score_diff", "step_size"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be >= 0, got {getattr(self, name)}")

        for name in ("ref_set_regen_freq", "local_search_freq", "max_no_improve",
                     "report_interval", "n_workers"):
            if int(getattr(self, name)) < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {getattr(self, name)}")

        for name in ("max_iter", "max_eval", "max_walltime_s"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigurationError(f"{name} must be > 0 when set, got {value}")
        if self.max_iter is None and self.max_eval is None and self.max_walltime_s is None:
            raise ConfigurationError(
                "At least one of max_iter, max_eval, max_walltime_s must be set"
            )

        if self.local_search_method not in LOCAL_SEARCH_METHODS:
            raise ConfigurationError(
                f"Unknown local_search_method '{self.local_search_method}', "
                f"expected one of {LOCAL_SEARCH_METHODS}"
            )

        if self.perform_warm_start:
            missing = [
                name for name in ("warm_start_ref_set_file", "warm_start_freqs_file",
                                  "warm_start_probs_file")
                if not getattr(self, name)
            ]
            if missing:
                raise ConfigurationError(f"Warm start requested but {missing} not set")

        return dataclasses.replace(
            self,
            ref_set_size=ref_set_size,
            scatter_set_size=scatter_set_size,
            max_elite=max_elite,
            p=int(self.p),
        )


def load_config(path: str) -> ScatterSearchConfig:
    """
    Load a Scatter Search config from a JSON file.

    Raises:
        ConfigurationError: If the file cannot be parsed or has unknown keys
    """
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return ScatterSearchConfig.from_dict(data)
