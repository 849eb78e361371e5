"""
Per-dimension sub-region partition with adaptive sampling bias.
"""

import numpy as np

from .parameters import ConfigurationError, SearchSpace


class SubRegionGrid:
    """
    Splits every dimension of a search space into `p` equal sub-regions.

    `freqs[i, j]` counts how often sub-region j of dimension i was visited
    (starting at 1) and `probs[i, j]` is its normalized inverse frequency,
    so rarely visited sub-regions are drawn more often.
    """

    def __init__(self, space: SearchSpace, p: int):
        if p <= 0:
            raise ConfigurationError(f"p must be > 0, got {p}")
        self.space = space
        self.p = p
        fractions = np.arange(p + 1) / p
        self.edges = space.lower[:, None] + space.span[:, None] * fractions[None, :]
        self.edges[:, -1] = space.upper
        self.freqs = np.ones((space.n_dimensions, p), dtype=np.int64)
        self.probs = np.full((space.n_dimensions, p), 1.0 / p)

    @property
    def n_dimensions(self) -> int:
        return self.freqs.shape[0]

    def set_matrices(self, freqs: np.ndarray, probs: np.ndarray):
        """Install frequency and probability matrices, e.g. from a warm start."""
        shape = (self.n_dimensions, self.p)
        if freqs.shape != shape or probs.shape != shape:
            raise ConfigurationError(
                f"Dimension mismatch: expected {shape} matrices, "
                f"got freqs {freqs.shape} and probs {probs.shape}"
            )
        self.freqs = freqs.astype(np.int64, copy=True)
        self.probs = probs.astype(float, copy=True)

    def sample_in(self, dim: int, region: int, rng) -> float:
        """Uniform draw inside one sub-region of one dimension."""
        return float(rng.uniform(self.edges[dim, region], self.edges[dim, region + 1]))

    def sample_stratified(self, region: int, rng) -> np.ndarray:
        """Vector whose every coordinate lies in sub-region `region`."""
        return np.array([self.sample_in(i, region, rng) for i in range(self.n_dimensions)])

    def choose_subregion(self, dim: int, r: float) -> int:
        """
        First sub-region whose cumulative probability reaches `r`.

        Falls back to the last sub-region when rounding keeps the cumulative
        sum below `r`.
        """
        total = 0.0
        for region in range(self.p):
            total += self.probs[dim, region]
            if r <= total:
                return region
        return self.p - 1

    def record_visit(self, dim: int, region: int):
        """Count one visit and recompute the whole probability row."""
        self.freqs[dim, region] += 1
        inverse = 1.0 / self.freqs[dim]
        self.probs[dim] = inverse / inverse.sum()

    def sample_biased(self, rng) -> np.ndarray:
        """
        Vector drawn coordinate by coordinate from the biased distribution.

        Every draw updates the matrices, so consecutive calls drift away
        from already crowded sub-regions.
        """
        params = np.empty(self.n_dimensions)
        for i in range(self.n_dimensions):
            region = self.choose_subregion(i, rng.random())
            self.record_visit(i, region)
            params[i] = self.sample_in(i, region, rng)
        return params

    def locate(self, params: np.ndarray) -> np.ndarray:
        """Sub-region index of every coordinate (upper bound maps to the last one)."""
        regions = np.empty(self.n_dimensions, dtype=np.int64)
        for i in range(self.n_dimensions):
            region = np.searchsorted(self.edges[i], params[i], side="right") - 1
            regions[i] = min(max(region, 0), self.p - 1)
        return regions

    def update_frequency(self, params: np.ndarray):
        """Record where a newly accepted Reference Set member landed."""
        for i, region in enumerate(self.locate(params)):
            self.record_visit(i, int(region))
