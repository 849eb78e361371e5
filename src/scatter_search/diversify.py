"""
Scatter Set and Reference Set construction.
"""

import logging
from typing import List

import numpy as np

from .data_structures import Individual, ReferenceSet
from .parameters import ConfigurationError
from .subregions import SubRegionGrid

logger = logging.getLogger(__name__)


def build_scatter_set(grid: SubRegionGrid, size: int, rng) -> List[Individual]:
    """
    Sample an unevaluated Scatter Set.

    The first `p` members are stratified: member k draws every coordinate
    from sub-region k. The rest are drawn from the frequency-biased
    distribution, which updates the grid as a side effect.

    Args:
        grid: Sub-region grid of the search space
        size: Number of members to draw
        rng: RandomStream

    Returns:
        List of Individuals with cost still at +inf

    Raises:
        ConfigurationError: If size < p
    """
    if grid.p <= 0:
        raise ConfigurationError(f"p must be > 0, got {grid.p}")
    if size < grid.p:
        raise ConfigurationError(f"Scatter set size ({size}) must be >= p ({grid.p})")

    scatter = [Individual(grid.sample_stratified(k, rng)) for k in range(grid.p)]
    scatter.extend(Individual(grid.sample_biased(rng)) for _ in range(size - grid.p))
    return scatter


def build_reference_set(scatter: List[Individual], ref_set_size: int) -> ReferenceSet:
    """
    Pick a Reference Set out of an evaluated Scatter Set.

    The best half is taken as is. Each remaining slot goes to the pool
    member whose distance to its nearest already selected member is the
    largest (first one on ties).

    Args:
        scatter: Evaluated Scatter Set; left unmodified
        ref_set_size: Reference Set size

    Returns:
        ReferenceSet sorted ascending by cost
    """
    if len(scatter) < ref_set_size:
        raise ConfigurationError(
            f"Scatter set size ({len(scatter)}) must be >= ref_set_size ({ref_set_size})"
        )

    pool = sorted(scatter, key=lambda member: member.cost)
    n_elite = ref_set_size // 2
    selected = pool[:n_elite]
    pool = pool[n_elite:]

    pool_params = np.vstack([member.params for member in pool]) if pool else np.empty((0, 0))
    if selected:
        selected_params = np.vstack([member.params for member in selected])
        # Distance from every pool member to its nearest selected member
        nearest = np.min(
            np.linalg.norm(pool_params[:, None, :] - selected_params[None, :, :], axis=2),
            axis=1,
        )
    else:
        nearest = np.full(len(pool), np.inf)

    for _ in range(ref_set_size - n_elite):
        chosen = int(np.argmax(nearest))
        chosen_params = pool_params[chosen]
        selected.append(pool[chosen])

        # Order-preserving removal, ties must keep resolving to the earliest index
        del pool[chosen]
        pool_params = np.delete(pool_params, chosen, axis=0)
        nearest = np.delete(nearest, chosen)
        if pool:
            nearest = np.minimum(nearest, np.linalg.norm(pool_params - chosen_params, axis=1))

    logger.debug(
        f"Reference set built: {n_elite} elite + {ref_set_size - n_elite} diverse members"
    )
    return ReferenceSet(selected)
