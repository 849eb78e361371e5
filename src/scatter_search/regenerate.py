"""
Partial rebuild of the non-elite Reference Set members.
"""

import logging

import numpy as np

from .data_structures import ReferenceSet, RunState
from .diversify import build_scatter_set

logger = logging.getLogger(__name__)


def regenerate(
    ref_set: ReferenceSet,
    grid,
    evaluator,
    rng,
    max_elite: int,
    scatter_set_size: int,
    state: RunState,
    track_frequencies: bool = False,
):
    """
    Replace Reference Set slots `max_elite .. size-1` with fresh points.

    A new Scatter Set is sampled. For slot k, every pool point c is scored by
    max_j (best - c) . (best - ref[j]) over the members j = 1..k, and the
    point with the smallest score wins. Only the winners are evaluated.
    Slots below `max_elite` are left untouched; the set is left unsorted
    for the caller to re-sort.

    Args:
        ref_set: Sorted Reference Set, modified in place
        grid: SubRegionGrid used to sample the pool
        evaluator: Evaluator for the chosen points
        rng: RandomStream
        max_elite: Number of leading members kept
        scatter_set_size: Size of the fresh pool
        state: RunState, `n_regen` is incremented
        track_frequencies: Record the new members in the grid
    """
    pool = build_scatter_set(grid, scatter_set_size, rng)
    pool_params = np.vstack([member.params for member in pool])
    best = ref_set.best.params.copy()

    for k in range(max_elite, len(ref_set)):
        if not pool:
            break
        columns = max(k, 1)
        members = ref_set.params_matrix()[1:columns + 1]
        # (n, k) matrix of differences between the best member and members 1..k
        directions = (best[None, :] - members).T
        projections = (best[None, :] - pool_params) @ directions
        chosen = int(np.argmin(np.max(projections, axis=1)))

        winner = evaluator.evaluate(pool[chosen])
        ref_set.members[k] = winner.copy()
        if track_frequencies:
            grid.update_frequency(winner.params)

        del pool[chosen]
        pool_params = np.delete(pool_params, chosen, axis=0)

    state.n_regen += 1
    logger.debug(f"Regenerated reference set slots {max_elite}..{len(ref_set) - 1}")
