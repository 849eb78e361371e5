"""
Greedy Reference Set update with duplicate and flatzone handling.
"""

from typing import List, Optional

import numpy as np

from .data_structures import Individual, ReferenceSet, RunState


def find_duplicate(ref_set: ReferenceSet, candidate: Individual, dist_epsilon: float) -> Optional[int]:
    """
    Index of a Reference Set member within `dist_epsilon` of the candidate.

    Members are scanned from the worst to the best, so the worst matching
    member is reported.
    """
    distances = np.linalg.norm(ref_set.params_matrix() - candidate.params, axis=1)
    for index in range(len(ref_set) - 1, -1, -1):
        if distances[index] < dist_epsilon:
            return index
    return None


def is_in_flatzone(ref_set: ReferenceSet, candidate: Individual, fitness_epsilon: float) -> bool:
    """
    True when the candidate cost lies strictly inside the relative band
    cost * (1 -/+ fitness_epsilon) of any Reference Set member.
    """
    costs = ref_set.costs()
    margins = np.abs(costs) * fitness_epsilon
    inside = (candidate.cost < costs + margins) & (candidate.cost > costs - margins)
    return bool(np.any(inside))


def update_reference_set(
    ref_set: ReferenceSet,
    candidates: List[Individual],
    config,
    state: RunState,
    grid=None,
):
    """
    Merge evaluated candidates into the Reference Set, in place.

    Candidates are visited in ascending cost order. A candidate better than
    the current best always replaces it. After that, while the candidate
    beats the current worst member:

    - without a duplicate it replaces the worst member, unless flatzone
      detection flags it (then it is only counted);
    - with a duplicate it replaces that duplicate only if strictly better.

    The set stays sorted and keeps its size after every replacement.

    Args:
        ref_set: Reference Set to update
        candidates: Evaluated Candidate Set
        config: Resolved ScatterSearchConfig
        state: RunState whose counters are incremented
        grid: SubRegionGrid, updated on each replacement when frequency
            tracking is enabled
    """
    if not candidates:
        return

    ordered = sorted(candidates, key=lambda member: member.cost)

    def _replace(index: int, candidate: Individual):
        ref_set.replace(index, candidate)
        state.n_ref_set_update += 1
        if grid is not None and config.track_frequencies:
            grid.update_frequency(candidate.params)

    i = 0
    if ordered[0].cost < ref_set.best.cost:
        _replace(0, ordered[0])
        i = 1

    last = len(ref_set) - 1
    while i < len(ordered) and ordered[i].cost < ref_set.worst.cost:
        candidate = ordered[i]
        duplicate = find_duplicate(ref_set, candidate, config.dist_epsilon)
        if duplicate is None:
            if config.perform_flatzone_detection and is_in_flatzone(
                ref_set, candidate, config.fitness_epsilon
            ):
                state.n_flatzone_detected += 1
            else:
                _replace(last, candidate)
        else:
            state.n_duplicates += 1
            if candidate.cost < ref_set[duplicate].cost:
                _replace(duplicate, candidate)
                state.n_duplicate_replaced += 1
        i += 1
