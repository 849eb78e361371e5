"""
Subset pair selection and typed candidate generation.
"""

import math
from typing import List, Tuple

import numpy as np

from .data_structures import CandidateType, Individual, ReferenceSet
from .parameters import SearchSpace


def select_pairs(ref_set: ReferenceSet, dist_epsilon: float) -> List[Tuple[int, int]]:
    """
    Enumerate the Reference Set pairs worth recombining.

    A pair (i, j), i < j, is skipped when its two members lie within
    `dist_epsilon` of each other, or when an equivalent pair (same members
    up to `dist_epsilon`, in either order) is already listed.

    Returns:
        List of index pairs into `ref_set`
    """
    params = ref_set.params_matrix()
    distances = np.linalg.norm(params[:, None, :] - params[None, :, :], axis=2)
    equal = distances < dist_epsilon

    pairs: List[Tuple[int, int]] = []
    firsts = np.empty(0, dtype=int)
    seconds = np.empty(0, dtype=int)
    size = len(ref_set)
    for i in range(size - 1):
        for j in range(i + 1, size):
            if equal[i, j]:
                continue
            if pairs:
                same = (equal[i, firsts] & equal[j, seconds]) | (equal[i, seconds] & equal[j, firsts])
                if np.any(same):
                    continue
            pairs.append((i, j))
            firsts = np.append(firsts, i)
            seconds = np.append(seconds, j)
    return pairs


def perturb(
    base: np.ndarray,
    dists: np.ndarray,
    ctype: CandidateType,
    rng,
    space: SearchSpace,
) -> np.ndarray:
    """
    Apply one perturbation formula and clamp the result into the bounds.

    Args:
        base: Base point (x1, or x2 for the extrapolating type)
        dists: Half difference (x2 - x1) / 2
        ctype: Formula to apply
        rng: RandomStream
        space: Bounds used for clamping

    Returns:
        New parameter vector inside the search space
    """
    if ctype is CandidateType.PERTURB_SHARED:
        r = rng.random()
        sign = -1.0 if rng.coin() else 1.0
        params = base + sign * r * dists
    elif ctype is CandidateType.BACKWARD:
        params = base - rng.random(base.shape) * dists
    elif ctype is CandidateType.FORWARD:
        params = base + rng.random(base.shape) * dists
    elif ctype is CandidateType.EXTRAPOLATE:
        params = base + rng.random(base.shape) * dists
    else:
        raise ValueError(f"Unknown candidate type: {ctype}")
    return space.clip(params)


def elite_cutoff(ref_set: ReferenceSet, max_elite: int) -> float:
    """Cost of the member at index `max_elite`; +inf when every member is elite."""
    if max_elite >= len(ref_set):
        return math.inf
    return ref_set[max_elite].cost


def generate_candidates(
    ref_set: ReferenceSet,
    pairs: List[Tuple[int, int]],
    max_elite: int,
    space: SearchSpace,
    rng,
) -> List[Individual]:
    """
    Build the Candidate Set for one iteration.

    Both members elite: six candidates. One elite: four. Neither: two, the
    first picked between a backward and an extrapolating step by a coin
    flip. Candidates are returned unevaluated.
    """
    mid_cost = elite_cutoff(ref_set, max_elite)
    candidates: List[Individual] = []

    for i, j in pairs:
        x1 = ref_set[i].params
        x2 = ref_set[j].params
        dists = (x2 - x1) / 2.0
        x1_elite = ref_set[i].cost < mid_cost
        x2_elite = ref_set[j].cost < mid_cost

        if x1_elite and x2_elite:
            plan = [
                (x1, CandidateType.PERTURB_SHARED),
                (x2, CandidateType.PERTURB_SHARED),
                (x1, CandidateType.BACKWARD),
                (x1, CandidateType.FORWARD),
                (x2, CandidateType.EXTRAPOLATE),
                (x2, CandidateType.EXTRAPOLATE),
            ]
        elif x1_elite or x2_elite:
            plan = [
                (x1, CandidateType.PERTURB_SHARED),
                (x1, CandidateType.BACKWARD),
                (x1, CandidateType.FORWARD),
                (x2, CandidateType.EXTRAPOLATE),
            ]
        else:
            if rng.coin():
                plan = [(x1, CandidateType.BACKWARD)]
            else:
                plan = [(x2, CandidateType.EXTRAPOLATE)]
            plan.append((x1, CandidateType.FORWARD))

        for base, ctype in plan:
            candidates.append(Individual(perturb(base, dists, ctype, rng, space)))

    return candidates
