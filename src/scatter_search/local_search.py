"""
Local refinement of Reference Set members.

Two refinement methods share the same contract: take a start point and a
cost function, return an owned copy of the refined point and its cost.
`refine_set` decides which members are worth the extra evaluations.
"""

import enum
import logging
from typing import Optional, Tuple

import numpy as np
from scipy.optimize import minimize

from .data_structures import ReferenceSet, RunState

logger = logging.getLogger(__name__)


class LocalSearchMethod(enum.Enum):
    NELDER_MEAD = "nelder_mead"
    HILL_CLIMBING = "hill_climbing"


class NelderMeadOptimizer:
    """
    Bounded Nelder-Mead simplex from scipy.

    Iterations are capped at `max_iter`; a run that does not improve the
    start cost returns the start point unchanged.
    """

    def __init__(self, space, max_iter: int, xatol: float = 1e-3, initial_step: float = 0.1):
        self.space = space
        self.max_iter = max_iter
        self.xatol = xatol
        self.initial_step = initial_step

    def _initial_simplex(self, start: np.ndarray) -> np.ndarray:
        simplex = np.tile(start, (start.size + 1, 1))
        # Narrow dimensions get a step of at most half their span
        steps = np.minimum(self.initial_step, self.space.span / 2.0)
        for i in range(start.size):
            step = steps[i]
            # Step inwards when the start point sits near the upper bound
            if start[i] + step > self.space.upper[i]:
                step = -step
            simplex[i + 1, i] = np.clip(start[i] + step, self.space.lower[i], self.space.upper[i])
        return simplex

    def minimize(self, start: np.ndarray, start_cost: float, cost) -> Tuple[np.ndarray, float]:
        result = minimize(
            cost,
            np.array(start, dtype=float),
            method="Nelder-Mead",
            bounds=list(zip(self.space.lower, self.space.upper)),
            options={
                "maxiter": self.max_iter,
                "xatol": self.xatol,
                "initial_simplex": self._initial_simplex(np.asarray(start, dtype=float)),
            },
        )
        refined_cost = float(result.fun)
        if not np.isfinite(refined_cost) or refined_cost >= start_cost:
            return np.array(start, dtype=float), start_cost
        return self.space.clip(np.array(result.x, dtype=float)), refined_cost


class HillClimber:
    """
    Stochastic hill climbing inside a box of half width `step_size`.

    Makes `max_no_improve` attempts; each draws every coordinate uniformly
    in [x - step, x + step] clamped to the bounds, and is kept only on a
    strict improvement.
    """

    def __init__(self, space, step_size: float, max_no_improve: int, rng):
        self.space = space
        self.step_size = step_size
        self.max_no_improve = max_no_improve
        self.rng = rng

    def minimize(self, start: np.ndarray, start_cost: float, cost) -> Tuple[np.ndarray, float]:
        best = np.array(start, dtype=float)
        best_cost = start_cost
        for _ in range(self.max_no_improve):
            low = np.maximum(self.space.lower, best - self.step_size)
            high = np.minimum(self.space.upper, best + self.step_size)
            trial = self.rng.uniform(low, high)
            trial_cost = cost(trial)
            if trial_cost < best_cost:
                best, best_cost = trial, trial_cost
        return best, best_cost


def make_local_optimizer(config, space, rng):
    method = LocalSearchMethod(config.local_search_method)
    if method is LocalSearchMethod.NELDER_MEAD:
        return NelderMeadOptimizer(space, max_iter=config.max_no_improve)
    return HillClimber(space, config.step_size, config.max_no_improve, rng)


def is_good_enough(cost: float, config) -> bool:
    return abs(cost - config.target_solution) < config.good_enough_score_diff


def closest_member(ref_set: ReferenceSet, index: int) -> Optional[int]:
    """Index of the nearest other member by Euclidean distance."""
    if len(ref_set) < 2:
        return None
    distances = np.linalg.norm(ref_set.params_matrix() - ref_set[index].params, axis=1)
    distances[index] = np.inf
    return int(np.argmin(distances))


def is_different_enough(ref_set: ReferenceSet, index: int, config) -> bool:
    """
    Far enough from the nearest member, with a cost outside its relative
    `different_cost_margin` band.
    """
    closest = closest_member(ref_set, index)
    if closest is None:
        return True
    member = ref_set[index]
    other = ref_set[closest]
    distance = member.distance(other)
    margin = abs(other.cost) * config.different_cost_margin
    cost_differs = member.cost > other.cost + margin or member.cost < other.cost - margin
    return distance > config.different_enough_param_dist and cost_differs


def should_refine(ref_set: ReferenceSet, index: int, config) -> bool:
    """
    Gate a member through the enabled filters.

    Both filters on: both must pass. One on: it alone decides. None on:
    nothing is refined.
    """
    use_good = config.filter_good_enough
    use_different = config.filter_different_enough
    if not use_good and not use_different:
        return False
    if use_good and not is_good_enough(ref_set[index].cost, config):
        return False
    if use_different and not is_different_enough(ref_set, index, config):
        return False
    return True


def refine_set(ref_set: ReferenceSet, config, evaluator, optimizer, state: RunState) -> int:
    """
    Refine every gated Reference Set member in place.

    Eligibility is decided on the set as it was before this pass; the set
    is left unsorted.

    Returns:
        Number of members refined
    """
    eligible = [index for index in range(len(ref_set)) if should_refine(ref_set, index, config)]
    for index in eligible:
        member = ref_set[index]
        refined, refined_cost = optimizer.minimize(member.params, member.cost, evaluator.cost)
        if refined_cost < member.cost:
            member.params = refined
            member.record_cost(refined_cost)
        state.n_refinement += 1
    if eligible:
        logger.debug(f"Refined {len(eligible)} reference set members")
    return len(eligible)
