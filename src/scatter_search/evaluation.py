"""
Objective evaluation, sequential or through a multiprocessing pool.
"""

import logging
import math
from multiprocessing import Pool
from typing import Callable, List

import numpy as np

from .data_structures import Individual, RunState

logger = logging.getLogger(__name__)


class ObjectiveEvaluationError(RuntimeError):
    """The objective raised or returned a non-numeric cost."""


def _checked_cost(value, params) -> float:
    try:
        cost = float(value)
    except (TypeError, ValueError) as e:
        raise ObjectiveEvaluationError(
            f"Objective returned a non-numeric cost {value!r} for {np.asarray(params).tolist()}"
        ) from e
    if math.isnan(cost):
        raise ObjectiveEvaluationError(
            f"Objective returned NaN for {np.asarray(params).tolist()}"
        )
    return cost


def _evaluate_worker(args):
    """Pool worker: returns (cost, idx) so results can be placed by index."""
    objective, params, idx = args
    return objective(params), idx


def cleanup_multiprocessing_resources(pool):
    """Close and join a pool, terminating it if a clean shutdown fails."""
    if pool is None:
        return

    try:
        pool.close()
        pool.join()
        logger.debug("Multiprocessing pool cleaned up successfully")
    except Exception as e:
        logger.error(f"Error cleaning up multiprocessing pool: {e}")
        pool.terminate()
        pool.join()


class Evaluator:
    """
    Wraps the objective callback and counts every evaluation.

    With `n_workers > 1` candidate batches go through a process pool; the
    objective must then be picklable (a module-level function).
    """

    def __init__(self, objective: Callable, state: RunState, n_workers: int = 1):
        if not callable(objective):
            raise TypeError("objective must be callable")
        self.objective = objective
        self.state = state
        self.n_workers = n_workers
        self.pool = None

    def open(self):
        if self.n_workers > 1 and self.pool is None:
            logger.info(f"Creating multiprocessing pool with {self.n_workers} workers")
            self.pool = Pool(processes=self.n_workers)

    def close(self, terminate: bool = False):
        if self.pool is None:
            return
        if terminate:
            self.pool.terminate()
            self.pool.join()
        else:
            cleanup_multiprocessing_resources(self.pool)
        self.pool = None

    def cost(self, params: np.ndarray) -> float:
        """Evaluate a bare parameter vector (used by the local searches)."""
        try:
            value = self.objective(np.array(params, dtype=float))
        except ObjectiveEvaluationError:
            raise
        except Exception as e:
            raise ObjectiveEvaluationError(f"Objective failed: {e}") from e
        self.state.n_function_evals += 1
        return _checked_cost(value, params)

    def evaluate(self, individual: Individual) -> Individual:
        individual.record_cost(self.cost(individual.params))
        return individual

    def evaluate_set(self, individuals: List[Individual]) -> List[Individual]:
        """
        Evaluate every Individual in place.

        Returns only once all costs are in, which is the barrier before the
        Reference Set is touched.
        """
        if self.pool is None or len(individuals) < 2:
            for individual in individuals:
                self.evaluate(individual)
            return individuals

        costs = [None] * len(individuals)
        eval_args = [
            (self.objective, individual.params, idx) for idx, individual in enumerate(individuals)
        ]
        try:
            # Results arrive in arbitrary order, the index puts them back in place
            for value, idx in self.pool.imap_unordered(_evaluate_worker, eval_args):
                costs[idx] = value
        except Exception as e:
            raise ObjectiveEvaluationError(f"Objective failed in worker: {e}") from e

        self.state.n_function_evals += len(individuals)
        for individual, value in zip(individuals, costs):
            individual.record_cost(_checked_cost(value, individual.params))
        return individuals
