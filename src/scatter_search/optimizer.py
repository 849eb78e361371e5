"""
Scatter Search run controller.

Owns the Reference Set, the sub-region grid, the random stream and every
counter of a run, and drives the iteration loop:

    select pairs -> generate and evaluate candidates -> update
    -> local search (every `local_search_freq` iterations)
    -> regeneration (on stagnation or every `ref_set_regen_freq` iterations)
    -> re-sort -> stop checks -> periodic statistics
"""

import logging
import time
from typing import Callable, Optional

from .checkpoint import WarmStartPaths, load_warm_start, save_warm_start
from .data_structures import OptimizationResult, ReferenceSet, RunState, RunStatus
from .diversify import build_reference_set, build_scatter_set
from .evaluation import Evaluator
from .local_search import make_local_optimizer, refine_set
from .parameters import ConfigurationError, ScatterSearchConfig
from .rand import RandomStream
from .recombine import generate_candidates, select_pairs
from .regenerate import regenerate
from .report import (
    StatsWriter,
    log_message,
    print_banner,
    print_iteration_stats,
    print_summary,
)
from .subregions import SubRegionGrid
from .update import update_reference_set

logger = logging.getLogger(__name__)

# Share of duplicate candidates since the last report that triggers regeneration
DUPLICATE_REGEN_RATIO = 0.7


class ScatterSearch:
    """
    Minimizes `objective` over the box bounds of `config`.

    Typical use is `ScatterSearch(objective, config).run()`. `initialize()`,
    `step()` and `finalize()` expose the state machine for callers that
    want to drive the loop themselves.
    """

    def __init__(self, objective: Callable, config: ScatterSearchConfig,
                 rng: Optional[RandomStream] = None):
        self.space = config.search_space()
        self.config = config.resolve(self.space.n_dimensions)
        self.objective = objective
        self.rng = rng if rng is not None else RandomStream(self.config.seed)
        self.state = RunState()
        self.grid: Optional[SubRegionGrid] = None
        self.ref_set: Optional[ReferenceSet] = None
        self.evaluator: Optional[Evaluator] = None
        self.local_optimizer = None
        self.stats_writer: Optional[StatsWriter] = None
        self.exit_reason = ""
        self._start_time = None

    @property
    def status(self) -> RunStatus:
        return self.state.status

    @property
    def best(self):
        return self.ref_set.best if self.ref_set is not None else None

    def _elapsed(self) -> float:
        return time.monotonic() - self._start_time if self._start_time is not None else 0.0

    def initialize(self):
        """Build (or load) the Reference Set; moves the run to ITERATING."""
        if self.state.status is not RunStatus.UNINITIALIZED:
            raise RuntimeError(f"Cannot initialize a run in state {self.state.status.value}")
        config = self.config
        self.state.status = RunStatus.INITIALIZING
        self._start_time = time.monotonic()

        logger.info("=" * 80)
        logger.info("Scatter Search - Configuration")
        logger.info("=" * 80)
        logger.info(f"Dimensions: {self.space.n_dimensions}")
        logger.info(f"Reference set size: {config.ref_set_size}, elite: {config.max_elite}")
        logger.info(f"Scatter set size: {config.scatter_set_size}, sub-regions: {config.p}")
        logger.info(f"Seed: {self.rng.seed}")
        logger.info(
            f"Budgets: max_iter={config.max_iter}, max_eval={config.max_eval}, "
            f"max_walltime_s={config.max_walltime_s}"
        )
        if config.verbose:
            print_banner("Scatter Search")
            log_message(f"Seed: {self.rng.seed}", emoji="🎲")

        self.grid = SubRegionGrid(self.space, config.p)
        self.evaluator = Evaluator(self.objective, self.state, config.n_workers)
        self.local_optimizer = make_local_optimizer(config, self.space, self.rng)
        self.stats_writer = StatsWriter(config.stats_path, config.history_path, config.track_frequencies)

        try:
            self.evaluator.open()
            self.stats_writer.open()
            if config.perform_warm_start:
                ref_set, freqs, probs = load_warm_start(
                    WarmStartPaths.for_loading(config),
                    self.space.n_dimensions,
                    config.ref_set_size,
                    config.p,
                )
                self.grid.set_matrices(freqs, probs)
                self.ref_set = ref_set
                logger.info("Initialized from warm-start state")
            else:
                scatter = build_scatter_set(self.grid, config.scatter_set_size, self.rng)
                self.evaluator.evaluate_set(scatter)
                self.ref_set = build_reference_set(scatter, config.ref_set_size)
        except BaseException:
            self.close(failed=True)
            raise

        self.ref_set.sort()
        self.state.mark_report()
        self.state.status = RunStatus.ITERATING
        logger.info(f"Initial best cost: {self.ref_set.best.cost:.6e}")

    def _should_regenerate(self) -> bool:
        config = self.config
        state = self.state
        if not config.perform_ref_set_regen or state.n_iter == 1:
            return False
        if state.n_iter % config.ref_set_regen_freq == 0:
            return True
        candidates = state.since_last_report("n_candidates")
        if candidates == 0:
            return False
        return state.since_last_report("n_duplicates") / candidates > DUPLICATE_REGEN_RATIO

    def _check_stop(self) -> Optional[RunStatus]:
        config = self.config
        state = self.state
        if config.max_iter is not None and state.n_iter >= config.max_iter:
            self.exit_reason = "max_iter reached"
            return RunStatus.EXHAUSTED
        if config.max_eval is not None and state.n_function_evals >= config.max_eval:
            self.exit_reason = "max_eval reached"
            return RunStatus.EXHAUSTED
        if config.max_walltime_s is not None and self._elapsed() >= config.max_walltime_s:
            self.exit_reason = "max_walltime_s reached"
            return RunStatus.EXHAUSTED
        if config.perform_stop_criteria and is_converged(self.ref_set, config.stop_criteria):
            self.exit_reason = "reference set cost spread below stop_criteria"
            return RunStatus.CONVERGED
        return None

    def _report(self):
        self.stats_writer.write_stats(self.state, self.ref_set)
        if self.config.verbose:
            print_iteration_stats(self.state, self.ref_set)
        self.state.mark_report()

    def step(self) -> RunStatus:
        """Run one iteration and return the resulting status."""
        if self.state.status is not RunStatus.ITERATING:
            raise RuntimeError(f"Cannot iterate a run in state {self.state.status.value}")
        config = self.config
        state = self.state
        state.n_iter += 1

        try:
            pairs = select_pairs(self.ref_set, config.dist_epsilon)
            candidates = generate_candidates(self.ref_set, pairs, config.max_elite, self.space, self.rng)
            state.candidates_size = len(candidates)
            state.n_candidates += len(candidates)
            self.evaluator.evaluate_set(candidates)

            update_reference_set(self.ref_set, candidates, config, state, self.grid)

            if config.perform_local_search and state.n_iter % config.local_search_freq == 0:
                refine_set(self.ref_set, config, self.evaluator, self.local_optimizer, state)
                self.ref_set.sort()

            if self._should_regenerate():
                regenerate(
                    self.ref_set,
                    self.grid,
                    self.evaluator,
                    self.rng,
                    config.max_elite,
                    config.scatter_set_size,
                    state,
                    track_frequencies=config.track_frequencies,
                )
            self.ref_set.sort()
        except BaseException:
            self.close(failed=True)
            raise

        self.stats_writer.write_history(state, self.ref_set, self.grid)

        stop = self._check_stop()
        if state.n_iter % config.report_interval == 0:
            self._report()
        if stop is not None:
            state.status = stop
            logger.info(f"Stopping after iteration {state.n_iter}: {self.exit_reason}")
        return state.status

    def finalize(self) -> OptimizationResult:
        """Final refinement pass, final statistics and optional state save."""
        if self.state.status not in (RunStatus.CONVERGED, RunStatus.EXHAUSTED):
            raise RuntimeError(f"Cannot finalize a run in state {self.state.status.value}")
        try:
            refine_set(self.ref_set, self.config, self.evaluator, self.local_optimizer, self.state)
            self.ref_set.sort()
            self._report()

            paths = WarmStartPaths.for_saving(self.config)
            if paths is not None:
                save_warm_start(self.ref_set, self.grid, paths)
        finally:
            self.close(failed=False)

        self.state.status = RunStatus.FINALIZED
        result = OptimizationResult(
            best=self.ref_set.best.copy(),
            ref_set=self.ref_set,
            status=self.state.status,
            exit_reason=self.exit_reason,
            state=self.state,
            elapsed_s=self._elapsed(),
            parameter_names=self.space.names,
        )
        logger.info(f"Finished: best cost {result.best.cost:.6e} after {self.state.n_iter} iterations")
        if self.config.verbose:
            print_summary(result)
        return result

    def close(self, failed: bool = False):
        """Release the worker pool and the statistics files."""
        if self.evaluator is not None:
            self.evaluator.close(terminate=failed)
        if self.stats_writer is not None:
            self.stats_writer.close()

    def run(self) -> OptimizationResult:
        """Initialize, iterate until a stop condition holds, finalize."""
        self.initialize()
        try:
            while self.step() is RunStatus.ITERATING:
                pass
        except KeyboardInterrupt:
            logger.info("Optimization interrupted by user (KeyboardInterrupt)")
            self.close(failed=True)
            raise
        return self.finalize()


def is_converged(ref_set: ReferenceSet, stop_criteria: float) -> bool:
    """All Reference Set costs lie within `stop_criteria` of each other."""
    return abs(ref_set.worst.cost - ref_set.best.cost) < stop_criteria


def run_scatter_search(objective: Callable, bounds=None, config: Optional[ScatterSearchConfig] = None,
                       **options) -> OptimizationResult:
    """
    One-call entry point.

    Args:
        objective: Callable mapping a parameter vector to a cost
        bounds: `{name: (min, max)}` or `[[min, max], ...]`; overrides `config.bounds`
        config: Base configuration
        **options: Any ScatterSearchConfig field, applied on top of `config`

    Returns:
        OptimizationResult

    Raises:
        ConfigurationError: Before any evaluation if the configuration is invalid
        ObjectiveEvaluationError: If the objective fails during the run
    """
    data = config.to_dict() if config is not None else {}
    data.update(options)
    if bounds is not None:
        data["bounds"] = bounds
    if data.get("bounds") is None:
        raise ConfigurationError("bounds are required")
    return ScatterSearch(objective, ScatterSearchConfig.from_dict(data)).run()
