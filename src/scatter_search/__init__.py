"""
Scatter Search / Enhanced Scatter Search global optimizer.

Derivative-free minimization of a scalar objective over box bounds:
stratified sub-region sampling seeds a diverse Reference Set, which is
improved by pairwise recombination, greedy replacement with duplicate and
flatzone handling, periodic regeneration and optional local search.
"""

from .data_structures import Individual, OptimizationResult, ReferenceSet, RunState, RunStatus
from .evaluation import ObjectiveEvaluationError
from .optimizer import ScatterSearch, run_scatter_search
from .parameters import ConfigurationError, ScatterSearchConfig, SearchSpace, load_config

__all__ = [
    'ConfigurationError',
    'Individual',
    'ObjectiveEvaluationError',
    'OptimizationResult',
    'ReferenceSet',
    'RunState',
    'RunStatus',
    'ScatterSearch',
    'ScatterSearchConfig',
    'SearchSpace',
    'load_config',
    'run_scatter_search',
]
