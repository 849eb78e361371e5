"""
Data structures for Scatter Search optimization.
"""

import enum
import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np


class CandidateType(enum.Enum):
    """Perturbation formula used to build a candidate from a pair."""

    PERTURB_SHARED = 0   # base -/+ r * d, one r for all dimensions
    BACKWARD = 1         # x1 - r_i * d_i
    FORWARD = 2          # x1 + r_i * d_i
    EXTRAPOLATE = 3      # x2 + r_i * d_i


class RunStatus(enum.Enum):
    """Lifecycle of a Run Controller."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FINALIZED = "finalized"


class Individual:
    """
    Parameter vector plus its cost.

    Also keeps the running mean and variance of every cost recorded for the
    current parameter vector (Welford update). Assigning new parameters
    resets those statistics.
    """

    __slots__ = ("_params", "cost", "mean_cost", "var_cost", "n_evaluations")

    def __init__(self, params, cost: float = math.inf):
        self._params = np.array(params, dtype=float)
        self.cost = float(cost)
        self.mean_cost = 0.0
        self.var_cost = 0.0
        self.n_evaluations = 0

    @property
    def params(self) -> np.ndarray:
        return self._params

    @params.setter
    def params(self, value):
        self._params = np.array(value, dtype=float)
        self.mean_cost = 0.0
        self.var_cost = 0.0
        self.n_evaluations = 0

    @property
    def n_dimensions(self) -> int:
        return self._params.shape[0]

    def record_cost(self, cost: float):
        """Store a freshly evaluated cost and fold it into the running stats."""
        self.cost = float(cost)
        self.n_evaluations += 1
        delta = self.cost - self.mean_cost
        self.mean_cost += delta / self.n_evaluations
        # Running sum of squared deviations, turned into a variance below
        m2 = self.var_cost * max(self.n_evaluations - 2, 0) + delta * (self.cost - self.mean_cost)
        self.var_cost = m2 / (self.n_evaluations - 1) if self.n_evaluations > 1 else 0.0

    def copy(self) -> "Individual":
        clone = Individual(self._params, self.cost)
        clone.mean_cost = self.mean_cost
        clone.var_cost = self.var_cost
        clone.n_evaluations = self.n_evaluations
        return clone

    def distance(self, other: "Individual") -> float:
        """Euclidean distance between the two parameter vectors."""
        return float(np.linalg.norm(self._params - other._params))

    def __repr__(self):
        return f"Individual(params={self._params.tolist()}, cost={self.cost:.6e})"


class ReferenceSet:
    """
    Fixed-size collection of Individuals kept sorted ascending by cost.

    Members are owned by the set; anything coming in is copied.
    """

    def __init__(self, members: List[Individual]):
        if not members:
            raise ValueError("Reference set cannot be empty")
        self.members = [member.copy() for member in members]
        self.sort()

    def __len__(self):
        return len(self.members)

    def __getitem__(self, index) -> Individual:
        return self.members[index]

    def __iter__(self):
        return iter(self.members)

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def best(self) -> Individual:
        return self.members[0]

    @property
    def worst(self) -> Individual:
        return self.members[-1]

    def sort(self):
        """Stable sort ascending by cost."""
        self.members.sort(key=lambda member: member.cost)

    def is_sorted(self) -> bool:
        costs = self.costs()
        return bool(np.all(costs[:-1] <= costs[1:]))

    def costs(self) -> np.ndarray:
        return np.array([member.cost for member in self.members])

    def params_matrix(self) -> np.ndarray:
        """(size, n) matrix of parameter vectors."""
        return np.vstack([member.params for member in self.members])

    def replace(self, index: int, individual: Individual) -> int:
        """
        Put a copy of `individual` at `index` and restore the sort order.

        Only the replaced member can be out of place, so it is bubbled
        towards its slot instead of re-sorting the whole set.

        Returns:
            Final index of the new member
        """
        self.members[index] = individual.copy()
        return self._resort_member(index)

    def _resort_member(self, index: int) -> int:
        members = self.members
        while index > 0 and members[index].cost < members[index - 1].cost:
            members[index - 1], members[index] = members[index], members[index - 1]
            index -= 1
        while index < len(members) - 1 and members[index].cost > members[index + 1].cost:
            members[index + 1], members[index] = members[index], members[index + 1]
            index += 1
        return index

    def cost_statistics(self):
        """
        Mean and sample variance of the member costs (Welford).

        Returns:
            Tuple of (mean, variance); variance is 0.0 for a single member
        """
        mean = 0.0
        m2 = 0.0
        for count, member in enumerate(self.members, start=1):
            delta = member.cost - mean
            mean += delta / count
            m2 += delta * (member.cost - mean)
        n = len(self.members)
        variance = m2 / (n - 1) if n > 1 else 0.0
        return mean, variance


@dataclass
class RunState:
    """Counters and bookkeeping owned by the Run Controller."""

    n_iter: int = 0
    n_function_evals: int = 0
    n_ref_set_update: int = 0
    n_duplicates: int = 0
    n_duplicate_replaced: int = 0
    n_flatzone_detected: int = 0
    n_refinement: int = 0
    n_regen: int = 0
    n_candidates: int = 0
    candidates_size: int = 0
    status: RunStatus = RunStatus.UNINITIALIZED
    last_report: dict = field(default_factory=dict)

    COUNTERS = (
        "n_function_evals",
        "n_ref_set_update",
        "n_duplicates",
        "n_duplicate_replaced",
        "n_flatzone_detected",
        "n_refinement",
        "n_regen",
        "n_candidates",
    )

    def counters(self) -> dict:
        return {name: getattr(self, name) for name in self.COUNTERS}

    def mark_report(self):
        """Remember the counters so the next report can show deltas."""
        self.last_report = self.counters()

    def since_last_report(self, name: str) -> int:
        return getattr(self, name) - self.last_report.get(name, 0)


@dataclass
class OptimizationResult:
    """What a finished run hands back to the caller."""

    best: Individual
    ref_set: ReferenceSet
    status: RunStatus
    exit_reason: str
    state: RunState
    elapsed_s: float
    parameter_names: Optional[List[str]] = None

    @property
    def x(self) -> np.ndarray:
        return self.best.params.copy()

    @property
    def fun(self) -> float:
        return self.best.cost
