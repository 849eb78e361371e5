"""
Tests for Individuals, the Reference Set container and run counters.
"""

import numpy as np
import pytest
from hypothesis import given, settings, strategies as st

from scatter_search.conftest import make_ref_set
from scatter_search.data_structures import Individual, ReferenceSet, RunState


def test_individual_running_statistics():
    individual = Individual([0.0, 1.0])
    for cost in (2.0, 4.0, 9.0):
        individual.record_cost(cost)
    assert individual.cost == 9.0
    assert individual.n_evaluations == 3
    assert individual.mean_cost == pytest.approx(5.0)
    assert individual.var_cost == pytest.approx(np.var([2.0, 4.0, 9.0], ddof=1))


def test_new_params_reset_statistics():
    individual = Individual([0.0])
    individual.record_cost(1.0)
    individual.record_cost(3.0)
    individual.params = [1.0]
    assert individual.n_evaluations == 0
    assert individual.var_cost == 0.0


def test_copy_does_not_share_params():
    individual = Individual([1.0, 2.0], 3.0)
    clone = individual.copy()
    clone.params[0] = 10.0
    assert individual.params[0] == 1.0
    assert clone.cost == 3.0


def test_reference_set_copies_members():
    member = Individual([1.0], 1.0)
    ref_set = ReferenceSet([member, Individual([2.0], 0.5)])
    member.params[0] = 99.0
    assert ref_set.best.cost == 0.5
    assert 99.0 not in ref_set.params_matrix()


def test_reference_set_cost_statistics():
    ref_set = make_ref_set([1.0, 2.0, 3.0, 6.0])
    mean, variance = ref_set.cost_statistics()
    assert mean == pytest.approx(3.0)
    assert variance == pytest.approx(np.var([1.0, 2.0, 3.0, 6.0], ddof=1))


def test_counters_since_last_report():
    state = RunState()
    state.n_duplicates = 4
    state.mark_report()
    state.n_duplicates = 7
    assert state.since_last_report("n_duplicates") == 3
    assert state.since_last_report("n_ref_set_update") == 0


@settings(max_examples=100)
@given(
    costs=st.lists(st.floats(min_value=-1e6, max_value=1e6), min_size=2, max_size=20),
    index=st.integers(min_value=0, max_value=19),
    new_cost=st.floats(min_value=-1e6, max_value=1e6),
)
def test_property_replace_keeps_order(costs, index, new_cost):
    """
    Property 4: Replacing any member keeps the Reference Set sorted and sized.
    """
    ref_set = make_ref_set(costs, params=[[float(i)] for i in range(len(costs))])
    index = index % len(costs)
    position = ref_set.replace(index, Individual([-1.0], new_cost))
    assert len(ref_set) == len(costs)
    assert ref_set.is_sorted()
    assert ref_set[position].cost == new_cost
