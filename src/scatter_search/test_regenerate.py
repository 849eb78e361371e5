"""
Tests for Reference Set regeneration.
"""

import numpy as np

from scatter_search.conftest import make_ref_set
from scatter_search.data_structures import Individual, RunState
from scatter_search.evaluation import Evaluator
from scatter_search.objectives import sphere
from scatter_search.parameters import SearchSpace
from scatter_search.rand import RandomStream
from scatter_search.regenerate import regenerate
from scatter_search.subregions import SubRegionGrid


def _setup(size=8):
    space = SearchSpace([-5.0, -5.0], [5.0, 5.0])
    params = [[0.1 * i, 0.1 * i] for i in range(size)]
    ref_set = make_ref_set([sphere(p) for p in params], params=params)
    return space, ref_set


def test_regenerate_keeps_elite_slots():
    space, ref_set = _setup()
    elite = [(m.params.copy(), m.cost) for m in ref_set.members[:4]]
    state = RunState()
    regenerate(ref_set, SubRegionGrid(space, 4), Evaluator(sphere, state), RandomStream(5), 4, 40, state)

    assert len(ref_set) == 8
    for (params, cost), member in zip(elite, ref_set.members[:4]):
        np.testing.assert_array_equal(params, member.params)
        assert cost == member.cost
    assert state.n_regen == 1
    # only the installed members are evaluated
    assert state.n_function_evals == 4
    for member in ref_set.members[4:]:
        assert member.cost == sphere(member.params)
        assert space.contains(member.params)


def test_regenerate_with_frequency_tracking():
    space, ref_set = _setup()
    grid = SubRegionGrid(space, 4)
    state = RunState()
    regenerate(ref_set, grid, Evaluator(sphere, state), RandomStream(6), 4, 40, state,
               track_frequencies=True)
    # 36 biased draws plus 4 installed members per dimension
    assert grid.freqs.sum(axis=1).tolist() == [4 + 36 + 4, 4 + 36 + 4]


def test_regenerate_is_reproducible():
    results = []
    for _ in range(2):
        space, ref_set = _setup()
        state = RunState()
        regenerate(ref_set, SubRegionGrid(space, 4), Evaluator(sphere, state), RandomStream(9), 4, 40, state)
        results.append(ref_set.params_matrix())
    np.testing.assert_array_equal(results[0], results[1])


def _hand_built_pool(points):
    def build(grid, size, rng):
        return [Individual(point) for point in points]
    return build


def _square_ref_set():
    # best at the origin, so the projection of pool point c on member j is (-c) . (-ref[j])
    params = [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [3.0, 3.0]]
    return make_ref_set([0.0, 1.0, 2.0, 3.0], params=params)


def test_regenerate_picks_minimax_projection(monkeypatch):
    monkeypatch.setattr(
        "scatter_search.regenerate.build_scatter_set",
        _hand_built_pool([[2.0, -1.0], [-1.0, 0.5], [-2.0, -2.0]]),
    )
    ref_set = _square_ref_set()
    state = RunState()
    space = SearchSpace([-5.0, -5.0], [5.0, 5.0])
    regenerate(ref_set, SubRegionGrid(space, 4), Evaluator(sphere, state), RandomStream(0), 2, 3, state)

    # slot 2: scores max(c_x, c_y) are 2, 0.5, -2
    np.testing.assert_array_equal(ref_set[2].params, [-2.0, -2.0])
    # slot 3 against members [1, 0], [-2, -2], [3, 3]: scores 3 and 1
    np.testing.assert_array_equal(ref_set[3].params, [-1.0, 0.5])
    assert ref_set[2].cost == 8.0
    assert ref_set[3].cost == 1.25
    assert state.n_function_evals == 2


def test_regenerate_ties_take_first_pool_point(monkeypatch):
    monkeypatch.setattr(
        "scatter_search.regenerate.build_scatter_set",
        _hand_built_pool([[2.0, -1.0], [-2.0, -3.0], [-2.0, -2.0]]),
    )
    ref_set = _square_ref_set()
    state = RunState()
    space = SearchSpace([-5.0, -5.0], [5.0, 5.0])
    regenerate(ref_set, SubRegionGrid(space, 4), Evaluator(sphere, state), RandomStream(0), 3, 3, state)

    # both [-2, -3] and [-2, -2] score -2
    np.testing.assert_array_equal(ref_set[3].params, [-2.0, -3.0])
    np.testing.assert_array_equal(ref_set[2].params, [0.0, 1.0])
