"""
Tests for search space and configuration processing.
"""

import json

import numpy as np
import pytest

from scatter_search.parameters import (
    ConfigurationError,
    ScatterSearchConfig,
    SearchSpace,
    default_ref_set_size,
    default_scatter_set_size,
    load_config,
)


def test_default_sizes_small_dimension():
    assert default_ref_set_size(2) == 20
    assert default_scatter_set_size(2) == 40


def test_default_sizes_large_dimension():
    # ceil(1 + sqrt(4001) / 2) = 33, bumped to even
    assert default_ref_set_size(100) == 34
    assert default_scatter_set_size(100) == 1000


def test_resolve_fills_derived_sizes():
    config = ScatterSearchConfig(bounds=[[-5, 5], [-5, 5]]).resolve()
    assert config.ref_set_size == 20
    assert config.scatter_set_size == 40
    assert config.max_elite == 10


def test_resolve_accepts_minus_one_as_auto():
    config = ScatterSearchConfig(bounds=[[0, 1]], ref_set_size=-1, scatter_set_size=-1, max_elite=-1).resolve()
    assert (config.ref_set_size, config.scatter_set_size, config.max_elite) == (20, 40, 10)


def test_odd_sizes_are_rounded_up():
    config = ScatterSearchConfig(bounds=[[0, 1]], ref_set_size=21, scatter_set_size=41).resolve()
    assert config.ref_set_size == 22
    assert config.scatter_set_size == 42


def test_small_explicit_sizes_are_accepted():
    config = ScatterSearchConfig(bounds=[[0, 1]], ref_set_size=4, scatter_set_size=8).resolve()
    assert config.ref_set_size == 4
    assert config.max_elite == 2


@pytest.mark.parametrize(
    "options",
    [
        {"ref_set_size": 20, "scatter_set_size": 10},
        {"ref_set_size": 1},
        {"p": 0},
        {"ref_set_size": 4, "scatter_set_size": 4, "p": 6},
        {"max_elite": 21},
        {"max_elite": 0},
        {"max_iter": None},
        {"max_iter": 0},
        {"local_search_method": "simulated_annealing"},
        {"ref_set_regen_freq": 0},
        {"perform_warm_start": True},
        {"dist_epsilon": -1.0},
    ],
)
def test_invalid_options_raise(options):
    with pytest.raises(ConfigurationError):
        ScatterSearchConfig(bounds=[[0, 1], [0, 1]], **options).resolve()


def test_other_budget_is_enough_without_max_iter():
    config = ScatterSearchConfig(bounds=[[0, 1]], max_iter=None, max_eval=500).resolve()
    assert config.max_eval == 500


def test_search_space_rejects_inverted_bounds():
    with pytest.raises(ConfigurationError, match="min"):
        SearchSpace.from_bounds({"a": (1.0, 0.0)})


def test_search_space_rejects_zero_range():
    with pytest.raises(ConfigurationError):
        SearchSpace.from_bounds([[1.0, 1.0]])


def test_search_space_is_immutable():
    space = SearchSpace.from_bounds({"a": (0.0, 1.0), "b": (-2.0, 2.0)})
    assert space.names == ["a", "b"]
    with pytest.raises(ValueError):
        space.lower[0] = 5.0


def test_search_space_clip():
    space = SearchSpace([0.0, 0.0], [1.0, 2.0])
    np.testing.assert_array_equal(space.clip(np.array([-1.0, 3.0])), [0.0, 2.0])


def test_load_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"bounds": [[-1, 1], [-2, 2]], "p": 5, "seed": 3}))
    config = load_config(str(path))
    assert config.p == 5
    assert config.seed == 3


def test_load_config_unknown_key(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"bounds": [[-1, 1]], "refset": 20}))
    with pytest.raises(ConfigurationError, match="Unknown"):
        load_config(str(path))


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(str(tmp_path / "missing.json"))
