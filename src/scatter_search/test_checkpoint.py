"""
Tests for warm-start persistence.
"""

import numpy as np
import pytest

from scatter_search.checkpoint import WarmStartPaths, load_warm_start, save_warm_start
from scatter_search.conftest import make_ref_set
from scatter_search.parameters import ConfigurationError, SearchSpace
from scatter_search.rand import RandomStream
from scatter_search.subregions import SubRegionGrid


def _paths(tmp_path):
    return WarmStartPaths(
        str(tmp_path / "ref_set.tsv"),
        str(tmp_path / "freqs.tsv"),
        str(tmp_path / "probs.tsv"),
    )


def _state():
    rng = RandomStream(11)
    space = SearchSpace([-1.0, -1.0, -1.0], [1.0, 1.0, 1.0])
    grid = SubRegionGrid(space, 4)
    for _ in range(7):
        grid.sample_biased(rng)
    params = [rng.uniform(space.lower, space.upper) for _ in range(6)]
    costs = [1.0 / 3.0, 2.0 / 7.0, np.pi, 1e-300, 123456.789012345, 0.1]
    return make_ref_set(costs, params=params), grid


def test_warm_start_round_trip_is_exact(tmp_path):
    ref_set, grid = _state()
    paths = _paths(tmp_path)
    assert save_warm_start(ref_set, grid, paths)

    loaded, freqs, probs = load_warm_start(paths, 3, 6, 4)

    np.testing.assert_array_equal(loaded.params_matrix(), ref_set.params_matrix())
    np.testing.assert_array_equal(loaded.costs(), ref_set.costs())
    np.testing.assert_array_equal(freqs, grid.freqs)
    np.testing.assert_array_equal(probs, grid.probs)


def test_saved_files_are_tab_separated(tmp_path):
    ref_set, grid = _state()
    paths = _paths(tmp_path)
    save_warm_start(ref_set, grid, paths)
    lines = (tmp_path / "ref_set.tsv").read_text().splitlines()
    assert len(lines) == 6
    assert all(len(line.split("\t")) == 4 for line in lines)
    assert (tmp_path / "freqs.tsv").read_text().splitlines()[0].split("\t")[0].isdigit()
    assert not list(tmp_path.glob("*.tmp"))


@pytest.mark.parametrize(
    "n_dimensions, ref_set_size, p",
    [(2, 6, 4), (3, 8, 4), (3, 6, 5)],
)
def test_warm_start_shape_mismatch(tmp_path, n_dimensions, ref_set_size, p):
    ref_set, grid = _state()
    paths = _paths(tmp_path)
    save_warm_start(ref_set, grid, paths)
    with pytest.raises(ConfigurationError, match="mismatch"):
        load_warm_start(paths, n_dimensions, ref_set_size, p)


def test_warm_start_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_warm_start(_paths(tmp_path), 3, 6, 4)


def test_warm_start_malformed_file(tmp_path):
    ref_set, grid = _state()
    paths = _paths(tmp_path)
    save_warm_start(ref_set, grid, paths)
    (tmp_path / "probs.tsv").write_text("0.25\tabc\t0.25\t0.25\n" * 3)
    with pytest.raises(ConfigurationError):
        load_warm_start(paths, 3, 6, 4)
