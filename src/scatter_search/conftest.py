import numpy as np
import pytest

from scatter_search.data_structures import Individual, ReferenceSet
from scatter_search.parameters import SearchSpace


class FixedDraws:
    """Random stream stand-in returning a constant draw."""

    def __init__(self, value=0.5, coin=False):
        self.value = value
        self.coin_value = coin

    def random(self, size=None):
        if size is None:
            return self.value
        return np.full(size, self.value)

    def uniform(self, low, high):
        low = np.asarray(low, dtype=float)
        high = np.asarray(high, dtype=float)
        return low + (high - low) * self.value

    def coin(self):
        return self.coin_value


def make_ref_set(costs, params=None):
    if params is None:
        params = [[float(i), float(-i)] for i in range(len(costs))]
    return ReferenceSet([Individual(p, c) for p, c in zip(params, costs)])


@pytest.fixture
def space():
    return SearchSpace([-5.0, -5.0], [5.0, 5.0])

