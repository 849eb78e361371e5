"""
Seedable random stream shared by every sampling routine of a run.

A single RandomStream is owned by the Run Controller and mutated by every
draw, so draws are reproducible only when they happen in a fixed order.
Work that samples concurrently (for instance candidate generation split
across processes) must take its own child stream from `spawn()` rather
than share the parent.
"""

import os
import time
from typing import List, Optional

import numpy as np


def process_seed() -> int:
    """Seed derived from wall clock and process id."""
    return (int(time.time() * 1e6) ^ os.getpid()) & 0xFFFFFFFF


class RandomStream:
    """Uniform sampler over [0, 1) with reseed support."""

    def __init__(self, seed: Optional[int] = None):
        self.reseed(seed)

    def reseed(self, seed: Optional[int] = None):
        if seed is None:
            seed = process_seed()
        self.seed = int(seed)
        self._seed_sequence = np.random.SeedSequence(self.seed)
        self.generator = np.random.Generator(np.random.PCG64(self._seed_sequence))

    def random(self, size=None):
        """U[0, 1) scalar, or array when `size` is given."""
        return self.generator.random(size)

    def uniform(self, low, high):
        """Uniform draw in [low, high); broadcasts over array bounds."""
        low = np.asarray(low, dtype=float)
        high = np.asarray(high, dtype=float)
        return low + (high - low) * self.generator.random(np.broadcast(low, high).shape or None)

    def coin(self) -> bool:
        return self.generator.random() < 0.5

    def spawn(self, n: int) -> List["RandomStream"]:
        """Independent child streams, one per concurrent task."""
        children = []
        for child_sequence in self._seed_sequence.spawn(n):
            child = RandomStream.__new__(RandomStream)
            child.seed = self.seed
            child._seed_sequence = child_sequence
            child.generator = np.random.Generator(np.random.PCG64(child_sequence))
            children.append(child)
        return children
