"""
Benchmark objectives.

Module-level functions so they can be sent to worker processes.
"""

import numpy as np


def sphere(x):
    x = np.asarray(x, dtype=float)
    return float(np.sum(x ** 2))


def quadratic_bowl(x):
    """(x - 2)^2 + (y + 1)^2, minimum 0 at (2, -1)."""
    return float((x[0] - 2.0) ** 2 + (x[1] + 1.0) ** 2)


def rosenbrock(x):
    x = np.asarray(x, dtype=float)
    return float(np.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1.0 - x[:-1]) ** 2))


def rastrigin(x):
    x = np.asarray(x, dtype=float)
    return float(10.0 * x.size + np.sum(x ** 2 - 10.0 * np.cos(2.0 * np.pi * x)))


def ackley(x):
    x = np.asarray(x, dtype=float)
    n = x.size
    term1 = -20.0 * np.exp(-0.2 * np.sqrt(np.sum(x ** 2) / n))
    term2 = -np.exp(np.sum(np.cos(2.0 * np.pi * x)) / n)
    return float(term1 + term2 + 20.0 + np.e)


OBJECTIVES = {
    "sphere": sphere,
    "quadratic_bowl": quadratic_bowl,
    "rosenbrock": rosenbrock,
    "rastrigin": rastrigin,
    "ackley": ackley,
}
