"""
Random number source utilities.

Terrain generation only needs a zero-argument callable returning floats in
[0, 1). By default that callable is backed by a NumPy ``Generator`` so a
seed reproduces the same terrain; tests can pass any callable instead,
including one that always returns the same value.
"""

from typing import Callable, Optional

import numpy as np

RandomSource = Callable[[], float]


def get_random_source(seed: Optional[int] = None) -> RandomSource:
    """
    Build a uniform [0, 1) random source.

    Args:
        seed: Optional integer seed. ``None`` draws fresh OS entropy.

    Returns:
        Callable returning one float per call
    """
    rng = np.random.default_rng(seed)

    def random() -> float:
        return float(rng.random())

    return random


def constant_source(value: float) -> RandomSource:
    """Random source that always returns ``value``."""
    if not 0.0 <= value < 1.0:
        raise ValueError(f"constant source value must lie in [0, 1), got {value}")
    return lambda: value
