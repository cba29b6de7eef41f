"""
Descriptive statistics shared by the analysis services.

All helpers take plain sequences of floats, convert them to numpy arrays and
return builtin floats so results serialize cleanly into pydantic models.

Standard deviation is always the population formula (numpy's default
ddof=0): a practice's series, or the set of practice means in a network, is
the whole population being described, not a sample of a larger one.
"""

from typing import Sequence, Tuple

import numpy as np


def _as_array(values: Sequence[float]) -> np.ndarray:
    array = np.asarray(values, dtype=np.float64)
    if array.size == 0:
        raise ValueError("At least one value is required")
    return array


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean of a non-empty sequence."""
    return float(np.mean(_as_array(values)))


def population_std_dev(values: Sequence[float]) -> float:
    """
    Population standard deviation (divide by N, not N-1).

    Example:
        >>> round(population_std_dev([100, 110, 105, 300]), 2)
        84.51
    """
    return float(np.std(_as_array(values)))


def value_range(values: Sequence[float]) -> float:
    """Max minus min of a non-empty sequence."""
    array = _as_array(values)
    return float(np.max(array) - np.min(array))


def min_max(values: Sequence[float]) -> Tuple[float, float]:
    array = _as_array(values)
    return float(np.min(array)), float(np.max(array))


def z_score(value: float, mean_value: float, std_dev: float) -> float:
    """
    Standard score of a value.

    Returns 0.0 when std_dev is zero: with no spread there is no meaningful
    distance from the mean.
    """
    if std_dev == 0:
        return 0.0
    return float((value - mean_value) / std_dev)
