# src/ksengine/helpers.py
"""Numerical helpers shared by equations and consistency checks."""

import math

import numpy as np

from ksengine.typing import Float1D


def round_to(x: float, threshold: float = 1.0) -> float:
    """Round *x* to the nearest multiple of *threshold*."""
    if threshold <= 0:
        raise ValueError(f"threshold must be positive, got {threshold}")
    return float(np.round(x / threshold) * threshold)


def same_rounded(a: float, b: float, threshold: float = 1.0) -> bool:
    """
    Compare two values after rounding both to a multiple of *threshold*.

    Used for every equality test between aggregates, so that accumulated
    floating-point noise below the threshold never counts as an error.
    """
    return round_to(a, threshold) == round_to(b, threshold)


def round_near(x: float, target: float = 0.0, threshold: float = 1e-4) -> float:
    """Return *target* if *x* is within *threshold* of it, else *x* unchanged."""
    return target if abs(x - target) < threshold else x


def log_growth(
    final: float, initial: float, periods: float, offset: float = 1.0
) -> float:
    """
    Average log growth rate per period.

    ``(ln(final + offset) - ln(initial + offset)) / periods``

    Returns NaN when *periods* is not positive or either log is undefined.

    Examples
    --------
    >>> round(log_growth(200.0, 100.0, 10), 4)
    0.0688
    """
    if periods <= 0:
        return math.nan
    with np.errstate(invalid="ignore", divide="ignore"):
        num = np.log(final + offset) - np.log(initial + offset)
    return float(num / periods)


def weighted_mean(values: Float1D, weights: Float1D) -> float:
    """Weighted mean; NaN when the weights sum to zero or arrays are empty."""
    values = np.asarray(values, dtype=np.float64)
    weights = np.asarray(weights, dtype=np.float64)
    total = weights.sum()
    if values.size == 0 or total == 0.0:
        return math.nan
    return float((values * weights).sum() / total)
