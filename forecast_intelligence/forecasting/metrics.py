"""
Statistical helpers shared by the analysis components.

All functions accept plain lists of floats and return plain floats so
results stay JSON-serializable.
"""

from typing import List, Optional, Sequence, Tuple
import numpy as np


def linear_fit(values: Sequence[float]) -> Tuple[float, float, float]:
    """Least-squares line over index positions; returns (slope, intercept, r_squared)"""
    n = len(values)
    if n < 2:
        return 0.0, float(values[0]) if n else 0.0, 0.0

    x = np.arange(n, dtype=float)
    y = np.asarray(values, dtype=float)
    x_mean = np.mean(x)
    y_mean = np.mean(y)

    denominator = np.sum((x - x_mean) ** 2)
    slope = np.sum((x - x_mean) * (y - y_mean)) / denominator
    intercept = y_mean - slope * x_mean

    y_pred = slope * x + intercept
    ss_res = np.sum((y - y_pred) ** 2)
    ss_tot = np.sum((y - y_mean) ** 2)
    r_squared = 1 - (ss_res / ss_tot) if ss_tot > 0 else 0.0

    return float(slope), float(intercept), float(max(0.0, r_squared))


def compound_growth_fit(values: Sequence[float]) -> Optional[Tuple[float, float]]:
    """
    Log-linear fit of a strictly positive series.

    Returns (monthly growth %, r_squared), or None when any value is not positive.
    """
    if len(values) < 2 or any(v <= 0 for v in values):
        return None
    slope, _, r_squared = linear_fit(np.log(np.asarray(values, dtype=float)).tolist())
    return float((np.exp(slope) - 1) * 100), r_squared


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population std / |mean|; zero for an empty or zero-mean series"""
    if len(values) == 0:
        return 0.0
    mean_val = np.mean(values)
    if mean_val == 0:
        return 0.0
    return float(np.std(values) / abs(mean_val))


def correlation(a: Sequence[float], b: Sequence[float]) -> float:
    """Pearson correlation; zero when either series is constant"""
    n = min(len(a), len(b))
    if n < 2:
        return 0.0
    x = np.asarray(a[:n], dtype=float)
    y = np.asarray(b[:n], dtype=float)
    if np.std(x) == 0 or np.std(y) == 0:
        return 0.0
    return float(np.clip(np.corrcoef(x, y)[0, 1], -1.0, 1.0))


def percent_changes(values: Sequence[float]) -> List[float]:
    """Month-over-month % changes, skipping months that follow a zero"""
    changes = []
    for previous, current in zip(values[:-1], values[1:]):
        if previous != 0:
            changes.append((current - previous) / abs(previous) * 100)
    return changes
