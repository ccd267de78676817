"""Pluggable arc-weight (pairwise distance) functions and their registry.

A metric is any callable ``(f1, f2, n) -> float`` over two feature vectors of
length ``n``. The named catalog below is resolved once by
``Subgraph.set_metric``; an explicit callable always overrides it.
"""

from collections.abc import Callable
from enum import StrEnum

import numpy as np
from scipy.spatial import distance as sp_distance

ArcWeight = Callable[[np.ndarray, np.ndarray, int], float]

# Scale applied to log-euclidean distances so they stay in the integer-like
# cost range used by the forest algorithm.
MAX_ARC_WEIGHT: float = 100000.0


class MetricConfigurationError(ValueError):
    """Raised when no usable distance function can be selected."""


class Metric(StrEnum):
    """Named metrics in the arc-weight catalog.

    NO_METRIC disables metric-based distances; it is only valid when a
    precomputed distance matrix supplies every distance.
    """

    EUCLIDEAN = "euclidean"
    LOG_EUCLIDEAN = "log_euclidean"
    CHI_SQUARE = "chi_square"
    SQUARED_CHI_SQUARE = "squared_chi_square"
    MANHATTAN = "manhattan"
    CANBERRA = "canberra"
    SQUARED_CHORD = "squared_chord"
    BRAY_CURTIS = "bray_curtis"
    NO_METRIC = "no_metric"


def _as_pair(f1: np.ndarray, f2: np.ndarray, n: int) -> tuple[np.ndarray, np.ndarray]:
    return (
        np.asarray(f1[:n], dtype=np.float64),
        np.asarray(f2[:n], dtype=np.float64),
    )


def _safe_ratio(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    # Terms with a zero denominator contribute nothing.
    return np.divide(num, den, out=np.zeros_like(num), where=den != 0)


def d_euclidean(f1: np.ndarray, f2: np.ndarray, n: int) -> float:
    """Squared Euclidean distance (OPF arc weights take no square root)."""
    a, b = _as_pair(f1, f2, n)
    return float(sp_distance.sqeuclidean(a, b))


def d_log_euclidean(f1: np.ndarray, f2: np.ndarray, n: int) -> float:
    return float(MAX_ARC_WEIGHT * np.log(d_euclidean(f1, f2, n) + 1.0))


def d_chi_square(f1: np.ndarray, f2: np.ndarray, n: int) -> float:
    """Chi-square distance between the two vectors normalized to unit sum."""
    a, b = _as_pair(f1, f2, n)
    sum_a, sum_b = a.sum(), b.sum()
    pa = a / sum_a if sum_a != 0 else np.zeros_like(a)
    pb = b / sum_b if sum_b != 0 else np.zeros_like(b)
    return float(np.sqrt(_safe_ratio((pa - pb) ** 2, a + b).sum()))


def d_squared_chi_square(f1: np.ndarray, f2: np.ndarray, n: int) -> float:
    a, b = _as_pair(f1, f2, n)
    return float(_safe_ratio((a - b) ** 2, np.abs(a + b)).sum())


def d_manhattan(f1: np.ndarray, f2: np.ndarray, n: int) -> float:
    a, b = _as_pair(f1, f2, n)
    return float(sp_distance.cityblock(a, b))


def d_canberra(f1: np.ndarray, f2: np.ndarray, n: int) -> float:
    a, b = _as_pair(f1, f2, n)
    return float(sp_distance.canberra(a, b))


def d_squared_chord(f1: np.ndarray, f2: np.ndarray, n: int) -> float:
    """Squared chord distance, defined for non-negative features."""
    a, b = _as_pair(f1, f2, n)
    return float(((np.sqrt(a) - np.sqrt(b)) ** 2).sum())


def d_bray_curtis(f1: np.ndarray, f2: np.ndarray, n: int) -> float:
    a, b = _as_pair(f1, f2, n)
    if not np.any(a + b):
        return 0.0
    return float(sp_distance.braycurtis(a, b))


METRICS: dict[Metric, ArcWeight | None] = {
    Metric.EUCLIDEAN: d_euclidean,
    Metric.LOG_EUCLIDEAN: d_log_euclidean,
    Metric.CHI_SQUARE: d_chi_square,
    Metric.SQUARED_CHI_SQUARE: d_squared_chi_square,
    Metric.MANHATTAN: d_manhattan,
    Metric.CANBERRA: d_canberra,
    Metric.SQUARED_CHORD: d_squared_chord,
    Metric.BRAY_CURTIS: d_bray_curtis,
    Metric.NO_METRIC: None,
}


def resolve_metric(metric: Metric | str) -> ArcWeight | None:
    """Look up a catalog metric by enum member or name.

    Args:
        metric: A Metric member or its string value.

    Returns:
        The arc-weight callable, or None for Metric.NO_METRIC.

    Raises:
        MetricConfigurationError: If the metric is not in the catalog.
    """
    try:
        return METRICS[Metric(metric)]
    except (ValueError, KeyError):
        raise MetricConfigurationError(f"Undefined metric: {metric!r}") from None
