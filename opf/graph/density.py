"""Kernel density (PDF) evaluation over node adjacency sets.

Produces the per-node density and initial path value consumed by the forest
algorithm as its seed cost. Raw densities are Gaussian-like kernel sums over
each node's neighbors, rescaled linearly into [1, DENS_MAX].
"""

import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from opf.graph.types import DENS_MAX

if TYPE_CHECKING:
    from opf.graph.subgraph import Subgraph

log = logging.getLogger(__name__)


def kernel_bandwidth(df: float) -> float:
    """Kernel bandwidth k = 2 * df / 9 for a degrees-of-freedom value."""
    return 2.0 * df / 9.0


def raw_densities(sg: "Subgraph", k: float) -> np.ndarray:
    """Unnormalized kernel density of every node.

    raw(i) = sum_{j in A(i)} exp(-d(i, j) / k) / (1 + |A(i)|)

    The denominator counts the node itself, so an isolated node scores 0.

    Args:
        sg: Subgraph with adjacency sets populated.
        k: Kernel bandwidth, must be > 0.

    Returns:
        Float64 array of shape (node_n,).
    """
    raw = np.zeros(sg.node_n, dtype=np.float64)
    for i, node in enumerate(sg.nodes):
        total = 0.0
        for j in node.adjacency:
            total += math.exp(-sg.distance(node, j) / k)
        raw[i] = total / (1 + len(node.adjacency))
    return raw


def evaluate_density(sg: "Subgraph") -> None:
    """Set density and path_value of every node from its adjacency set.

    Uses bandwidth k = 2 * df / 9 and records k, dens_min and dens_max on the
    subgraph. When every node has the same raw density (including the case
    where no node has neighbors) all nodes get DENS_MAX and a path value of
    DENS_MAX - 1. Otherwise raw values are mapped linearly onto [1, DENS_MAX]
    and path_value = density - 1.

    Args:
        sg: Subgraph with df set and adjacency sets populated.

    Raises:
        ValueError: If sg.df is not a positive number.
    """
    if not sg.df > 0:
        raise ValueError(f"df must be > 0 for density evaluation, got {sg.df}")

    sg.k = kernel_bandwidth(sg.df)

    if sg.node_n == 0:
        sg.dens_min = math.nan
        sg.dens_max = math.nan
        log.debug("Density evaluation skipped: empty subgraph")
        return

    raw = raw_densities(sg, sg.k)
    sg.dens_min = float(raw.min())
    sg.dens_max = float(raw.max())

    if sg.dens_min == sg.dens_max:
        density = np.full(sg.node_n, DENS_MAX, dtype=np.float64)
    else:
        density = (DENS_MAX - 1.0) * (raw - sg.dens_min) / (
            sg.dens_max - sg.dens_min
        ) + 1.0

    for node, dens in zip(sg.nodes, density):
        node.density = float(dens)
        node.path_value = float(dens) - 1.0

    log.debug(
        "Density evaluated: k=%.4f, dens_min=%.6g, dens_max=%.6g",
        sg.k,
        sg.dens_min,
        sg.dens_max,
    )
