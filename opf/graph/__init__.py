"""Node, adjacency and subgraph data structures for OPF classifiers."""

from opf.graph.adjacency import AdjacencySet
from opf.graph.types import DENS_MAX, NIL, Node, NodeStatus
from opf.graph.metrics import (
    METRICS,
    ArcWeight,
    Metric,
    MetricConfigurationError,
    resolve_metric,
)
from opf.graph.density import (
    evaluate_density,
    kernel_bandwidth,
    raw_densities,
)
from opf.graph.subgraph import (
    Subgraph,
    SubgraphAllocationError,
    SubgraphDestroyedError,
)

__all__ = [
    "AdjacencySet",
    "ArcWeight",
    "DENS_MAX",
    "METRICS",
    "Metric",
    "MetricConfigurationError",
    "NIL",
    "Node",
    "NodeStatus",
    "Subgraph",
    "SubgraphAllocationError",
    "SubgraphDestroyedError",
    "evaluate_density",
    "kernel_bandwidth",
    "raw_densities",
    "resolve_metric",
]
