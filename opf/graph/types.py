"""Node data structures and sentinel constants for OPF subgraphs."""

import math
from dataclasses import dataclass, field
from enum import IntFlag

import numpy as np

from opf.graph.adjacency import AdjacencySet

# "No label" / "no node" sentinel for labels, roots, predecessors and positions.
NIL: int = -1

# Upper bound of the density domain shared with the forest cost function.
DENS_MAX: float = 1000.0


class NodeStatus(IntFlag):
    """Per-node marker bits set by forest construction and pruning."""

    NONE = 0
    PROTOTYPE = 1


@dataclass(eq=False)
class Node:
    """One sample of a subgraph.

    A freshly constructed Node is in the cleared state: every identity is NIL,
    every score is NaN, the adjacency set is empty and no features are bound.

    Features are never cached as a view. A node either refers to a row of its
    subgraph's feature block through ``feature_row`` or, after a deep copy,
    owns a private array in ``owned_features``. The subgraph derives the view
    on each access.
    """

    position: int = NIL  # creation-order identity, travels with swap()
    path_value: float = math.nan
    density: float = math.nan
    radius: float = math.nan
    label: int = NIL
    label_true: int = NIL
    root: int = NIL
    pred: int = NIL
    status: NodeStatus = NodeStatus.NONE
    neighbor_count: int = 0  # size hint paired with adjacency
    adjacency: AdjacencySet = field(default_factory=AdjacencySet)
    feature_row: int | None = None
    owned_features: np.ndarray | None = None

    def clear(self) -> None:
        """Reset every field to the cleared state, releasing the adjacency set."""
        self.adjacency.destroy()
        self.position = NIL
        self.path_value = math.nan
        self.density = math.nan
        self.radius = math.nan
        self.label = NIL
        self.label_true = NIL
        self.root = NIL
        self.pred = NIL
        self.status = NodeStatus.NONE
        self.neighbor_count = 0
        self.feature_row = None
        self.owned_features = None

    @property
    def is_prototype(self) -> bool:
        return bool(self.status & NodeStatus.PROTOTYPE)
