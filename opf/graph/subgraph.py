"""Subgraph container: nodes, feature block, distance matrix and metric.

A Subgraph is a passive data structure. Loaders attach features (and
optionally labels or a precomputed distance matrix), an adjacency builder
fills each node's AdjacencySet, evaluate_density() seeds path values, and the
forest algorithm reads everything back through distance().

The feature block is a single (node_n, feat_n) float32 array owned by the
subgraph. Nodes hold a row index into it, never a view, so reallocating the
block in set_feature() or resize() cannot leave a stale reference behind.
"""

import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from opf.graph.density import evaluate_density
from opf.graph.metrics import (
    ArcWeight,
    Metric,
    MetricConfigurationError,
    resolve_metric,
)
from opf.graph.types import NIL, Node

if TYPE_CHECKING:
    from opf.config.subgraph import SubgraphConfig

log = logging.getLogger(__name__)

NodeRef = Node | int


class SubgraphAllocationError(Exception):
    """Raised when an allocating operation runs out of memory.

    The subgraph is left exactly as it was before the call.
    """


class SubgraphDestroyedError(RuntimeError):
    """Raised when a destroyed subgraph is used for anything but destroy()."""


class Subgraph:
    """Dataset graph for Optimum-Path Forest construction.

    Attributes:
        node_n: Number of nodes.
        feat_n: Features per node (0 until set_feature()).
        nodes: Node records, indexable 0..node_n-1.
        ordered_list_of_nodes: Scratch identifier array for algorithms that
            need a sortable view without relocating nodes. Filled with NIL.
        arc_weight: Selected distance callable, or None.
        df: Degrees of freedom for density estimation.
        k: Kernel bandwidth from the last density pass.
        dens_min: Minimum raw density from the last density pass.
        dens_max: Maximum raw density from the last density pass.
    """

    def __init__(self, node_n: int) -> None:
        if node_n < 0:
            raise ValueError(f"node_n must be >= 0, got {node_n}")

        try:
            nodes = [Node(position=i) for i in range(node_n)]
            ordered = np.full(node_n, NIL, dtype=np.int64)
        except MemoryError as e:
            raise SubgraphAllocationError(
                f"Cannot allocate subgraph with {node_n} nodes"
            ) from e

        self.node_n: int = node_n
        self.feat_n: int = 0
        self.nodes: list[Node] = nodes
        self.ordered_list_of_nodes: np.ndarray = ordered
        self.arc_weight: ArcWeight | None = None
        self.df: float = math.nan
        self.k: float = math.nan
        self.dens_min: float = math.nan
        self.dens_max: float = math.nan
        self._feat_data: np.ndarray | None = None
        self._pdist: np.ndarray | None = None
        self._destroyed = False

    @classmethod
    def create(cls, node_n: int) -> "Subgraph":
        """Allocate a subgraph of node_n cleared nodes with no features."""
        return cls(node_n)

    @classmethod
    def from_config(cls, node_n: int, config: "SubgraphConfig") -> "Subgraph":
        """Allocate a subgraph and apply df and metric from a config."""
        sg = cls(node_n)
        sg.df = config.df
        sg.set_metric(metric=config.metric)
        return sg

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def feature_block(self) -> np.ndarray | None:
        """The owned (node_n, feat_n) feature block, or None."""
        return self._feat_data

    @property
    def distance_matrix(self) -> np.ndarray | None:
        """The owned (node_n, node_n) precomputed distance matrix, or None."""
        return self._pdist

    @property
    def pdist_stride(self) -> int | None:
        """Row stride of the distance matrix, None when there is no matrix."""
        return None if self._pdist is None else self._pdist.shape[1]

    def __len__(self) -> int:
        return self.node_n

    def _check_alive(self) -> None:
        if self._destroyed:
            raise SubgraphDestroyedError("Subgraph has been destroyed")

    def _slot(self, index: int) -> int:
        # NIL and other negatives must not wrap around to the last slot.
        index = int(index)
        if not 0 <= index < self.node_n:
            raise IndexError(
                f"Node index {index} out of range for {self.node_n} nodes"
            )
        return index

    def _node(self, ref: NodeRef) -> Node:
        return ref if isinstance(ref, Node) else self.nodes[self._slot(ref)]

    def _bound_features(self, node: Node) -> np.ndarray | None:
        if node.owned_features is not None:
            return node.owned_features
        if node.feature_row is not None and self._feat_data is not None:
            return self._feat_data[node.feature_row]
        return None

    def feature_vector(self, ref: NodeRef) -> np.ndarray:
        """Feature view of a node, derived from its current binding.

        Args:
            ref: Node index or Node record.

        Returns:
            Writable float32 view of length feat_n.

        Raises:
            ValueError: If the node has no features bound.
            IndexError: If an index is outside 0..node_n-1 (NIL included).
        """
        self._check_alive()
        node = self._node(ref)
        features = self._bound_features(node)
        if features is None:
            raise ValueError(f"Node at position {node.position} has no features")
        return features

    def set_feature(
        self,
        features: np.ndarray,
        labels: np.ndarray | None = None,
        feat_n: int | None = None,
    ) -> None:
        """Attach a feature matrix, replacing any existing feature block.

        Rows are copied in node order and node i is bound to row i.

        Args:
            features: Row-major features, shape (node_n, feat_n) or flat
                with node_n * feat_n entries.
            labels: Optional ground-truth labels, one per node.
            feat_n: Features per node. Inferred from a 2-D input if omitted.

        Raises:
            ValueError: If shapes do not match node_n / feat_n.
            SubgraphAllocationError: If the block cannot be allocated.
        """
        self._check_alive()
        try:
            arr = np.asarray(features, dtype=np.float32)
        except MemoryError as e:
            raise SubgraphAllocationError("Cannot convert features to float32") from e

        if feat_n is None:
            if arr.ndim != 2:
                raise ValueError(
                    "feat_n is required when features are not 2-D, "
                    f"got shape {arr.shape}"
                )
            feat_n = arr.shape[1]
        if arr.ndim == 2 and arr.shape != (self.node_n, feat_n):
            raise ValueError(
                f"Expected features of shape ({self.node_n}, {feat_n}), "
                f"got {arr.shape}"
            )
        if feat_n < 0 or arr.size != self.node_n * feat_n:
            raise ValueError(
                f"Expected {self.node_n} x {feat_n} features, got {arr.size} values"
            )
        label_arr = self._check_labels(labels)

        try:
            block = np.array(arr.reshape(self.node_n, feat_n), dtype=np.float32)
        except MemoryError as e:
            raise SubgraphAllocationError(
                f"Cannot allocate {self.node_n} x {feat_n} feature block"
            ) from e

        self._feat_data = block
        self.feat_n = feat_n
        for i, node in enumerate(self.nodes):
            node.feature_row = i
            node.owned_features = None
            if label_arr is not None:
                node.label_true = int(label_arr[i])

        log.info(
            "Features attached: %d nodes x %d features%s",
            self.node_n,
            feat_n,
            " with labels" if label_arr is not None else "",
        )

    def set_node_feature(self, ref: NodeRef, values: np.ndarray) -> None:
        """Overwrite one node's features in place.

        Used to populate nodes added by resize() before relying on distances
        involving them.
        """
        target = self.feature_vector(ref)
        arr = np.asarray(values, dtype=np.float32).ravel()
        if arr.size != self.feat_n:
            raise ValueError(f"Expected {self.feat_n} features, got {arr.size}")
        target[:] = arr

    def _check_labels(self, labels: np.ndarray | None) -> np.ndarray | None:
        if labels is None:
            return None
        label_arr = np.asarray(labels, dtype=np.int64).ravel()
        if label_arr.size != self.node_n:
            raise ValueError(
                f"Expected {self.node_n} labels, got {label_arr.size}"
            )
        return label_arr

    def set_metric(
        self,
        arc_weight: ArcWeight | None = None,
        metric: Metric | str = Metric.EUCLIDEAN,
    ) -> None:
        """Select the pairwise distance function.

        An explicit arc_weight always wins. Otherwise the named metric is
        resolved from the catalog; Metric.NO_METRIC clears the selection so
        only a precomputed matrix can answer distance queries.

        Raises:
            MetricConfigurationError: If metric is not in the catalog.
        """
        self._check_alive()
        if arc_weight is not None:
            self.arc_weight = arc_weight
            log.debug("Metric set to explicit callable %r", arc_weight)
            return
        self.arc_weight = resolve_metric(metric)
        log.debug("Metric set to %s", Metric(metric).value)

    def set_precomputed_distance(
        self, matrix: np.ndarray, labels: np.ndarray | None = None
    ) -> None:
        """Attach a full node_n x node_n distance matrix.

        From this point distance() reads the matrix, keyed by node position.

        Raises:
            ValueError: If the matrix is not node_n x node_n.
            SubgraphAllocationError: If the matrix cannot be allocated.
        """
        self._check_alive()
        try:
            arr = np.asarray(matrix, dtype=np.float32)
        except MemoryError as e:
            raise SubgraphAllocationError(
                "Cannot convert distance matrix to float32"
            ) from e

        if arr.size != self.node_n * self.node_n:
            raise ValueError(
                f"Expected {self.node_n} x {self.node_n} distances, "
                f"got {arr.size} values"
            )
        label_arr = self._check_labels(labels)

        try:
            pdist = np.array(arr.reshape(self.node_n, self.node_n), dtype=np.float32)
        except MemoryError as e:
            raise SubgraphAllocationError(
                f"Cannot allocate {self.node_n} x {self.node_n} distance matrix"
            ) from e

        self._pdist = pdist
        if label_arr is not None:
            for node, label in zip(self.nodes, label_arr):
                node.label_true = int(label)

        log.info("Precomputed distance matrix attached (%d x %d)", *pdist.shape)

    def distance(self, a: NodeRef, b: NodeRef) -> float:
        """Distance between two nodes.

        Every algorithm built on a subgraph must go through this method so
        that the whole forest shares one distance definition.

        Args:
            a: Node index or Node record.
            b: Node index or Node record.

        Returns:
            matrix[a.position, b.position] if a precomputed matrix is present,
            otherwise arc_weight(features(a), features(b), feat_n).

        Raises:
            MetricConfigurationError: If there is neither a matrix nor a metric.
            IndexError: If an index is outside 0..node_n-1 (NIL included) or
                a position falls outside the matrix.
        """
        self._check_alive()
        na, nb = self._node(a), self._node(b)

        if self._pdist is not None:
            stride = self._pdist.shape[1]
            for node in (na, nb):
                if not 0 <= node.position < stride:
                    raise IndexError(
                        f"Position {node.position} outside distance matrix "
                        f"of stride {stride}"
                    )
            return float(self._pdist[na.position, nb.position])

        if self.arc_weight is None:
            raise MetricConfigurationError(
                "No distance source: set a metric or a precomputed matrix"
            )
        return float(
            self.arc_weight(
                self.feature_vector(na), self.feature_vector(nb), self.feat_n
            )
        )

    def rebuild_distance_matrix(self) -> None:
        """Recompute the full distance matrix from features and the metric.

        The matrix is indexed by slot and every node's position is re-keyed
        to its slot index so lookups stay consistent.

        Raises:
            MetricConfigurationError: If no metric is selected.
            SubgraphAllocationError: If the matrix cannot be allocated.
        """
        self._check_alive()
        if self.arc_weight is None:
            raise MetricConfigurationError(
                "Cannot rebuild distance matrix without a metric"
            )

        features = [self.feature_vector(node) for node in self.nodes]
        try:
            pdist = np.empty((self.node_n, self.node_n), dtype=np.float32)
        except MemoryError as e:
            raise SubgraphAllocationError(
                f"Cannot allocate {self.node_n} x {self.node_n} distance matrix"
            ) from e

        for i in range(self.node_n):
            for j in range(self.node_n):
                pdist[i, j] = self.arc_weight(features[i], features[j], self.feat_n)

        self._pdist = pdist
        for i, node in enumerate(self.nodes):
            node.position = i

        log.info("Distance matrix rebuilt from features (%d x %d)", *pdist.shape)

    def evaluate_density(self) -> None:
        """Seed density and path value of every node. See density.evaluate_density."""
        self._check_alive()
        evaluate_density(self)

    def _remap_pdist(self, positions: np.ndarray) -> tuple[np.ndarray, int]:
        """Slot-indexed matrix for the given per-slot positions.

        Entries whose position has no row in the current matrix are NaN.
        Returns the matrix and the number of such slots.
        """
        old = self._pdist
        m = len(positions)
        valid = (positions >= 0) & (positions < old.shape[0])
        dt = np.full((m, m), np.nan, dtype=np.float32)
        idx = np.flatnonzero(valid)
        src = positions[idx]
        dt[np.ix_(idx, idx)] = old[np.ix_(src, src)]
        return dt, int(m - idx.size)

    def resize(self, node_n: int) -> None:
        """Change the node count in place.

        Slots 0..min(old, new)-1 keep their full state. New slots are cleared
        with position set to their index; their feature rows are NaN until
        set_node_feature() is called.

        If a distance matrix is present it is rebuilt at the new size from the
        old matrix, and positions are re-keyed to slot indices. Rows and
        columns of new nodes are NaN: call rebuild_distance_matrix() after
        populating their features to make them valid.

        Raises:
            ValueError: If node_n is negative.
            SubgraphAllocationError: If new storage cannot be allocated.
        """
        self._check_alive()
        if node_n < 0:
            raise ValueError(f"node_n must be >= 0, got {node_n}")

        old_n = self.node_n
        keep = min(old_n, node_n)

        try:
            new_nodes = [Node(position=i) for i in range(old_n, node_n)]
            ordered = np.full(node_n, NIL, dtype=np.int64)
            ordered[:keep] = self.ordered_list_of_nodes[:keep]

            block = None
            if self._feat_data is not None:
                block = np.full((node_n, self.feat_n), np.nan, dtype=np.float32)
                for i in range(keep):
                    features = self._bound_features(self.nodes[i])
                    if features is not None:
                        block[i] = features

            pdist = None
            missing = 0
            if self._pdist is not None:
                positions = np.array(
                    [node.position for node in self.nodes[:keep]]
                    + [node.position for node in new_nodes],
                    dtype=np.int64,
                )
                pdist, missing = self._remap_pdist(positions)
        except MemoryError as e:
            raise SubgraphAllocationError(
                f"Cannot resize subgraph from {old_n} to {node_n} nodes"
            ) from e

        for node in self.nodes[keep:]:
            node.adjacency.destroy()

        self.nodes = self.nodes[:keep] + new_nodes
        self.ordered_list_of_nodes = ordered
        self.node_n = node_n

        if block is not None:
            self._feat_data = block
            for i, node in enumerate(self.nodes):
                node.feature_row = i
                node.owned_features = None

        if pdist is not None:
            self._pdist = pdist
            for i, node in enumerate(self.nodes):
                node.position = i
            if missing:
                log.warning(
                    "Resize left %d node(s) without distances; their matrix "
                    "rows are NaN until rebuild_distance_matrix()",
                    missing,
                )

        log.info("Subgraph resized from %d to %d nodes", old_n, node_n)

    def copy_node(self, dest: NodeRef, src: NodeRef) -> None:
        """Deep-copy node src into dest.

        dest receives its own copy of src's features (it does not alias the
        feature block) and an independent clone of the adjacency set. All
        scalar fields, position included, are copied verbatim. dest may be a
        slot of this subgraph or a free-standing Node.
        """
        self._check_alive()
        d, s = self._node(dest), self._node(src)
        if d is s:
            return

        features = self._bound_features(s)
        try:
            owned = None if features is None else np.array(features, dtype=np.float32)
            adjacency = s.adjacency.clone()
        except MemoryError as e:
            raise SubgraphAllocationError(
                f"Cannot allocate copy of node at position {s.position}"
            ) from e

        d.owned_features = owned
        d.feature_row = None
        d.adjacency = adjacency

        d.path_value = s.path_value
        d.density = s.density
        d.label = s.label
        d.root = s.root
        d.pred = s.pred
        d.label_true = s.label_true
        d.position = s.position
        d.status = s.status
        d.radius = s.radius
        d.neighbor_count = s.neighbor_count

    def swap_nodes(self, i: int, j: int) -> None:
        """Exchange the full records in slots i and j without allocating.

        Position, feature binding and adjacency ownership all travel with the
        record. Callers that need slot-bound identity must re-key positions
        themselves.
        """
        self._check_alive()
        i, j = self._slot(i), self._slot(j)
        self.nodes[i], self.nodes[j] = self.nodes[j], self.nodes[i]

    def destroy(self) -> None:
        """Release every owned resource. Safe to call more than once."""
        if self._destroyed:
            return
        self._feat_data = None
        self._pdist = None
        for node in self.nodes:
            node.adjacency.destroy()
        self.nodes = []
        self.ordered_list_of_nodes = np.empty(0, dtype=np.int64)
        self.node_n = 0
        self.arc_weight = None
        self._destroyed = True
        log.debug("Subgraph destroyed")
