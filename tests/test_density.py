"""Tests for kernel density (PDF) evaluation.

Uses small hand-built subgraphs whose raw densities can be computed by hand.
"""

import math

import numpy as np
import pytest

from opf.graph import (
    DENS_MAX,
    NIL,
    Metric,
    Subgraph,
    evaluate_density,
    kernel_bandwidth,
    raw_densities,
)


def make_line(values: list[float], df: float = 4.5) -> Subgraph:
    """1-feature subgraph with euclidean metric; df=4.5 gives k=1."""
    sg = Subgraph.create(len(values))
    sg.set_feature(np.array(values, dtype=np.float32).reshape(-1, 1))
    sg.set_metric(metric=Metric.EUCLIDEAN)
    sg.df = df
    return sg


@pytest.fixture
def three_nodes() -> Subgraph:
    """Nodes at 0, 1, 10 with a mutual 0<->1 edge and node 2 isolated."""
    sg = make_line([0.0, 1.0, 10.0])
    sg.nodes[0].adjacency.append(1)
    sg.nodes[1].adjacency.append(0)
    return sg


class TestRawDensity:
    """Raw kernel sums before rescaling."""

    def test_raw_values(self, three_nodes: Subgraph) -> None:
        raw = raw_densities(three_nodes, 1.0)
        assert raw[0] == pytest.approx(math.exp(-1.0) / 2)
        assert raw[1] == pytest.approx(math.exp(-1.0) / 2)
        assert raw[2] == 0.0

    def test_denominator_counts_self(self) -> None:
        sg = make_line([0.0, 0.0, 0.0])
        sg.nodes[0].adjacency.append(1)
        sg.nodes[0].adjacency.append(2)
        raw = raw_densities(sg, 1.0)
        # two zero-distance neighbours: (1 + 1) / 3
        assert raw[0] == pytest.approx(2.0 / 3.0)

    def test_duplicate_neighbours_counted(self) -> None:
        sg = make_line([0.0, 0.0])
        sg.nodes[0].adjacency.append(1)
        sg.nodes[0].adjacency.append(1)
        assert raw_densities(sg, 1.0)[0] == pytest.approx(2.0 / 3.0)


class TestEvaluateDensity:
    """Rescaling into [1, DENS_MAX] and path value seeding."""

    def test_end_to_end_example(self, three_nodes: Subgraph) -> None:
        three_nodes.evaluate_density()

        assert three_nodes.k == pytest.approx(1.0)
        assert three_nodes.dens_min == 0.0
        assert three_nodes.dens_max == pytest.approx(math.exp(-1.0) / 2)

        n0, n1, n2 = three_nodes.nodes
        assert n2.density == 1.0
        assert n2.path_value == 0.0
        for node in (n0, n1):
            assert node.density == pytest.approx(DENS_MAX)
            assert node.path_value == pytest.approx(DENS_MAX - 1)

    def test_all_isolated_is_degenerate(self) -> None:
        sg = make_line([0.0, 3.0, 7.0, 9.0])
        evaluate_density(sg)
        assert sg.dens_min == sg.dens_max == 0.0
        for node in sg.nodes:
            assert node.density == DENS_MAX
            assert node.path_value == DENS_MAX - 1

    def test_identical_raw_is_degenerate(self) -> None:
        sg = make_line([0.0, 2.0])
        sg.nodes[0].adjacency.append(1)
        sg.nodes[1].adjacency.append(0)
        evaluate_density(sg)
        assert all(n.density == DENS_MAX for n in sg.nodes)

    def test_range_and_path_offset(self) -> None:
        sg = make_line([0.0, 0.5, 1.0, 4.0, 9.0], df=9.0)
        for i in range(5):
            for j in range(5):
                if i != j and abs(i - j) <= 2:
                    sg.nodes[i].adjacency.append(j)
        evaluate_density(sg)

        dens = np.array([n.density for n in sg.nodes])
        assert dens.min() == pytest.approx(1.0)
        assert dens.max() == pytest.approx(DENS_MAX)
        for node in sg.nodes:
            assert node.path_value == pytest.approx(node.density - 1)

    def test_uses_precomputed_distances(self) -> None:
        sg = Subgraph.create(3)
        sg.set_metric(metric=Metric.NO_METRIC)
        sg.set_precomputed_distance(
            [[0.0, 1.0, 5.0], [1.0, 0.0, 5.0], [5.0, 5.0, 0.0]]
        )
        sg.df = 4.5
        sg.nodes[0].adjacency.append(1)
        sg.nodes[1].adjacency.append(0)
        sg.evaluate_density()
        assert sg.nodes[2].density == 1.0
        assert sg.nodes[0].density == pytest.approx(DENS_MAX)

    def test_nil_neighbour_rejected(self, three_nodes: Subgraph) -> None:
        three_nodes.nodes[2].adjacency.append(NIL)
        with pytest.raises(IndexError):
            evaluate_density(three_nodes)

    def test_bandwidth_recorded(self, three_nodes: Subgraph) -> None:
        three_nodes.df = 9.0
        evaluate_density(three_nodes)
        assert three_nodes.k == kernel_bandwidth(9.0) == pytest.approx(2.0)

    def test_unset_df_rejected(self) -> None:
        sg = Subgraph.create(2)
        with pytest.raises(ValueError, match="df"):
            evaluate_density(sg)

    def test_zero_df_rejected(self) -> None:
        sg = make_line([0.0, 1.0], df=0.0)
        with pytest.raises(ValueError, match="df"):
            evaluate_density(sg)

    def test_empty_subgraph(self) -> None:
        sg = Subgraph.create(0)
        sg.df = 1.0
        evaluate_density(sg)
        assert math.isnan(sg.dens_min)
        assert math.isnan(sg.dens_max)
