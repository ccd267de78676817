"""Subgraph configuration dataclass -- frozen and slotted for immutability."""

from dataclasses import dataclass

from opf.graph.density import kernel_bandwidth
from opf.graph.metrics import Metric


@dataclass(frozen=True, slots=True)
class SubgraphConfig:
    """Density-estimation and distance parameters for a Subgraph.

    Validation runs in __post_init__ to reject invalid configurations early.
    """

    df: float = 10.0  # degrees of freedom, kernel bandwidth k = 2 * df / 9
    metric: str = Metric.EUCLIDEAN.value  # catalog name, "no_metric" for pdist-only

    def __post_init__(self) -> None:
        if self.df <= 0:
            raise ValueError(f"df must be > 0, got {self.df}")
        valid = {m.value for m in Metric}
        if self.metric not in valid:
            raise ValueError(
                f"metric must be one of {sorted(valid)}, got {self.metric!r}"
            )

    @property
    def bandwidth(self) -> float:
        """Kernel bandwidth k derived from df."""
        return kernel_bandwidth(self.df)
