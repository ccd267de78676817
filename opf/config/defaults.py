"""Default subgraph configuration."""

from opf.config.subgraph import SubgraphConfig

# df=10.0 gives a kernel bandwidth k = 2 * 10 / 9 ~ 2.22, euclidean arc weight.
DEFAULT_CONFIG = SubgraphConfig()
