"""Subgraph configuration with frozen, validated, serializable dataclasses."""

from opf.config.subgraph import SubgraphConfig
from opf.config.defaults import DEFAULT_CONFIG
from opf.config.serialization import (
    config_from_dict,
    config_from_json,
    config_to_dict,
    config_to_json,
)

__all__ = [
    "SubgraphConfig",
    "DEFAULT_CONFIG",
    "config_from_dict",
    "config_from_json",
    "config_to_dict",
    "config_to_json",
]
