"""Load and dump SubgraphConfig as JSON or plain dicts.

Loading goes through dacite so a config file with a misspelled or stale key
fails loudly instead of silently falling back to a default.
"""

import json
from dataclasses import asdict
from typing import Any

from dacite import from_dict, Config as DaciteConfig

from opf.config.subgraph import SubgraphConfig

# JSON has no float/int distinction for whole numbers, so df=4 must be
# accepted and stored as 4.0 before the type check runs.
_DACITE_CONFIG = DaciteConfig(
    cast=[float],
    check_types=True,
    strict=True,
)


def config_to_dict(config: SubgraphConfig) -> dict[str, Any]:
    """Field name -> value mapping for a SubgraphConfig."""
    return asdict(config)


def config_from_dict(d: dict[str, Any]) -> SubgraphConfig:
    """Build a SubgraphConfig from a mapping of field values.

    Args:
        d: Mapping with any subset of ``df`` and ``metric``.

    Returns:
        A validated SubgraphConfig.

    Raises:
        dacite.UnexpectedDataError: If d carries a key SubgraphConfig lacks.
        dacite.WrongTypeError: If a value has the wrong type.
        ValueError: If df or metric fail SubgraphConfig validation.
    """
    return from_dict(data_class=SubgraphConfig, data=d, config=_DACITE_CONFIG)


def config_to_json(config: SubgraphConfig) -> str:
    """Stable JSON text for a config (sorted keys, indented)."""
    return json.dumps(config_to_dict(config), indent=2, sort_keys=True)


def config_from_json(json_str: str) -> SubgraphConfig:
    """Parse JSON text produced by config_to_json (or written by hand)."""
    return config_from_dict(json.loads(json_str))
